"""
Gateway settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so the gateway core only ever sees the
explicit GatewayConfig built from it.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator

from domain.payment.entity import GatewayConfig, PaymentCaptureMode


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 10.0
    write: float = 10.0
    total: float = 15.0


class PaymentRetry(BaseModel):
    # Whole-operation retries, only for requests that never reached the processor
    max: int = 0
    base_backoff: float = 0.2


class OrderLockSettings(BaseModel):
    timeout: int = 60           # seconds a held lock survives without release
    blocking_timeout: int = 30  # seconds to wait for a contended lock


class StoreSettings(BaseModel):
    """Store locale the eligibility check reads (supplied by the host application)."""
    currency: str = "USD"
    country: str = "US"


class GatewaySettings(BaseSettings):
    name: str = "sample"
    account_number: str = ""
    sandbox_mode: bool = False
    payment_capture: PaymentCaptureMode = PaymentCaptureMode.IMMEDIATE
    sandbox_endpoint: str = "http://sandbox.sampleapi.com"
    live_endpoint: str = "https://sampleapi.com"

    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    lock: OrderLockSettings = Field(default_factory=OrderLockSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @field_validator("payment_capture", mode="before")
    @classmethod
    def _parse_capture_mode(cls, v):
        # Settings forms store "" for immediate capture; tolerate a missing value too
        if v is None:
            return PaymentCaptureMode.IMMEDIATE
        return v

    @property
    def endpoint(self) -> str:
        return self.sandbox_endpoint if self.sandbox_mode else self.live_endpoint

    def to_config(self) -> GatewayConfig:
        return GatewayConfig(
            account_number=self.account_number,
            sandbox_mode=self.sandbox_mode,
            payment_capture_mode=self.payment_capture,
        )


gateway_settings = GatewaySettings()


def get_gateway_settings(name: Optional[str] = None) -> GatewaySettings:
    if name and name != gateway_settings.name:
        raise ValueError(f"Unsupported payment gateway: {name}")
    return gateway_settings
