"""
Payment gateway port (application/ports) exposing a replaceable protocol.

One implementation exists per processor integration; the API layer and the
host checkout flow depend only on this Protocol.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from domain.payment.entity import ProcessResult, RefundOutcome, RefundRequest
from domain.payment.money import Money
from domain.payment.repository import OrderRecord


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol: process, capture, refund and availability."""

    name: str

    async def process(self, order: OrderRecord, token: str, capture_now: Optional[bool] = None) -> ProcessResult: ...

    async def capture(self, order: OrderRecord, transaction_id: Optional[str] = None) -> bool: ...

    async def refund(self, order: OrderRecord, request: RefundRequest) -> RefundOutcome: ...

    async def reconcile(
        self,
        order: OrderRecord,
        succeeded: bool,
        *,
        transaction_id: Optional[str] = None,
        refund_id: Optional[str] = None,
        converted_amount: Optional[Money] = None,
    ) -> None: ...

    def is_eligible(self) -> bool: ...


class EligibilityProvider(Protocol):
    """Store locale as seen by the host application."""

    def current_currency(self) -> str: ...

    def current_country(self) -> str: ...


@dataclass(frozen=True)
class StoreLocale:
    currency: str
    country: str

    def current_currency(self) -> str:
        return self.currency

    def current_country(self) -> str:
        return self.country


__all__ = ["PaymentGateway", "EligibilityProvider", "StoreLocale"]
