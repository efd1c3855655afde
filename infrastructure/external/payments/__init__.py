"""
Factory for payment processor clients.
"""
from __future__ import annotations

from typing import Optional

from core.settings import get_gateway_settings
from domain.services.payment_gateway import PaymentProcessorClient


def get_processor_client(provider: Optional[str] = None) -> PaymentProcessorClient:
    settings = get_gateway_settings(provider)
    if settings.name == "sample":
        from .sample_client import SampleProcessorClient
        return SampleProcessorClient(settings)
    raise ValueError(f"Unsupported payment provider: {settings.name}")
