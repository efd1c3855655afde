"""
Payment event sink port.

The core raises events (e.g. PaymentProcessed, the signal to route the buyer
to the results page); the surrounding application decides what they mean.
"""
from __future__ import annotations

from typing import Protocol

from domain.payment.events import PaymentEvent


class PaymentEventSink(Protocol):
    async def publish(self, event: PaymentEvent) -> None: ...


__all__ = ["PaymentEventSink"]
