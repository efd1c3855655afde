"""Event sinks for payment lifecycle events."""
from __future__ import annotations

from dataclasses import asdict
from typing import List

from core.logging_config import get_logger
from domain.payment.events import PaymentEvent


logger = get_logger(__name__)


class LoggingEventSink:
    """Default sink: one structured log line per event."""

    async def publish(self, event: PaymentEvent) -> None:
        payload = asdict(event)
        payload["occurred_at"] = event.occurred_at.isoformat()
        logger.info("payment_event", event_name=event.name, **payload)


class InMemoryEventSink:
    """Keeps published events, e.g. for a results page polling by order id."""

    def __init__(self) -> None:
        self.events: List[PaymentEvent] = []

    async def publish(self, event: PaymentEvent) -> None:
        self.events.append(event)

    def for_order(self, order_id: str) -> List[PaymentEvent]:
        return [e for e in self.events if e.order_id == order_id]
