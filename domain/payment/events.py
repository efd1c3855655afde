"""
Payment domain events.

Dataclass events record important payment lifecycle facts for downstream handling
(e.g., routing the buyer to a results page, merchant notifications). Domain
remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class PaymentEvent:
    order_id: str
    provider: str
    transaction_id: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass
class PaymentProcessed(PaymentEvent):
    """Raised once `process` has persisted its outcome; consumers route the
    buyer to the transaction results view."""
    status: str = ""
    captured: bool = False


@dataclass
class PaymentCaptured(PaymentEvent):
    amount: str = ""


@dataclass
class PaymentRefunded(PaymentEvent):
    refund_id: str = ""
    amount: str = ""
    processor_amount: str = ""
    manual: bool = False


@dataclass
class RefundFailed(PaymentEvent):
    amount: str = ""
    reason: Optional[str] = None


@dataclass
class OperationReconciled(PaymentEvent):
    operation: str = ""
    succeeded: bool = False
