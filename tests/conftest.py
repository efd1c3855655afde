"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

os.environ.setdefault("GATEWAY__ACCOUNT_NUMBER", "acct-test")
os.environ.setdefault("DEBUG", "true")

from typing import Any, Dict, List, Optional

import pytest

from domain.payment.entity import OrderStatus, RefundConfirmation, TransactionResult
from domain.payment.money import Money
from infrastructure.repositories.order_repository import InMemoryOrder


class FakeProcessorClient:
    """Records every call; replies with queued results or raises queued errors."""

    provider = "sample"

    def __init__(
        self,
        *,
        authorize_result: Optional[TransactionResult] = None,
        capture_result: Optional[TransactionResult] = None,
        refund_result: Any = "default",
    ):
        self.authorize_result = authorize_result or TransactionResult(status="accepted", transaction_id="txn_auth")
        self.capture_result = capture_result or TransactionResult(status="accepted", transaction_id="txn_cap")
        if refund_result == "default":
            refund_result = RefundConfirmation(refund_id="re_1")
        self.refund_result = refund_result
        self.errors: Dict[str, List[Exception]] = {"authorize": [], "capture": [], "refund": []}
        self.calls: List[Dict[str, Any]] = []

    def fail(self, operation: str, *errors: Exception) -> "FakeProcessorClient":
        self.errors[operation].extend(errors)
        return self

    def count(self, operation: Optional[str] = None) -> int:
        return len([c for c in self.calls if operation is None or c["operation"] == operation])

    def _record(self, operation: str, **kwargs: Any) -> None:
        self.calls.append({"operation": operation, **kwargs})
        if self.errors[operation]:
            raise self.errors[operation].pop(0)

    async def authorize(self, token, amount, *, timeout=None, idempotency_key=None):
        self._record("authorize", token=token, amount=amount, timeout=timeout, idempotency_key=idempotency_key)
        return self.authorize_result

    async def capture(self, token_or_id, amount=None, *, timeout=None, idempotency_key=None):
        self._record("capture", target=token_or_id, amount=amount, timeout=timeout, idempotency_key=idempotency_key)
        return self.capture_result

    async def refund(self, transaction_id, amount=None, *, timeout=None, idempotency_key=None):
        self._record("refund", target=transaction_id, amount=amount, timeout=timeout, idempotency_key=idempotency_key)
        return self.refund_result


def usd(amount: str) -> Money:
    return Money.of(amount, "USD")


@pytest.fixture
def client() -> FakeProcessorClient:
    return FakeProcessorClient()


@pytest.fixture
def order() -> InMemoryOrder:
    return InMemoryOrder("order-1", total_price=usd("100.00"))


@pytest.fixture
def paid_order() -> InMemoryOrder:
    """Captured order ready for refunds."""
    return InMemoryOrder(
        "order-2",
        total_price=usd("100.00"),
        status=OrderStatus.ACCEPTED_PAYMENT,
        transaction_id="txn_1",
        captured=True,
    )


@pytest.fixture
def authorized_order() -> InMemoryOrder:
    return InMemoryOrder(
        "order-3",
        total_price=usd("100.00"),
        status=OrderStatus.ACCEPTED_PAYMENT,
        transaction_id="txn_auth",
    )


@pytest.fixture
def make_client():
    return FakeProcessorClient
