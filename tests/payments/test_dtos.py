from decimal import Decimal

import pytest
from pydantic import ValidationError

from application.dtos.payments import OrderSummary, ReconcilePayload, RefundPayload
from domain.payment.entity import OrderField, PendingOperation, RefundMode
from domain.payment.money import Money


def test_refund_payload_defaults_to_order_currency():
    request = RefundPayload(amount=Decimal("12.5"), reason="late").to_request("USD")
    assert request.amount == Money.of("12.50", "USD")
    assert request.mode == RefundMode.GATEWAY
    assert RefundPayload(amount=Decimal("1"), manual=True).to_request("USD").is_manual


def test_refund_payload_keeps_negative_amount_for_policy():
    # The sign check happens in the refund policy
    assert RefundPayload(amount=Decimal("-1")).to_request("USD").amount.amount == Decimal("-1.00")


def test_currency_is_validated():
    assert RefundPayload(amount=Decimal("1"), currency="usd").currency == "USD"
    with pytest.raises(ValidationError):
        RefundPayload(amount=Decimal("1"), currency="dollars")


def test_reconcile_converted_money():
    payload = ReconcilePayload(succeeded=True, converted_amount=Decimal("9.95"))
    assert payload.converted_money("USD") == Money.of("9.95", "USD")
    assert ReconcilePayload(succeeded=False).converted_money("USD") is None


def test_order_summary_reports_pending_operation(paid_order):
    paid_order.set(OrderField.PENDING_OPERATION, PendingOperation("refund", "k", Money.of("1", "USD")))
    summary = OrderSummary.from_order(paid_order)
    assert summary.pending_operation == "refund"
    assert summary.total_price == "100.00"
    assert summary.captured is True
    assert summary.status == "accepted_payment"
