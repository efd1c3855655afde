import pytest

from domain.payment.entity import OrderStatus, PaymentCaptureMode, GatewayConfig
from domain.payment.idempotency import make_idempotency_key
from domain.payment.money import Money
from domain.payment.service import TransactionStateMachine
from infrastructure.repositories.order_repository import InMemoryOrder


def test_key_is_stable_sha256():
    key = make_idempotency_key("refund", "o1", "txn_1", Money.of("1.00", "USD"), None)
    assert key == make_idempotency_key("refund", "o1", "txn_1", Money.of("1", "USD"), None)
    assert isinstance(key, str) and len(key) == 64
    assert key != make_idempotency_key("capture", "o1", "txn_1", Money.of("1.00", "USD"), None)


@pytest.mark.asyncio
async def test_repeated_process_sends_same_key(client):
    machine = TransactionStateMachine(client, gateway_name="sample")
    keys = []
    for _ in range(2):
        order = InMemoryOrder("o1", total_price=Money.of("12.50", "USD"))
        await machine.process(order, "tok_1", capture_now=False)
        keys.append(client.calls[-1]["idempotency_key"])
    assert keys[0] == keys[1]


@pytest.mark.asyncio
async def test_capture_key_differs_from_authorize_key(client, order):
    machine = TransactionStateMachine(client, gateway_name="sample")
    await machine.process(order, "tok_1", capture_now=False)
    await machine.capture(order, None)
    authorize_key, capture_key = (c["idempotency_key"] for c in client.calls)
    assert authorize_key != capture_key
    assert order.get("status") == OrderStatus.ACCEPTED_PAYMENT


def test_capture_mode_default_is_immediate():
    assert GatewayConfig(account_number="a").capture_immediately is True
    assert GatewayConfig(account_number="a", payment_capture_mode=PaymentCaptureMode.AUTHORIZE).capture_immediately is False
