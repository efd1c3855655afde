import asyncio

import pytest

from application.ports.payment_gateway import PaymentGateway, StoreLocale
from application.services.payment_service import PaymentService
from domain.payment.entity import (
    GatewayConfig,
    OrderField,
    OrderStatus,
    PaymentCaptureMode,
    RefundMode,
    RefundRequest,
)
from domain.payment.events import OperationReconciled, PaymentProcessed, PaymentRefunded
from domain.payment.exceptions import (
    ExcessiveRefundException,
    InvalidOrderStateException,
    PaymentGatewayError,
)
from domain.payment.money import Money
from infrastructure.events import InMemoryEventSink
from infrastructure.locks.memory import InMemoryOrderLocks


def _service(client, *, mode=PaymentCaptureMode.IMMEDIATE, retry_max=0, locale=StoreLocale("USD", "US")):
    sink = InMemoryEventSink()
    service = PaymentService(
        client,
        GatewayConfig(account_number="acct-1", sandbox_mode=True, payment_capture_mode=mode),
        locks=InMemoryOrderLocks(),
        sink=sink,
        eligibility=locale,
        timeout=3.0,
        retry={"max": retry_max, "base": 0},
    )
    return service, sink


def test_service_satisfies_gateway_protocol(client):
    service, _ = _service(client)
    assert isinstance(service, PaymentGateway)


@pytest.mark.parametrize(
    "locale, expected",
    [
        (StoreLocale("USD", "US"), True),
        (StoreLocale("EUR", "US"), False),
        (StoreLocale("USD", "CA"), False),
    ],
)
def test_eligibility_reads_store_locale(client, locale, expected):
    service, _ = _service(client, locale=locale)
    assert service.is_eligible() is expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "mode, operation",
    [(PaymentCaptureMode.IMMEDIATE, "capture"), (PaymentCaptureMode.AUTHORIZE, "authorize")],
)
async def test_process_defaults_to_configured_capture_mode(client, order, mode, operation):
    service, sink = _service(client, mode=mode)
    result = await service.process(order, "tok_1")

    assert client.count(operation) == 1
    assert result.status == OrderStatus.ACCEPTED_PAYMENT
    assert [type(e) for e in sink.for_order(order.id)] == [PaymentProcessed]


@pytest.mark.asyncio
async def test_process_explicit_capture_flag_wins(client, order):
    service, _ = _service(client, mode=PaymentCaptureMode.IMMEDIATE)
    await service.process(order, "tok_1", capture_now=False)
    assert client.count("authorize") == 1
    assert client.count("capture") == 0


@pytest.mark.asyncio
async def test_retryable_failure_retries_whole_operation(client, order):
    client.fail("authorize", PaymentGatewayError("refused", provider="sample", operation="authorize", retryable=True))
    service, _ = _service(client, mode=PaymentCaptureMode.AUTHORIZE, retry_max=2)

    result = await service.process(order, "tok_1")

    assert client.count("authorize") == 2
    assert result.transaction_id == "txn_auth"


@pytest.mark.asyncio
async def test_timeout_is_never_retried(client, paid_order):
    client.fail("refund", PaymentGatewayError("timed out", provider="sample", operation="refund", outcome_unknown=True))
    service, sink = _service(client, retry_max=3)

    with pytest.raises(PaymentGatewayError):
        await service.refund(paid_order, RefundRequest(Money.of("10", "USD")))

    assert client.count("refund") == 1
    assert paid_order.get(OrderField.PENDING_OPERATION) is not None
    assert sink.events == []


@pytest.mark.asyncio
async def test_no_retry_by_default(client, order):
    client.fail("authorize", PaymentGatewayError("refused", provider="sample", operation="authorize", retryable=True))
    service, _ = _service(client, mode=PaymentCaptureMode.AUTHORIZE)
    with pytest.raises(PaymentGatewayError):
        await service.process(order, "tok_1")
    assert client.count("authorize") == 1


@pytest.mark.asyncio
async def test_concurrent_refunds_cannot_over_refund(client, paid_order):
    service, _ = _service(client)
    results = await asyncio.gather(
        service.refund(paid_order, RefundRequest(Money.of("60", "USD"))),
        service.refund(paid_order, RefundRequest(Money.of("60", "USD"))),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1 and isinstance(failures[0], ExcessiveRefundException)
    assert paid_order.persisted[OrderField.TOTAL_REFUNDED] == Money.of("60", "USD")
    assert client.count("refund") == 1


@pytest.mark.asyncio
async def test_refund_events_are_published(client, paid_order):
    service, sink = _service(client)
    await service.refund(paid_order, RefundRequest(Money.of("5", "USD"), mode=RefundMode.MANUAL))
    await service.refund(paid_order, RefundRequest(Money.of("5", "USD")))

    events = sink.for_order(paid_order.id)
    assert [type(e) for e in events] == [PaymentRefunded, PaymentRefunded]
    assert [e.manual for e in events] == [True, False]


@pytest.mark.asyncio
async def test_reconcile_dispatches_on_pending_operation(client, paid_order):
    client.fail("refund", PaymentGatewayError("timed out", provider="sample", operation="refund", outcome_unknown=True))
    service, sink = _service(client)
    with pytest.raises(PaymentGatewayError):
        await service.refund(paid_order, RefundRequest(Money.of("20", "USD")))

    await service.reconcile(paid_order, True, refund_id="re_9")

    assert paid_order.persisted[OrderField.TOTAL_REFUNDED] == Money.of("20", "USD")
    assert paid_order.persisted[OrderField.STATUS] == OrderStatus.PARTIALLY_REFUNDED
    assert [type(e) for e in sink.events] == [PaymentRefunded, OperationReconciled]


@pytest.mark.asyncio
async def test_reconcile_without_marker_is_rejected(client, paid_order):
    service, _ = _service(client)
    with pytest.raises(InvalidOrderStateException):
        await service.reconcile(paid_order, True)


@pytest.mark.asyncio
async def test_capture_through_service(client, authorized_order):
    service, sink = _service(client)
    assert await service.capture(authorized_order) is True
    assert authorized_order.persisted[OrderField.TRANSACTION_ID] == "txn_cap"
    assert len(sink.events) == 1


@pytest.mark.asyncio
async def test_aclose_closes_client(client):
    closed = []

    async def aclose():
        closed.append(True)

    client.aclose = aclose
    service, _ = _service(client)
    await service.aclose()
    assert closed == [True]
