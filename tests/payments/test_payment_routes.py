import pytest
from fastapi.testclient import TestClient

from application.ports.payment_gateway import StoreLocale
from application.services.payment_service import PaymentService
from domain.payment.entity import GatewayConfig, OrderField, OrderStatus, PaymentCaptureMode
from domain.payment.exceptions import PaymentGatewayError
from domain.payment.money import Money
from infrastructure.events import InMemoryEventSink
from infrastructure.locks.memory import InMemoryOrderLocks
from infrastructure.repositories.order_repository import InMemoryOrder, InMemoryOrderRepository
from main import create_app
from shared.codes.payment_codes import PaymentCode


@pytest.fixture
def orders():
    return InMemoryOrderRepository([
        InMemoryOrder("new", total_price=Money.of("100", "USD")),
        InMemoryOrder(
            "paid",
            total_price=Money.of("100", "USD"),
            status=OrderStatus.ACCEPTED_PAYMENT,
            transaction_id="txn_1",
            captured=True,
        ),
    ])


@pytest.fixture
def api(client, orders):
    service = PaymentService(
        client,
        GatewayConfig(account_number="acct-1", payment_capture_mode=PaymentCaptureMode.AUTHORIZE),
        locks=InMemoryOrderLocks(),
        sink=InMemoryEventSink(),
        eligibility=StoreLocale("USD", "US"),
    )
    with TestClient(create_app(orders=orders, gateway=service)) as test_client:
        yield test_client


def test_payment_routes_registered():
    routes = {r.path for r in create_app().routes}
    assert "/api/v1/payments/orders/{order_id}/process" in routes
    assert "/api/v1/payments/orders/{order_id}/refunds" in routes
    assert "/api/v1/payments/availability" in routes


def test_process_authorizes_by_default(api, client):
    resp = api.post("/api/v1/payments/orders/new/process", json={"token": "tok_1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    assert body["data"] == {
        "order_id": "new",
        "status": "accepted_payment",
        "transaction_id": "txn_auth",
        "captured": False,
    }
    assert client.count("authorize") == 1
    assert resp.headers["X-Request-ID"]


def test_process_rejects_empty_token(api, client):
    resp = api.post("/api/v1/payments/orders/new/process", json={"token": ""})
    assert resp.status_code == 422
    assert client.count() == 0


def test_refund_then_excessive_refund(api):
    ok = api.post("/api/v1/payments/orders/paid/refunds", json={"amount": "40.00", "reason": "damaged"})
    assert ok.status_code == 200
    assert ok.json()["data"]["total_refunded"] == "40.00"

    resp = api.post("/api/v1/payments/orders/paid/refunds", json={"amount": "70.00"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == PaymentCode.EXCESSIVE_REFUND
    assert body["error"]["type"] == "ExcessiveRefund"


def test_manual_refund_skips_processor(api, client, orders):
    resp = api.post("/api/v1/payments/orders/paid/refunds", json={"amount": "10", "manual": True})
    assert resp.status_code == 200
    assert resp.json()["data"]["mode"] == "manual"
    assert client.count() == 0


def test_unknown_order_is_404(api):
    resp = api.post("/api/v1/payments/orders/missing/capture", json={})
    assert resp.status_code == 404
    assert resp.json()["code"] == PaymentCode.ORDER_NOT_FOUND


def test_timeout_maps_to_504_then_reconcile(api, client, orders):
    client.fail("refund", PaymentGatewayError("timed out", provider="sample", operation="refund", outcome_unknown=True))

    resp = api.post("/api/v1/payments/orders/paid/refunds", json={"amount": "15"})
    assert resp.status_code == 504
    assert resp.json()["error"]["details"]["outcome_unknown"] is True

    blocked = api.post("/api/v1/payments/orders/paid/refunds", json={"amount": "15"})
    assert blocked.status_code == 409
    assert blocked.json()["code"] == PaymentCode.RECONCILIATION_REQUIRED

    done = api.post("/api/v1/payments/orders/paid/reconcile", json={"succeeded": True, "refund_id": "re_5"})
    assert done.status_code == 200
    summary = done.json()["data"]
    assert summary["total_refunded"] == "15.00"
    assert summary["pending_operation"] is None
    assert summary["status"] == "partially_refunded"


def test_reconcile_without_marker_is_conflict(api):
    resp = api.post("/api/v1/payments/orders/paid/reconcile", json={"succeeded": False})
    assert resp.status_code == 409


def test_capture_already_captured_is_conflict(api):
    resp = api.post("/api/v1/payments/orders/paid/capture", json={})
    assert resp.status_code == 409
    assert resp.json()["code"] == PaymentCode.ALREADY_CAPTURED


def test_availability(api):
    resp = api.get("/api/v1/payments/availability")
    assert resp.json()["data"] == {"gateway": "sample", "eligible": True}
