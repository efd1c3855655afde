import pytest

from domain.payment.entity import OrderField, OrderStatus
from domain.payment.money import Money
from infrastructure.repositories.order_repository import InMemoryOrder, InMemoryOrderRepository


@pytest.mark.asyncio
async def test_set_is_not_persisted_until_save(order):
    order.set(OrderField.STATUS, OrderStatus.ORDER_RECEIVED)
    assert order.get(OrderField.STATUS) == OrderStatus.ORDER_RECEIVED
    assert order.persisted[OrderField.STATUS] == OrderStatus.AWAITING_PAYMENT
    assert order.is_dirty

    await order.save()
    assert order.persisted[OrderField.STATUS] == OrderStatus.ORDER_RECEIVED
    assert not order.is_dirty


@pytest.mark.asyncio
async def test_save_is_idempotent(order):
    order.set(OrderField.TOKEN, "tok_1").set(OrderField.TRANSACTION_ID, "txn_1")
    await order.save()
    await order.save()
    await order.save()
    assert order.save_count == 1


def test_get_default_and_immutable_id(order):
    assert order.get("missing", "fallback") == "fallback"
    assert order.get(OrderField.TOTAL_REFUNDED) == Money.zero("USD")
    with pytest.raises(ValueError):
        order.set(OrderField.ID, "other")


@pytest.mark.asyncio
async def test_notes_keep_reason(order):
    await order.add_note("Refunded 1.00 USD via Manual Refund", "goodwill")
    await order.add_note("second")
    assert [n.reason for n in order.notes] == ["goodwill", ""]


@pytest.mark.asyncio
async def test_repository_lookup():
    repo = InMemoryOrderRepository()
    assert await repo.get_by_id("nope") is None
    stored = await repo.add(InMemoryOrder("o-1", total_price=Money.of("5", "USD")))
    assert await repo.get_by_id("o-1") is stored
