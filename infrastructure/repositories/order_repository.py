"""
In-memory order store.

Orders belong to the host commerce system; this adapter stands in for it in
single-process deployments and tests. ``save()`` copies staged fields into
the persisted snapshot, so repeating it with unchanged fields is a no-op.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from core.logging_config import get_logger
from domain.payment.entity import OrderField, OrderNote, OrderStatus
from domain.payment.money import Money
from domain.payment.repository import OrderRecord, OrderRepository


logger = get_logger(__name__)


class InMemoryOrder(OrderRecord):
    def __init__(
        self,
        order_id: str,
        *,
        total_price: Money,
        gateway: str = "sample",
        status: OrderStatus = OrderStatus.AWAITING_PAYMENT,
        **fields: Any,
    ) -> None:
        self._id = order_id
        initial = {
            OrderField.ID: order_id,
            OrderField.STATUS: status,
            OrderField.GATEWAY: gateway,
            OrderField.TOTAL_PRICE: total_price,
            OrderField.TOTAL_REFUNDED: Money.zero(total_price.currency),
            OrderField.TRANSACTION_ID: None,
            OrderField.TOKEN: None,
            OrderField.CAPTURED: False,
            OrderField.PENDING_OPERATION: None,
        }
        initial.update(fields)
        self._fields: Dict[str, Any] = dict(initial)
        self._persisted: Dict[str, Any] = dict(initial)
        self._notes: List[OrderNote] = []
        self.save_count = 0  # number of saves that changed persisted state

    @property
    def id(self) -> str:
        return self._id

    def get(self, field: str, default: Any = None) -> Any:
        value = self._fields.get(field)
        return default if value is None else value

    def set(self, field: str, value: Any) -> "InMemoryOrder":
        if field == OrderField.ID:
            raise ValueError("Order id is immutable")
        self._fields[field] = value
        return self

    async def save(self) -> None:
        if self._fields == self._persisted:
            return
        self._persisted = dict(self._fields)
        self.save_count += 1

    async def add_note(self, text: str, reason: str = "") -> None:
        self._notes.append(OrderNote(text=text, reason=reason or ""))

    @property
    def notes(self) -> Sequence[OrderNote]:
        return tuple(self._notes)

    @property
    def persisted(self) -> Dict[str, Any]:
        """Snapshot of the last saved state."""
        return dict(self._persisted)

    @property
    def is_dirty(self) -> bool:
        return self._fields != self._persisted


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, orders: Optional[Sequence[InMemoryOrder]] = None) -> None:
        self._orders: Dict[str, InMemoryOrder] = {o.id: o for o in orders or ()}
        self._lock = asyncio.Lock()

    async def get_by_id(self, order_id: str) -> Optional[InMemoryOrder]:
        return self._orders.get(order_id)

    async def add(self, order: InMemoryOrder) -> InMemoryOrder:
        async with self._lock:
            self._orders[order.id] = order
        logger.info("order_registered", order_id=order.id)
        return order
