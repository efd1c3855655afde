"""
Per-order lock port.

Every operation that reads and then writes an order runs under the order's
lock, so two refunds cannot lose an update to the refunded total and one
authorization cannot be captured twice. Different orders never contend.
"""
from __future__ import annotations

from typing import AsyncContextManager, Protocol

from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode


class OrderLockManager(Protocol):
    def lock(self, order_id: str) -> AsyncContextManager[None]: ...


class OrderLockTimeout(BusinessException):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(
            code=BusinessCode.SERVICE_UNAVAILABLE,
            message=f"Timed out waiting for lock on order {order_id}",
            error_type="OrderLockTimeout",
            details={"order_id": order_id},
        )


__all__ = ["OrderLockManager", "OrderLockTimeout"]
