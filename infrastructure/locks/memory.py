"""进程内订单锁（asyncio），适用于单进程部署与测试"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from application.ports.locks import OrderLockTimeout


class InMemoryOrderLocks:
    """One asyncio.Lock per order id; entries are dropped once nobody holds or awaits them."""

    def __init__(self, blocking_timeout: Optional[float] = None) -> None:
        self.blocking_timeout = blocking_timeout
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, order_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(order_id, asyncio.Lock())
        self._waiters[order_id] = self._waiters.get(order_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.blocking_timeout)
            except asyncio.TimeoutError:
                raise OrderLockTimeout(order_id) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._waiters[order_id] -= 1
            if self._waiters[order_id] == 0:
                del self._waiters[order_id]
                self._locks.pop(order_id, None)

    def __len__(self) -> int:
        return len(self._locks)
