"""订单锁对外暴露的接口"""
from __future__ import annotations

from application.ports.locks import OrderLockManager
from core.config import settings
from core.settings import gateway_settings

from .memory import InMemoryOrderLocks


def get_order_locks() -> OrderLockManager:
    """Redis-backed locks when REDIS__URL is configured, otherwise in-process locks."""
    if settings.redis.url:
        from .redis import RedisOrderLocks, create_redis_client

        return RedisOrderLocks(
            create_redis_client(settings.redis.url),
            namespace=settings.redis.namespace,
            timeout=gateway_settings.lock.timeout,
            blocking_timeout=gateway_settings.lock.blocking_timeout,
        )
    return InMemoryOrderLocks(blocking_timeout=gateway_settings.lock.blocking_timeout)


__all__ = ["InMemoryOrderLocks", "get_order_locks"]
