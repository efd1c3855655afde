"""
Redis 分布式订单锁 - 多进程/多实例部署时串行化同一订单的操作
"""
from __future__ import annotations

import socket
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis import asyncio as aioredis
from redis.exceptions import LockError, RedisError

from application.ports.locks import OrderLockTimeout
from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)


class RedisOrderLocks:
    def __init__(
        self,
        client: aioredis.Redis,
        *,
        namespace: str = "",
        timeout: int = 60,
        blocking_timeout: int = 30,
    ) -> None:
        self._client = client
        self._namespace = namespace.strip(":")
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    def _format_key(self, order_id: str) -> str:
        key = f"lock:order:{order_id}"
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    @asynccontextmanager
    async def lock(self, order_id: str) -> AsyncIterator[None]:
        """
        分布式锁上下文管理器

        Args:
            order_id: 订单ID
        """
        lock_key = self._format_key(order_id)
        lock = self._client.lock(
            lock_key,
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        acquired = await lock.acquire()
        if not acquired:
            raise OrderLockTimeout(order_id)
        try:
            yield
        finally:
            try:
                await lock.release()
            except (LockError, RedisError) as e:
                # Expired locks cannot be released; the operation itself already finished
                logger.error("order_lock_release_failed", lock_key=lock_key, error=str(e))


def create_redis_client(url: str) -> aioredis.Redis:
    keepalive_opts = {}
    if hasattr(socket, "TCP_KEEPIDLE") and hasattr(socket, "TCP_KEEPINTVL") and hasattr(socket, "TCP_KEEPCNT"):
        keepalive_opts = {
            socket.TCP_KEEPIDLE: 1,
            socket.TCP_KEEPINTVL: 1,
            socket.TCP_KEEPCNT: 3,
        }
    return aioredis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis.max_connections,
        socket_keepalive=True,
        socket_keepalive_options=keepalive_opts,
    )
