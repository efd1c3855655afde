import asyncio

import pytest

from application.ports.locks import OrderLockTimeout
from infrastructure.locks.memory import InMemoryOrderLocks
from infrastructure.locks.redis import RedisOrderLocks


@pytest.mark.asyncio
async def test_same_order_is_serialized():
    locks = InMemoryOrderLocks()
    trace = []

    async def worker(name):
        async with locks.lock("o-1"):
            trace.append(f"{name}-in")
            await asyncio.sleep(0.01)
            trace.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert trace in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_different_orders_do_not_contend():
    locks = InMemoryOrderLocks(blocking_timeout=0.05)
    async with locks.lock("o-1"):
        async with locks.lock("o-2"):
            assert len(locks) == 2


@pytest.mark.asyncio
async def test_blocking_timeout_raises():
    locks = InMemoryOrderLocks(blocking_timeout=0.01)
    async with locks.lock("o-1"):
        with pytest.raises(OrderLockTimeout):
            async with locks.lock("o-1"):
                pass
    assert len(locks) == 0


class _FakeRedisLock:
    def __init__(self, owner, name, acquired):
        self.owner = owner
        self.name = name
        self.acquired = acquired

    async def acquire(self):
        return self.acquired

    async def release(self):
        self.owner.released.append(self.name)


class _FakeRedis:
    def __init__(self, acquired=True):
        self.acquired = acquired
        self.requested = []
        self.released = []

    def lock(self, name, timeout=None, blocking_timeout=None):
        self.requested.append((name, timeout, blocking_timeout))
        return _FakeRedisLock(self, name, self.acquired)


@pytest.mark.asyncio
async def test_redis_lock_uses_namespaced_key_and_releases():
    redis = _FakeRedis()
    locks = RedisOrderLocks(redis, namespace="gw:", timeout=60, blocking_timeout=5)
    async with locks.lock("o-9"):
        pass
    assert redis.requested == [("gw:lock:order:o-9", 60, 5)]
    assert redis.released == ["gw:lock:order:o-9"]


@pytest.mark.asyncio
async def test_redis_lock_not_acquired_raises():
    locks = RedisOrderLocks(_FakeRedis(acquired=False))
    with pytest.raises(OrderLockTimeout):
        async with locks.lock("o-9"):
            pass
