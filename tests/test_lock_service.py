"""
Tests for the per-key lock services.
"""
import asyncio

import pytest

from storefront.domain.errors import LockTimeout
from storefront.services.lock_service import LocalLockService, RedisLockService, build_lock_service
from storefront.utils.settings import Settings


class FakeRedis:
    """Just enough of redis.asyncio.Redis for SET NX PX and the release script."""

    def __init__(self):
        self.data = {}
        self.closed = False

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.data.get(key) == token:
            del self.data[key]
            return 1
        return 0

    async def aclose(self):
        self.closed = True


async def _critical_section(locks, key, log, name):
    async with locks.hold(key):
        log.append(f"{name}:in")
        await asyncio.sleep(0.01)
        log.append(f"{name}:out")


class TestLocalLockService:
    def test_same_key_is_serialized(self):
        locks = LocalLockService()
        log = []

        async def scenario():
            await asyncio.gather(
                _critical_section(locks, "cart:u1", log, "a"),
                _critical_section(locks, "cart:u1", log, "b"),
            )

        asyncio.run(scenario())

        assert log in (["a:in", "a:out", "b:in", "b:out"], ["b:in", "b:out", "a:in", "a:out"])

    def test_different_keys_run_together(self):
        locks = LocalLockService()
        log = []

        async def scenario():
            await asyncio.gather(
                _critical_section(locks, "cart:u1", log, "a"),
                _critical_section(locks, "cart:u2", log, "b"),
            )

        asyncio.run(scenario())

        assert log[:2] == ["a:in", "b:in"]

    def test_locks_are_dropped_when_idle(self):
        locks = LocalLockService()

        async def scenario():
            async with locks.hold("order:1"):
                assert "order:1" in locks._locks

        asyncio.run(scenario())
        assert locks._locks == {}

    def test_lock_released_on_error(self):
        locks = LocalLockService()

        async def scenario():
            with pytest.raises(RuntimeError):
                async with locks.hold("cart:u1"):
                    raise RuntimeError("boom")
            async with locks.hold("cart:u1"):
                return True

        assert asyncio.run(scenario()) is True


class TestRedisLockService:
    def test_acquire_and_release(self):
        client = FakeRedis()
        locks = RedisLockService("redis://unused", client=client)

        async def scenario():
            async with locks.hold("cart:u1"):
                held = dict(client.data)
            return held

        held = asyncio.run(scenario())

        assert list(held) == ["storefront:lock:cart:u1"]
        assert client.data == {}

    def test_busy_lock_times_out(self):
        client = FakeRedis()
        client.data["storefront:lock:cart:u1"] = "someone-else"
        locks = RedisLockService("redis://unused", wait_seconds=0.05, poll_interval=0.01, client=client)

        async def scenario():
            async with locks.hold("cart:u1"):
                pass

        with pytest.raises(LockTimeout):
            asyncio.run(scenario())
        assert client.data["storefront:lock:cart:u1"] == "someone-else"

    def test_serializes_waiters(self):
        locks = RedisLockService("redis://unused", poll_interval=0.001, client=FakeRedis())
        log = []

        async def scenario():
            await asyncio.gather(
                _critical_section(locks, "order:1", log, "a"),
                _critical_section(locks, "order:1", log, "b"),
            )

        asyncio.run(scenario())

        assert log.index("a:out") < log.index("b:in") or log.index("b:out") < log.index("a:in")

    def test_close(self):
        client = FakeRedis()
        asyncio.run(RedisLockService("redis://unused", client=client).close())
        assert client.closed is True


def test_build_lock_service_defaults_to_local():
    assert isinstance(build_lock_service(Settings(lock_backend="local")), LocalLockService)
