import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import redis.asyncio as redis

from storefront.domain.errors import LockTimeout
from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry

logger = get_logger(__name__)

# compare-and-delete: only the holder's token may release the key
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LocalLockService:
    """
    Per-key asyncio locks for a single-process server.

    Every cart/order read-modify-write runs inside hold(key), so two requests
    touching the same cart are serialized while other carts proceed.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    async def close(self) -> None:
        return None


class RedisLockService:
    """
    -key lock shared by several workers (SET NX PX)
    -release through lua, atomically
    -waits up to wait_seconds, then LockTimeout
    """

    def __init__(
        self,
        url: str,
        ttl_seconds: int = 30,
        wait_seconds: float = 10.0,
        poll_interval: float = 0.05,
        client=None,
    ):
        self.redis = client or redis.Redis.from_url(url, decode_responses=True)
        self.ttl_ms = int(ttl_seconds * 1000)
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    @staticmethod
    def _key(key: str) -> str:
        return f"storefront:lock:{key}"

    @redis_retry()
    async def acquire(self, key: str, token: str) -> bool:
        # SET storefront:lock:cart:guest "<token>" NX PX 30000
        return bool(await self.redis.set(self._key(key), token, nx=True, px=self.ttl_ms))

    @redis_retry()
    async def release(self, key: str, token: str) -> bool:
        res = await self.redis.eval(_RELEASE_LUA, 1, self._key(key), token)
        return bool(res)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        token = str(uuid.uuid4())
        deadline = time.monotonic() + self.wait_seconds

        while not await self.acquire(key, token):
            if time.monotonic() >= deadline:
                logger.warning(f"Timed out waiting for lock {key}")
                raise LockTimeout(f"lock {key} is busy")
            await asyncio.sleep(self.poll_interval)

        try:
            yield
        finally:
            if not await self.release(key, token):
                # ttl ran out while we were working; someone else may own it now
                logger.warning(f"Lock {key} expired before release")

    async def close(self) -> None:
        await self.redis.aclose()


def build_lock_service(settings):
    if settings.lock_backend == "redis":
        logger.info("Using redis locks")
        return RedisLockService(
            settings.redis_url,
            ttl_seconds=settings.lock_ttl_seconds,
            wait_seconds=settings.lock_wait_seconds,
        )
    return LocalLockService()
