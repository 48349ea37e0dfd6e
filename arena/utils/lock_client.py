"""Lock client abstraction - Redis or in-memory fallback."""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class LockTimeoutError(RuntimeError):
    """Raised when a named lock could not be acquired in time."""


class LockClient:
    """Named async locks - uses Redis if available, else in-process asyncio locks.

    The in-memory backend only serialises coroutines within one process, which
    is enough for single-instance deployments and tests.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.backend = "memory"
        self._memory_locks: dict[str, asyncio.Lock] = {}

        if redis_url:
            try:
                import redis.asyncio as redis_asyncio
                self.redis = redis_asyncio.from_url(redis_url, decode_responses=True)
                self.backend = "redis"
                logger.info("Using Redis for locks")
            except Exception as e:
                logger.warning(f"Redis not available, using in-memory locks: {e}")
        else:
            logger.info("Using in-memory locks (Redis URL not provided)")

    def _get_memory_lock(self, name: str) -> asyncio.Lock:
        lock = self._memory_locks.get(name)
        if lock is None:
            lock = asyncio.Lock()
            self._memory_locks[name] = lock
        return lock

    @asynccontextmanager
    async def lock(self, name: str, timeout: float = 10):
        """Hold the named lock for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within ``timeout`` seconds
        """
        if self.backend == "redis":
            redis_lock = self.redis.lock(f"lock:{name}", timeout=timeout, blocking_timeout=timeout)
            acquired = await redis_lock.acquire()
            if not acquired:
                raise LockTimeoutError(f"Could not acquire lock {name} within {timeout}s")
            try:
                yield
            finally:
                try:
                    await redis_lock.release()
                except Exception as e:
                    # Lock may have expired while the block ran
                    logger.warning(f"Failed to release lock {name}: {e}")
            return

        memory_lock = self._get_memory_lock(name)
        try:
            await asyncio.wait_for(memory_lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise LockTimeoutError(f"Could not acquire lock {name} within {timeout}s") from exc
        try:
            yield
        finally:
            memory_lock.release()
            if not memory_lock.locked() and not getattr(memory_lock, "_waiters", None):
                self._memory_locks.pop(name, None)
