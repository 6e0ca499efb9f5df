"""In-process keyed mutex with a bounded wait."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sdcat.domain.shared.error import LockTimeoutError

logger = logging.getLogger(__name__)


class KeyedLock:
    """One asyncio.Lock per key, created on demand and dropped when idle.

    Acquisition waits at most `timeout` seconds and then raises
    LockTimeoutError, so contention never blocks a caller indefinitely.
    """

    def __init__(self, timeout: float = 1.0) -> None:
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("Lock wait for %s exceeded %.2fs", key, self.timeout)
                raise LockTimeoutError(
                    f"Could not acquire write lock for {key} within {self.timeout}s"
                ) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)
