"""
Mutual-exclusion locks with a bounded acquisition wait.

``LocalLock`` serializes callers inside one process; ``RedisLock`` shares the
lock between worker processes. The board uses two independent instances: a
document lock for writes and a generation lock for the Gemini proxy.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Protocol

import redis
from redis import exceptions as redis_exceptions

from sheetboard.errors import BoardError, BusyError, StorageError

logger = logging.getLogger(__name__)


class BoardLock(Protocol):
    def acquire(self, timeout: float) -> bool:
        ...

    def release(self) -> None:
        ...


@contextmanager
def held(lock: BoardLock, timeout: float) -> Iterator[None]:
    """
    Hold ``lock`` for the block; raise BusyError if it is not free in time.
    A lock backend that fails outright (e.g. Redis unreachable) raises
    StorageError.
    """
    try:
        acquired = lock.acquire(timeout)
    except BoardError:
        raise
    except Exception as e:
        logger.exception("Lock backend failed during acquire")
        raise StorageError(f"Lock backend unavailable: {e}") from e
    if not acquired:
        raise BusyError()
    try:
        yield
    finally:
        lock.release()


@dataclass
class LocalLock:
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=max(timeout, 0))

    def release(self) -> None:
        self._lock.release()


@dataclass
class RedisLock:
    """Redis-backed lock; ``lease_seconds`` bounds how long a crashed holder blocks others."""

    url: str
    name: str
    lease_seconds: float = 60.0

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)
        self._lock = self.client.lock(self.name, timeout=self.lease_seconds)

    def acquire(self, timeout: float) -> bool:
        return bool(self._lock.acquire(blocking=True, blocking_timeout=timeout))

    def release(self) -> None:
        try:
            self._lock.release()
        except redis_exceptions.LockError:
            logger.warning("Lock %s lease expired before release", self.name)
