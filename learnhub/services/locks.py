"""Per-key mutual exclusion.

Read-modify-write sequences (lesson progress, review write plus rating
recompute, payment settlement) run under ``keyed_lock.hold(key)``. Two
implementations share one Protocol, selected at import time the same way
as the database engine:

  - InMemoryKeyedLock: one asyncio.Lock per key, enough for a single
    worker process (dev, tests).
  - RedisKeyedLock: a redis-py Lock, so every API process sharing the
    Redis instance sees the same critical section.

Keys in use:
    enrollment:{user_id}:{course_id}
    purchase:{user_id}:{course_id}
    course-rating:{course_id}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol, runtime_checkable

from learnhub.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyedLock(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager[None]:
        """Async context manager that owns ``key`` for its duration."""
        ...


class InMemoryKeyedLock:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

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
                # nobody waiting, drop it so the dict does not grow forever
                del self._users[key]
                del self._locks[key]

    def reset(self) -> None:
        self._locks.clear()
        self._users.clear()


class RedisKeyedLock:
    _PREFIX = "lock:"

    def __init__(
        self,
        redis_client,
        *,
        timeout_seconds: float = 30.0,
        blocking_timeout_seconds: float = 10.0,
    ) -> None:
        self._redis = redis_client
        self._timeout = timeout_seconds
        self._blocking_timeout = blocking_timeout_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        # timeout bounds how long a crashed holder can block others
        lock = self._redis.lock(
            f"{self._PREFIX}{key}",
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        async with lock:
            yield


if redis_pool is not None:
    keyed_lock: KeyedLock = RedisKeyedLock(redis_pool)
else:
    keyed_lock = InMemoryKeyedLock()
