"""Mutual exclusion keyed by an arbitrary string (the login e-mail)."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from loguru import logger
from redis.exceptions import LockError

from src.jellybridge.core.exceptions import LoginLockTimeoutError


class KeyedLock(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager[None]: ...


class InProcessKeyedLock:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._refs: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._refs[key] = self._refs.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._refs[key] -= 1
            if self._refs[key] == 0:
                del self._refs[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class RedisKeyedLock:
    """Cross-process variant backed by ``redis.asyncio`` locks."""

    def __init__(self, client, *, timeout: float, blocking_timeout: float, prefix: str = "jellybridge:login:"):
        self._client = client
        self._timeout = timeout
        self._blocking_timeout = blocking_timeout
        self._prefix = prefix

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._client.lock(
            f"{self._prefix}{key}",
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        if not await lock.acquire():
            raise LoginLockTimeoutError(
                f"Timed out after {self._blocking_timeout}s waiting for the login lock of {key}"
            )
        logger.debug("Acquired login lock for {}", key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Expired while held; another process may already own it
                logger.warning("Login lock for {} was lost before release: {}", key, e)
