"""In-process lock strategy keyed by resource name."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from uuid import uuid4

from .exceptions import LockAcquisitionError
from .ports.locking import ILockStrategy

logger = logging.getLogger(__name__)


@dataclass
class _LockState:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    token: str | None = None
    holders: int = 0  # current holder plus waiters


class InMemoryLockStrategy(ILockStrategy):
    """
    asyncio implementation of :class:`ILockStrategy` for a single process.

    Waiters are served in FIFO order (``asyncio.Lock`` semantics). Per-resource
    state is dropped as soon as nobody holds or waits for it, so the table
    only grows with the number of notifications in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _LockState] = {}

    async def acquire(self, resource: str, *, timeout: float = 10.0) -> str:
        state = self._locks.get(resource)
        if state is None:
            state = self._locks[resource] = _LockState()
        state.holders += 1

        try:
            await asyncio.wait_for(state.lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError as err:
            self._forget(resource, state)
            logger.warning("Lock acquisition on %s timed out after %.1fs", resource, timeout)
            raise LockAcquisitionError(resource, timeout) from err
        except BaseException:
            self._forget(resource, state)
            raise

        token = str(uuid4())
        state.token = token
        return token

    async def release(self, resource: str, token: str) -> None:
        state = self._locks.get(resource)
        if state is None or state.token != token:
            logger.warning("Attempted to release invalid or expired lock: %s", resource)
            return
        state.token = None
        state.lock.release()
        self._forget(resource, state)

    def _forget(self, resource: str, state: _LockState) -> None:
        state.holders -= 1
        if state.holders <= 0 and self._locks.get(resource) is state:
            del self._locks[resource]

    def __len__(self) -> int:
        return len(self._locks)


@contextlib.asynccontextmanager
async def hold(strategy: ILockStrategy, resource: str, *, timeout: float) -> AsyncIterator[None]:
    """``async with hold(locks, "notification:123", timeout=5): ...``"""
    token = await strategy.acquire(resource, timeout=timeout)
    try:
        yield
    finally:
        await strategy.release(resource, token)
