"""ILockStrategy: per-resource pessimistic locking port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ILockStrategy(Protocol):
    """
    Serializes read-then-write sequences on a single resource.

    The tracker locks ``notification:<id>`` around every status transition;
    contention is scoped to one notification, there is no global lock.
    Implementations may be in-process (asyncio) or distributed.
    """

    async def acquire(self, resource: str, *, timeout: float = 10.0) -> str:
        """
        Acquire the lock for *resource*.

        Returns:
            A token required for :meth:`release`.

        Raises:
            LockAcquisitionError: If the lock is not obtained within *timeout*.
        """
        ...

    async def release(self, resource: str, token: str) -> None:
        """Release a previously acquired lock."""
        ...
