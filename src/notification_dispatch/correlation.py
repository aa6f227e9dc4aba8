"""Correlation ID propagation for dispatch and webhook handling."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

_correlation_id: ContextVar[str | None] = ContextVar("notification_correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def ensure_correlation_id() -> str:
    """Return the current correlation ID, creating one for this context if unset."""
    current = _correlation_id.get()
    if current is None:
        current = generate_correlation_id()
        _correlation_id.set(current)
    return current
