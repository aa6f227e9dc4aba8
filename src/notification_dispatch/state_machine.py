"""Delivery lifecycle ordering.

::

    PENDING -> SENT -> DELIVERED -> OPENED -> CLICKED
       |         |
       +---------+--> FAILED

Providers may skip stages (a ``clicked`` callback implies the message was
opened), so a transition is accepted whenever the target ranks strictly
higher than the current state. ``FAILED`` only follows ``PENDING`` or
``SENT``; nothing follows ``FAILED`` or ``CLICKED``.
"""

from __future__ import annotations

from .delivery import NotificationStatus

_RANK: dict[NotificationStatus, int] = {
    NotificationStatus.PENDING: 0,
    NotificationStatus.SENT: 1,
    NotificationStatus.DELIVERED: 2,
    NotificationStatus.OPENED: 3,
    NotificationStatus.CLICKED: 4,
}

_FAILABLE = frozenset({NotificationStatus.PENDING, NotificationStatus.SENT})

TERMINAL_STATES = frozenset({NotificationStatus.FAILED, NotificationStatus.CLICKED})


def is_forward(current: NotificationStatus, target: NotificationStatus) -> bool:
    """Return True if moving from *current* to *target* advances the lifecycle."""
    if current is NotificationStatus.FAILED:
        return False
    if target is NotificationStatus.FAILED:
        return current in _FAILABLE
    return _RANK[target] > _RANK[current]


def precedes_or_equals(earlier: NotificationStatus, later: NotificationStatus) -> bool:
    """Partial order check used to validate recorded histories."""
    return earlier is later or is_forward(earlier, later)


def is_monotonic(statuses: list[NotificationStatus]) -> bool:
    """True if a sequence of statuses never moves backwards."""
    return all(precedes_or_equals(a, b) for a, b in zip(statuses, statuses[1:]))
