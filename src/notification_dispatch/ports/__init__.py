"""Port definitions for notification dispatch."""

from __future__ import annotations

from .adapter import IProviderAdapter
from .locking import ILockStrategy
from .renderer import ITemplateRenderer
from .store import INotificationStore

__all__ = [
    "ILockStrategy",
    "INotificationStore",
    "IProviderAdapter",
    "ITemplateRenderer",
]
