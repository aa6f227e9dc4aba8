"""SQLAlchemy-backed notification persistence."""

from __future__ import annotations

from .models import (
    DeliveryStatusEventModel,
    JSONType,
    NotificationBase,
    NotificationModel,
    OrphanedWebhookModel,
)
from .store import SQLAlchemyNotificationStore

__all__ = [
    "DeliveryStatusEventModel",
    "JSONType",
    "NotificationBase",
    "NotificationModel",
    "OrphanedWebhookModel",
    "SQLAlchemyNotificationStore",
]
