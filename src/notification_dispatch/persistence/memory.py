"""In-memory notification store for tests and single-process deployments."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Collection
from dataclasses import replace
from datetime import datetime

from ..delivery import (
    DeliveryStatusEvent,
    Notification,
    NotificationStatus,
    OrphanedWebhook,
)
from ..exceptions import ConcurrentStatusUpdateError, NotificationNotFoundError, PersistenceError
from ..ports.store import INotificationStore


class InMemoryNotificationStore(INotificationStore):
    """
    Dict-backed :class:`INotificationStore`.

    Every mutation runs under one ``asyncio.Lock`` so compare-and-swap and
    sequence assignment are atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._notifications: dict[str, Notification] = {}
        self._events: dict[str, list[DeliveryStatusEvent]] = {}
        self._by_provider_message_id: dict[tuple[str, str], str] = {}
        self.orphans: list[OrphanedWebhook] = []
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create_notification(self, notification: Notification) -> None:
        async with self._lock:
            if notification.id in self._notifications:
                raise PersistenceError(f"Notification {notification.id} already exists")
            self._notifications[notification.id] = notification
            self._events[notification.id] = []

    async def get_notification_by_id(self, notification_id: str) -> Notification | None:
        return self._notifications.get(notification_id)

    async def update_notification_status(
        self,
        notification_id: str,
        status: NotificationStatus,
        *,
        expected_status: NotificationStatus,
        updated_at: datetime,
        sent_at: datetime | None = None,
        delivered_at: datetime | None = None,
    ) -> Notification:
        async with self._lock:
            current = self._notifications.get(notification_id)
            if current is None:
                raise NotificationNotFoundError(notification_id)
            if current.status is not expected_status:
                raise ConcurrentStatusUpdateError(
                    notification_id, expected_status.value, current.status.value
                )
            updated = replace(
                current,
                status=status,
                updated_at=updated_at,
                sent_at=sent_at if sent_at is not None else current.sent_at,
                delivered_at=delivered_at if delivered_at is not None else current.delivered_at,
            )
            self._notifications[notification_id] = updated
            return updated

    async def append_delivery_status_event(self, event: DeliveryStatusEvent) -> DeliveryStatusEvent:
        async with self._lock:
            if event.notification_id not in self._notifications:
                raise NotificationNotFoundError(event.notification_id)
            stored = replace(event, sequence=next(self._sequence))
            self._events[event.notification_id].append(stored)
            if stored.provider_message_id:
                self._by_provider_message_id.setdefault(
                    (stored.provider, stored.provider_message_id), stored.notification_id
                )
            return stored

    async def list_delivery_status_events(self, notification_id: str) -> list[DeliveryStatusEvent]:
        events = self._events.get(notification_id, [])
        return sorted(events, key=lambda e: (e.timestamp, e.sequence))

    async def find_notification_by_provider_message_id(
        self, provider: str, provider_message_id: str
    ) -> Notification | None:
        notification_id = self._by_provider_message_id.get((provider, provider_message_id))
        if notification_id is None:
            return None
        return self._notifications.get(notification_id)

    async def append_orphaned_webhook(self, orphan: OrphanedWebhook) -> None:
        async with self._lock:
            self.orphans.append(orphan)

    async def list_orphaned_webhooks(self, *, limit: int = 100) -> list[OrphanedWebhook]:
        return sorted(self.orphans, key=lambda o: o.received_at, reverse=True)[:limit]

    async def list_notifications(
        self,
        *,
        recipient_id: str | None = None,
        statuses: Collection[NotificationStatus] | None = None,
        limit: int = 20,
        offset: int = 0,
        oldest_first: bool = False,
    ) -> list[Notification]:
        items = [
            n
            for n in self._notifications.values()
            if (recipient_id is None or n.recipient.recipient_id == recipient_id)
            and (statuses is None or n.status in statuses)
        ]
        items.sort(key=lambda n: n.created_at, reverse=not oldest_first)
        return items[offset : offset + limit]

    def clear(self) -> None:
        """Clear all state (for test isolation)."""
        self._notifications.clear()
        self._events.clear()
        self._by_provider_message_id.clear()
        self.orphans.clear()
