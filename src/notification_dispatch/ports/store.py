"""Notification store port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import datetime

    from ..delivery import (
        DeliveryStatusEvent,
        Notification,
        NotificationStatus,
        OrphanedWebhook,
    )


@runtime_checkable
class INotificationStore(Protocol):
    """
    Persistence for notifications and their delivery-status history.

    Implementations: InMemoryNotificationStore, SQLAlchemyNotificationStore.
    Only the DeliveryStatusTracker writes through this port.
    """

    async def create_notification(self, notification: Notification) -> None:
        """Persist a new notification."""
        ...

    async def get_notification_by_id(self, notification_id: str) -> Notification | None:
        ...

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
        """
        Atomically move *notification_id* from *expected_status* to *status*.

        ``sent_at``/``delivered_at`` are written only when given; a ``None``
        leaves the stored value untouched.

        Raises:
            NotificationNotFoundError: Unknown id.
            ConcurrentStatusUpdateError: Stored status differs from *expected_status*.
        """
        ...

    async def append_delivery_status_event(self, event: DeliveryStatusEvent) -> DeliveryStatusEvent:
        """Append an event and return it with its insertion ``sequence`` set."""
        ...

    async def list_delivery_status_events(self, notification_id: str) -> list[DeliveryStatusEvent]:
        """Events ordered by timestamp, ties broken by insertion order."""
        ...

    async def find_notification_by_provider_message_id(
        self, provider: str, provider_message_id: str
    ) -> Notification | None:
        ...

    async def append_orphaned_webhook(self, orphan: OrphanedWebhook) -> None:
        ...

    async def list_orphaned_webhooks(self, *, limit: int = 100) -> list[OrphanedWebhook]:
        """Most recently received first."""
        ...

    async def list_notifications(
        self,
        *,
        recipient_id: str | None = None,
        statuses: Collection[NotificationStatus] | None = None,
        limit: int = 20,
        offset: int = 0,
        oldest_first: bool = False,
    ) -> list[Notification]:
        """
        Notifications matching every given filter.

        Most recently created first, or oldest first with *oldest_first*.
        *offset* skips that many matches before *limit* applies.
        """
        ...
