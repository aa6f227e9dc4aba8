"""Delivery status tracker: the only writer of notification status."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from . import metrics
from .delivery import (
    DeliveryStatusEvent,
    EventDisposition,
    Notification,
    NotificationStatus,
    NotificationStatusView,
    OrphanedWebhook,
    SendOutcome,
    utcnow,
)
from .exceptions import NotificationNotFoundError
from .locking import InMemoryLockStrategy, hold
from .ports.locking import ILockStrategy
from .ports.store import INotificationStore
from .state_machine import is_forward
from .structured_logging import emit

logger = logging.getLogger(__name__)


class DeliveryStatusTracker:
    """
    Maintains the append-only status history of each notification and the
    current-status projection derived from it.

    Every transition runs under a per-notification lock
    (``notification:<id>``) and is additionally guarded by the store's
    compare-and-swap on the current status. Events that would move a
    notification backwards, or repeat its current status, are still
    recorded for audit with disposition ``ignored`` / ``duplicate``; their
    ``status`` is the unchanged current status and the status they asked for
    is kept in ``metadata["requested_status"]``.
    """

    def __init__(
        self,
        store: INotificationStore,
        lock_strategy: ILockStrategy | None = None,
        *,
        lock_timeout: float = 10.0,
    ) -> None:
        self.store = store
        self.locks = lock_strategy or InMemoryLockStrategy()
        self.lock_timeout = lock_timeout

    async def register(self, notification: Notification) -> Notification:
        """Persist a freshly created PENDING notification."""
        await self.store.create_notification(notification)
        emit(
            logger,
            "notification.registered",
            notification_id=notification.id,
            channel=notification.channel.value,
            template=notification.template,
        )
        return notification

    async def record_send_outcome(
        self, notification_id: str, outcome: SendOutcome
    ) -> DeliveryStatusEvent:
        """
        Record the synchronous result of a channel send as exactly one event
        with ``attempt=1``.

        Success moves the notification to SENT and stamps ``sent_at``;
        failure moves it to FAILED with the aggregated error detail. If a
        webhook has already advanced the notification further, the status is
        left alone (``sent_at`` is still stamped on success).
        """
        target = NotificationStatus.SENT if outcome.ok else NotificationStatus.FAILED
        metadata: dict[str, Any] = {
            "attempts": [
                {"provider": a.provider, "outcome": a.outcome} for a in outcome.attempts
            ],
        }
        if not outcome.ok and outcome.error_kind is not None:
            metadata["error_kind"] = outcome.error_kind.value

        async with hold(self.locks, _lock_key(notification_id), timeout=self.lock_timeout):
            current = await self._require(notification_id)
            now = utcnow()
            sent_at = now if outcome.ok and current.sent_at is None else None

            if is_forward(current.status, target):
                disposition = EventDisposition.APPLIED
                event_status = target
                await self.store.update_notification_status(
                    notification_id,
                    target,
                    expected_status=current.status,
                    updated_at=now,
                    sent_at=sent_at,
                )
            else:
                disposition = _audit_disposition(current.status, target)
                event_status = current.status
                metadata["requested_status"] = target.value
                if sent_at is not None:
                    await self.store.update_notification_status(
                        notification_id,
                        current.status,
                        expected_status=current.status,
                        updated_at=now,
                        sent_at=sent_at,
                    )

            event = await self.store.append_delivery_status_event(
                DeliveryStatusEvent(
                    id=str(uuid.uuid4()),
                    notification_id=notification_id,
                    status=event_status,
                    provider=outcome.provider,
                    attempt=1,
                    timestamp=now,
                    provider_message_id=outcome.provider_message_id,
                    error_message=None if outcome.ok else outcome.error_detail,
                    metadata=metadata,
                    disposition=disposition,
                )
            )

        self._after_record(current.status, target, event)
        return event

    async def record_webhook_event(
        self,
        notification_id: str,
        status: NotificationStatus,
        provider_message_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        provider: str,
    ) -> DeliveryStatusEvent:
        """
        Merge one provider-reported status into the history.

        Idempotent: replaying the same callback appends a ``duplicate`` audit
        event and leaves the notification untouched.
        """
        event_metadata = dict(metadata or {})

        async with hold(self.locks, _lock_key(notification_id), timeout=self.lock_timeout):
            current = await self._require(notification_id)
            history = await self.store.list_delivery_status_events(notification_id)
            previous_attempt = max((e.attempt for e in history), default=0)
            now = utcnow()

            if is_forward(current.status, status):
                disposition = EventDisposition.APPLIED
                event_status = status
                attempt = previous_attempt + 1
                delivered_at = (
                    now
                    if status is NotificationStatus.DELIVERED and current.delivered_at is None
                    else None
                )
                sent_at = (
                    now
                    if status is NotificationStatus.SENT and current.sent_at is None
                    else None
                )
                await self.store.update_notification_status(
                    notification_id,
                    status,
                    expected_status=current.status,
                    updated_at=now,
                    sent_at=sent_at,
                    delivered_at=delivered_at,
                )
            else:
                disposition = _audit_disposition(current.status, status)
                event_status = current.status
                attempt = previous_attempt
                event_metadata["requested_status"] = status.value

            event = await self.store.append_delivery_status_event(
                DeliveryStatusEvent(
                    id=str(uuid.uuid4()),
                    notification_id=notification_id,
                    status=event_status,
                    provider=provider,
                    attempt=attempt,
                    timestamp=now,
                    provider_message_id=provider_message_id,
                    error_message=event_metadata.get("error_message")
                    if status is NotificationStatus.FAILED
                    else None,
                    metadata=event_metadata,
                    disposition=disposition,
                )
            )

        self._after_record(current.status, status, event)
        return event

    async def record_orphan(self, orphan: OrphanedWebhook) -> None:
        await self.store.append_orphaned_webhook(orphan)
        emit(
            logger,
            "webhook.orphaned",
            logging.WARNING,
            provider=orphan.provider,
            provider_message_id=orphan.provider_message_id,
            provider_status=orphan.provider_status,
            notification_id=orphan.notification_id,
            reason=orphan.reason,
        )

    async def resolve(self, provider: str, provider_message_id: str) -> str | None:
        """Map a provider's message id back to the notification id, if known."""
        notification = await self.store.find_notification_by_provider_message_id(
            provider, provider_message_id
        )
        return notification.id if notification else None

    async def get_status(self, notification_id: str) -> NotificationStatusView:
        notification = await self._require(notification_id)
        history = await self.store.list_delivery_status_events(notification_id)
        return NotificationStatusView(notification=notification, history=history)

    async def recent(
        self, *, recipient_id: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[Notification]:
        return await self.store.list_notifications(
            recipient_id=recipient_id, limit=limit, offset=offset
        )

    async def pending(
        self, *, limit: int = 100, include_failed: bool = False
    ) -> list[Notification]:
        """
        Notifications that never got a send outcome recorded, oldest first.

        With *include_failed* the FAILED ones are returned too, as candidates
        for a new dispatch.
        """
        statuses = [NotificationStatus.PENDING]
        if include_failed:
            statuses.append(NotificationStatus.FAILED)
        return await self.store.list_notifications(
            statuses=statuses, limit=limit, oldest_first=True
        )

    async def _require(self, notification_id: str) -> Notification:
        notification = await self.store.get_notification_by_id(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def _after_record(
        self,
        previous: NotificationStatus,
        requested: NotificationStatus,
        event: DeliveryStatusEvent,
    ) -> None:
        if event.applied:
            metrics.count_transition(event.status.value)
        emit(
            logger,
            "notification.status_event",
            notification_id=event.notification_id,
            previous_status=previous.value,
            requested_status=requested.value,
            status=event.status.value,
            disposition=event.disposition.value,
            provider=event.provider,
            attempt=event.attempt,
        )


def _lock_key(notification_id: str) -> str:
    return f"notification:{notification_id}"


def _audit_disposition(
    current: NotificationStatus, requested: NotificationStatus
) -> EventDisposition:
    if current is requested:
        return EventDisposition.DUPLICATE
    return EventDisposition.IGNORED
