"""
SQLAlchemy implementation of the notification store.

Each operation runs in its own short transaction obtained from an
``async_sessionmaker``. Status changes use a conditional ``UPDATE ... WHERE
status = :expected`` so concurrent writers in other processes are detected
even without a shared lock.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...delivery import (
    DeliveryStatusEvent,
    Notification,
    NotificationStatus,
    OrphanedWebhook,
    Recipient,
    RenderedContent,
)
from ...exceptions import (
    ConcurrentStatusUpdateError,
    NotificationNotFoundError,
    PersistenceError,
)
from ...ports.store import INotificationStore
from .models import DeliveryStatusEventModel, NotificationModel, OrphanedWebhookModel


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SQLAlchemyNotificationStore(INotificationStore):
    """:class:`INotificationStore` over async SQLAlchemy 2.0."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_notification(self, notification: Notification) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(self._to_model(notification))
        except IntegrityError as e:
            raise PersistenceError(f"Notification {notification.id} already exists") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create notification {notification.id}: {e}") from e

    async def get_notification_by_id(self, notification_id: str) -> Notification | None:
        try:
            async with self._session_factory() as session:
                model = await session.get(NotificationModel, notification_id)
                return self._to_notification(model) if model else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load notification {notification_id}: {e}") from e

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
        values: dict[str, object] = {"status": status, "updated_at": updated_at}
        if sent_at is not None:
            values["sent_at"] = sent_at
        if delivered_at is not None:
            values["delivered_at"] = delivered_at

        try:
            async with self._session_factory() as session, session.begin():
                stmt = (
                    update(NotificationModel)
                    .where(
                        NotificationModel.id == notification_id,
                        NotificationModel.status == expected_status,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                result = await session.execute(stmt)
                # CursorResult.rowcount; Result type stubs may not expose it
                updated = int(getattr(result, "rowcount", 0) or 0)
                model = await session.get(NotificationModel, notification_id, populate_existing=True)
                if model is None:
                    raise NotificationNotFoundError(notification_id)
                if updated == 0:
                    raise ConcurrentStatusUpdateError(
                        notification_id, expected_status.value, model.status.value
                    )
                return self._to_notification(model)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update notification {notification_id}: {e}") from e

    async def append_delivery_status_event(self, event: DeliveryStatusEvent) -> DeliveryStatusEvent:
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(NotificationModel, event.notification_id) is None:
                    raise NotificationNotFoundError(event.notification_id)
                model = DeliveryStatusEventModel(
                    id=event.id,
                    notification_id=event.notification_id,
                    status=event.status,
                    provider=event.provider,
                    provider_message_id=event.provider_message_id,
                    error_message=event.error_message,
                    attempt=event.attempt,
                    timestamp=event.timestamp,
                    disposition=event.disposition,
                    metadata_=dict(event.metadata),
                )
                session.add(model)
                await session.flush()
                return replace(event, sequence=model.seq)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to append status event for {event.notification_id}: {e}"
            ) from e

    async def list_delivery_status_events(self, notification_id: str) -> list[DeliveryStatusEvent]:
        stmt = (
            select(DeliveryStatusEventModel)
            .where(DeliveryStatusEventModel.notification_id == notification_id)
            .order_by(DeliveryStatusEventModel.timestamp, DeliveryStatusEventModel.seq)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [self._to_event(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list events for {notification_id}: {e}") from e

    async def find_notification_by_provider_message_id(
        self, provider: str, provider_message_id: str
    ) -> Notification | None:
        stmt = (
            select(NotificationModel)
            .join(
                DeliveryStatusEventModel,
                DeliveryStatusEventModel.notification_id == NotificationModel.id,
            )
            .where(
                DeliveryStatusEventModel.provider == provider,
                DeliveryStatusEventModel.provider_message_id == provider_message_id,
            )
            .order_by(DeliveryStatusEventModel.seq)
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                model = result.scalars().first()
                return self._to_notification(model) if model else None
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to resolve {provider} message {provider_message_id}: {e}"
            ) from e

    async def append_orphaned_webhook(self, orphan: OrphanedWebhook) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    OrphanedWebhookModel(
                        id=orphan.id,
                        provider=orphan.provider,
                        provider_message_id=orphan.provider_message_id,
                        provider_status=orphan.provider_status,
                        reason=orphan.reason,
                        notification_id=orphan.notification_id,
                        received_at=orphan.received_at,
                        payload=dict(orphan.payload),
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store orphaned webhook {orphan.id}: {e}") from e

    async def list_orphaned_webhooks(self, *, limit: int = 100) -> list[OrphanedWebhook]:
        stmt = (
            select(OrphanedWebhookModel)
            .order_by(OrphanedWebhookModel.received_at.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                OrphanedWebhook(
                    id=m.id,
                    provider=m.provider,
                    provider_message_id=m.provider_message_id,
                    provider_status=m.provider_status,
                    reason=m.reason,
                    notification_id=m.notification_id,
                    received_at=_aware(m.received_at) or m.received_at,
                    payload=dict(m.payload or {}),
                )
                for m in result.scalars().all()
            ]

    async def list_notifications(
        self,
        *,
        recipient_id: str | None = None,
        statuses: Collection[NotificationStatus] | None = None,
        limit: int = 20,
        offset: int = 0,
        oldest_first: bool = False,
    ) -> list[Notification]:
        stmt = select(NotificationModel)
        if recipient_id is not None:
            stmt = stmt.where(NotificationModel.recipient_id == recipient_id)
        if statuses is not None:
            stmt = stmt.where(NotificationModel.status.in_(list(statuses)))
        created = NotificationModel.created_at
        order = created.asc() if oldest_first else created.desc()
        stmt = stmt.order_by(order).offset(offset).limit(limit)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [self._to_notification(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list notifications: {e}") from e

    @staticmethod
    def _to_model(notification: Notification) -> NotificationModel:
        return NotificationModel(
            id=notification.id,
            channel=notification.channel,
            template=notification.template,
            recipient_id=notification.recipient.recipient_id,
            address=notification.recipient.address,
            status=notification.status,
            subject=notification.content.subject,
            body_text=notification.content.body_text,
            body_html=notification.content.body_html,
            content_data=dict(notification.content.data),
            created_at=notification.created_at,
            updated_at=notification.updated_at,
            sent_at=notification.sent_at,
            delivered_at=notification.delivered_at,
            metadata_=dict(notification.metadata),
        )

    @staticmethod
    def _to_notification(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            channel=model.channel,
            template=model.template,
            recipient=Recipient(
                recipient_id=model.recipient_id,
                address=model.address,
                channel=model.channel,
            ),
            content=RenderedContent(
                subject=model.subject,
                body_text=model.body_text,
                body_html=model.body_html,
                data=dict(model.content_data or {}),
            ),
            status=model.status,
            created_at=_aware(model.created_at) or model.created_at,
            updated_at=_aware(model.updated_at) or model.updated_at,
            sent_at=_aware(model.sent_at),
            delivered_at=_aware(model.delivered_at),
            metadata=dict(model.metadata_ or {}),
        )

    @staticmethod
    def _to_event(model: DeliveryStatusEventModel) -> DeliveryStatusEvent:
        return DeliveryStatusEvent(
            id=model.id,
            notification_id=model.notification_id,
            status=model.status,
            provider=model.provider,
            attempt=model.attempt,
            timestamp=_aware(model.timestamp) or model.timestamp,
            provider_message_id=model.provider_message_id,
            error_message=model.error_message,
            metadata=dict(model.metadata_ or {}),
            disposition=model.disposition,
            sequence=model.seq,
        )
