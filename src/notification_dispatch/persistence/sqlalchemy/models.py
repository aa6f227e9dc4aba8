"""SQLAlchemy models for notifications, status events and orphaned webhooks."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON, TypeDecorator

from ...delivery import EventDisposition, NotificationChannel, NotificationStatus


class JSONType(TypeDecorator[dict[str, Any]]):
    """JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class NotificationBase(DeclarativeBase):
    """Declarative base for the notification tables."""


class NotificationModel(NotificationBase):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    channel: Mapped[NotificationChannel] = mapped_column(Enum(NotificationChannel))
    template: Mapped[str] = mapped_column(String(128))
    recipient_id: Mapped[str] = mapped_column(String(255), index=True)
    address: Mapped[str] = mapped_column(String(512))
    status: Mapped[NotificationStatus] = mapped_column(Enum(NotificationStatus), index=True)
    subject: Mapped[str | None] = mapped_column(String(998), nullable=True)
    body_text: Mapped[str] = mapped_column(Text)
    body_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict)


class DeliveryStatusEventModel(NotificationBase):
    """Append-only; ``seq`` is the insertion-order tie-breaker."""

    __tablename__ = "delivery_status_events"

    seq: Mapped[int] = mapped_column(
        Integer().with_variant(BigInteger, "postgresql"),
        primary_key=True,
        autoincrement=True,
    )
    id: Mapped[str] = mapped_column(String(36), unique=True)
    notification_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("notifications.id"), index=True
    )
    status: Mapped[NotificationStatus] = mapped_column(Enum(NotificationStatus))
    provider: Mapped[str] = mapped_column(String(64))
    provider_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempt: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    disposition: Mapped[EventDisposition] = mapped_column(Enum(EventDisposition))
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict)

    __table_args__ = (
        Index("ix_delivery_status_events_provider_message", "provider", "provider_message_id"),
        Index("ix_delivery_status_events_order", "notification_id", "timestamp", "seq"),
    )


class OrphanedWebhookModel(NotificationBase):
    __tablename__ = "orphaned_webhooks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    provider: Mapped[str] = mapped_column(String(64), index=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider_status: Mapped[str] = mapped_column(String(64))
    reason: Mapped[str] = mapped_column(String(255))
    notification_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
