"""Notification records, delivery events and attempt outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationChannel(Enum):
    """Supported notification channels."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class NotificationStatus(Enum):
    """Canonical lifecycle states of a notification."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    FAILED = "failed"


class ErrorKind(Enum):
    """Why a single provider attempt did not succeed."""

    PROVIDER_FAILURE = "provider_failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNAVAILABLE = "unavailable"


class EventDisposition(Enum):
    """Whether a recorded status event moved the notification forward."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


SYSTEM_PROVIDER = "system"


@dataclass(frozen=True)
class RenderedContent:
    """Immutable rendered content ready for delivery."""

    body_text: str
    subject: str | None = None
    body_html: str | None = None
    data: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Recipient:
    """Channel-appropriate address plus the id of the requesting user."""

    recipient_id: str
    address: str
    channel: NotificationChannel


@dataclass(frozen=True)
class Notification:
    """One outbound message intent.

    Instances are never mutated in place; the tracker stores new versions via
    ``dataclasses.replace``.
    """

    id: str
    channel: NotificationChannel
    template: str
    recipient: Recipient
    content: RenderedContent
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeliveryStatusEvent:
    """One observed status transition. Append-only."""

    id: str
    notification_id: str
    status: NotificationStatus
    provider: str
    attempt: int
    timestamp: datetime = field(default_factory=utcnow)
    provider_message_id: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    disposition: EventDisposition = EventDisposition.APPLIED
    sequence: int = 0

    @property
    def applied(self) -> bool:
        return self.disposition is EventDisposition.APPLIED


@dataclass(frozen=True)
class OrphanedWebhook:
    """A provider callback that could not be matched to a notification."""

    id: str
    provider: str
    provider_message_id: str | None
    provider_status: str
    reason: str
    notification_id: str | None = None
    received_at: datetime = field(default_factory=utcnow)
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one provider adapter attempt."""

    ok: bool
    provider: str
    provider_message_id: str | None = None
    error_kind: ErrorKind | None = None
    error_detail: str | None = None

    @property
    def outcome(self) -> str:
        if self.ok:
            return "success"
        return self.error_kind.value if self.error_kind else "failure"

    @classmethod
    def success(cls, provider: str, provider_message_id: str | None) -> AttemptResult:
        return cls(ok=True, provider=provider, provider_message_id=provider_message_id)

    @classmethod
    def failure(cls, provider: str, error_kind: ErrorKind, error_detail: str) -> AttemptResult:
        return cls(ok=False, provider=provider, error_kind=error_kind, error_detail=error_detail)


@dataclass(frozen=True)
class SendOutcome:
    """Result of running a channel's whole fallback chain once."""

    ok: bool
    provider: str
    provider_message_id: str | None = None
    error_kind: ErrorKind | None = None
    error_detail: str | None = None
    attempts: tuple[AttemptResult, ...] = ()

    @property
    def cancelled(self) -> bool:
        return self.error_kind is ErrorKind.CANCELLED


@dataclass(frozen=True)
class NotificationStatusView:
    """Current status plus full event history for one notification."""

    notification: Notification
    history: list[DeliveryStatusEvent]

    @property
    def status(self) -> NotificationStatus:
        return self.notification.status


@dataclass(frozen=True)
class WebhookEvent:
    """A provider status callback, decoded but not yet mapped to a canonical status."""

    provider: str
    provider_message_id: str | None
    provider_status: str
    notification_id: str | None = None
    occurred_at: datetime | None = None
    error_message: str | None = None
    raw_payload: Any = None
