"""Top-level orchestration: validate, render, register, send, record."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from . import metrics
from .correlation import ensure_correlation_id
from .delivery import (
    SYSTEM_PROVIDER,
    ErrorKind,
    Notification,
    NotificationChannel,
    NotificationStatusView,
    Recipient,
    SendOutcome,
)
from .exceptions import ConfigurationError, InvalidRequestError
from .ports.renderer import ITemplateRenderer
from .sanitization import MetadataSanitizer, default_sanitizer
from .sender import ChannelSender
from .tracker import DeliveryStatusTracker

logger = logging.getLogger(__name__)

_ADDRESS_FIELDS: tuple[tuple[str, NotificationChannel], ...] = (
    ("email", NotificationChannel.EMAIL),
    ("phone", NotificationChannel.SMS),
    ("device_token", NotificationChannel.PUSH),
)

_CANCELLED = SendOutcome(
    ok=False,
    provider=SYSTEM_PROVIDER,
    error_kind=ErrorKind.CANCELLED,
    error_detail="dispatch cancelled",
)


class DispatchRequest(BaseModel):
    """Input shape of :meth:`NotificationDispatcher.dispatch`."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    recipient_id: str = Field(min_length=1)
    template: str = Field(min_length=1)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = Field(default=None, pattern=r"^\+?[0-9][0-9 ()-]{5,19}$")
    device_token: str | None = Field(default=None, min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def addresses(self) -> list[tuple[NotificationChannel, str]]:
        """Every (channel, address) pair present on the request."""
        return [
            (channel, value)
            for name, channel in _ADDRESS_FIELDS
            if (value := getattr(self, name))
        ]


@dataclass(frozen=True)
class DispatchResult:
    """Synchronous result of one notification's send attempt."""

    notification_id: str
    accepted: bool
    channel: NotificationChannel
    provider: str | None = None
    provider_message_id: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None


class NotificationDispatcher:
    """
    Entry point for outbound notifications.

    ``dispatch`` handles one recipient address; ``dispatch_all`` fans a
    request carrying several addresses out into independent notifications.
    The returned result only reflects the synchronous send; later delivery
    states are visible through :meth:`get_status`.
    """

    def __init__(
        self,
        senders: Mapping[NotificationChannel, ChannelSender],
        tracker: DeliveryStatusTracker,
        renderer: ITemplateRenderer,
        *,
        attempt_timeout: float | None = None,
        sanitizer: MetadataSanitizer | None = None,
    ) -> None:
        self.senders = dict(senders)
        self.tracker = tracker
        self.renderer = renderer
        self.attempt_timeout = attempt_timeout
        self.sanitizer = sanitizer or default_sanitizer

    async def dispatch(self, request: DispatchRequest | Mapping[str, Any]) -> DispatchResult:
        """
        Send one notification.

        Raises:
            InvalidRequestError: Malformed request, or not exactly one of
                ``email``/``phone``/``device_token``.
            asyncio.CancelledError: After the send outcome, or the cancelled
                attempt, has been recorded.
        """
        req = self._coerce(request)
        addresses = req.addresses()
        if len(addresses) != 1:
            raise InvalidRequestError(
                {"recipient": ["exactly one of email, phone or device_token is required"]}
            )
        channel, address = addresses[0]
        return await self._dispatch_one(req, channel, address)

    async def dispatch_all(
        self, request: DispatchRequest | Mapping[str, Any]
    ) -> list[DispatchResult]:
        """One independent notification per address on the request, sent concurrently."""
        req = self._coerce(request)
        addresses = req.addresses()
        if not addresses:
            raise InvalidRequestError(
                {"recipient": ["at least one of email, phone or device_token is required"]}
            )
        for channel, _ in addresses:
            self._sender_for(channel)

        results = await asyncio.gather(
            *(self._dispatch_one(req, channel, address) for channel, address in addresses),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return [r for r in results if isinstance(r, DispatchResult)]

    async def get_status(self, notification_id: str) -> NotificationStatusView:
        return await self.tracker.get_status(notification_id)

    async def recent_notifications(
        self, recipient_id: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[Notification]:
        return await self.tracker.recent(recipient_id=recipient_id, limit=limit, offset=offset)

    async def pending_notifications(
        self, limit: int = 100, *, include_failed: bool = False
    ) -> list[Notification]:
        """Notifications left without a send outcome, oldest first."""
        return await self.tracker.pending(limit=limit, include_failed=include_failed)

    async def _dispatch_one(
        self,
        req: DispatchRequest,
        channel: NotificationChannel,
        address: str,
    ) -> DispatchResult:
        sender = self._sender_for(channel)
        correlation_id = ensure_correlation_id()

        notification = Notification(
            id=str(uuid.uuid4()),
            channel=channel,
            template=req.template,
            recipient=Recipient(recipient_id=req.recipient_id, address=address, channel=channel),
            content=self.renderer.render(channel, req.template, req.data),
            metadata=self.sanitizer.sanitize({**req.metadata, "correlation_id": correlation_id}),
        )
        cancelled = await _run_to_completion(self.tracker.register(notification))

        send_metadata = {
            "notification_id": notification.id,
            "template": notification.template,
            "correlation_id": correlation_id,
        }
        outcome = _CANCELLED
        if not cancelled:
            try:
                outcome = await sender.send(
                    address,
                    notification.content,
                    timeout=self.attempt_timeout,
                    metadata=send_metadata,
                )
            except asyncio.CancelledError:
                cancelled = True

        if await _run_to_completion(self.tracker.record_send_outcome(notification.id, outcome)):
            cancelled = True

        if cancelled or outcome.cancelled:
            metrics.count_dispatch(channel.value, "cancelled")
            logger.warning(f"Dispatch of {notification.id} cancelled via {outcome.provider}")
            raise asyncio.CancelledError()

        metrics.count_dispatch(channel.value, "accepted" if outcome.ok else "rejected")
        if not outcome.ok:
            logger.warning(
                f"{channel.value} notification {notification.id} failed on every provider: "
                f"{outcome.error_detail}"
            )
        return DispatchResult(
            notification_id=notification.id,
            accepted=outcome.ok,
            channel=channel,
            provider=outcome.provider,
            provider_message_id=outcome.provider_message_id,
            error=outcome.error_detail,
            error_kind=outcome.error_kind,
        )

    def _sender_for(self, channel: NotificationChannel) -> ChannelSender:
        sender = self.senders.get(channel)
        if sender is None:
            raise ConfigurationError(f"No channel sender configured for {channel.value}")
        return sender

    @staticmethod
    def _coerce(request: DispatchRequest | Mapping[str, Any]) -> DispatchRequest:
        if isinstance(request, DispatchRequest):
            return request
        try:
            return DispatchRequest.model_validate(dict(request))
        except PydanticValidationError as exc:
            errors: dict[str, list[str]] = {}
            for error in exc.errors():
                loc = ".".join(str(p) for p in error.get("loc", ())) or "__root__"
                errors.setdefault(loc, []).append(error.get("msg", "validation error"))
            raise InvalidRequestError(errors) from exc


async def _run_to_completion(awaitable: Awaitable[Any]) -> bool:
    """
    Drive *awaitable* to the end even if the calling task is cancelled meanwhile.

    Returns ``True`` when a cancellation arrived while waiting; the caller is
    expected to re-raise it once its own bookkeeping is done.
    """
    task = asyncio.ensure_future(awaitable)
    interrupted = False
    while True:
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise
            interrupted = True
            continue
        return interrupted
