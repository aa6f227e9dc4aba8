"""Merges provider status callbacks into the delivery-status history."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from . import metrics
from .correlation import ensure_correlation_id
from .delivery import EventDisposition, NotificationStatus, OrphanedWebhook, WebhookEvent
from .exceptions import NotificationNotFoundError, UnrecognizedProviderStatusError
from .sanitization import MetadataSanitizer, default_sanitizer
from .structured_logging import emit
from .tracker import DeliveryStatusTracker
from .webhook.mapping import DEFAULT_STATUS_MAPS, canonical_status

logger = logging.getLogger(__name__)


class ReconcileOutcome(Enum):
    """What happened to one inbound callback."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNRECOGNIZED = "unrecognized"
    ORPHANED = "orphaned"
    ERROR = "error"


_FROM_DISPOSITION = {
    EventDisposition.APPLIED: ReconcileOutcome.APPLIED,
    EventDisposition.DUPLICATE: ReconcileOutcome.DUPLICATE,
    EventDisposition.IGNORED: ReconcileOutcome.IGNORED,
}


class WebhookReconciler:
    """
    Maps provider callbacks to canonical statuses and hands them to the
    tracker.

    Never raises to its caller (apart from task cancellation): the HTTP
    layer must acknowledge every callback so providers do not retry. Every
    outcome is logged and counted in ``notification_webhooks_total``.
    """

    def __init__(
        self,
        tracker: DeliveryStatusTracker,
        *,
        status_maps: Mapping[str, Mapping[str, NotificationStatus]] | None = None,
        sanitizer: MetadataSanitizer | None = None,
    ) -> None:
        self.tracker = tracker
        self.status_maps = status_maps or DEFAULT_STATUS_MAPS
        self.sanitizer = sanitizer or default_sanitizer

    async def reconcile(
        self,
        provider: str,
        provider_message_id: str | None,
        provider_status: str,
        notification_id: str | None = None,
        raw_payload: Any = None,
        *,
        error_message: str | None = None,
        occurred_at: datetime | None = None,
    ) -> ReconcileOutcome:
        ensure_correlation_id()
        try:
            outcome = await self._reconcile(
                provider,
                provider_message_id,
                provider_status,
                notification_id,
                raw_payload,
                error_message,
                occurred_at,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.error(
                f"Failed to reconcile {provider} status {provider_status!r} "
                f"for message {provider_message_id}: {e}",
                exc_info=True,
            )
            outcome = ReconcileOutcome.ERROR

        metrics.count_webhook(provider, outcome.value)
        emit(
            logger,
            "webhook.reconciled",
            provider=provider,
            provider_message_id=provider_message_id,
            provider_status=provider_status,
            notification_id=notification_id,
            outcome=outcome.value,
        )
        return outcome

    async def reconcile_event(self, event: WebhookEvent) -> ReconcileOutcome:
        return await self.reconcile(
            event.provider,
            event.provider_message_id,
            event.provider_status,
            event.notification_id,
            event.raw_payload,
            error_message=event.error_message,
            occurred_at=event.occurred_at,
        )

    async def reconcile_many(self, events: Iterable[WebhookEvent]) -> list[ReconcileOutcome]:
        """Reconcile a batch in order (SendGrid posts arrays of events)."""
        return [await self.reconcile_event(event) for event in events]

    async def _reconcile(
        self,
        provider: str,
        provider_message_id: str | None,
        provider_status: str,
        notification_id: str | None,
        raw_payload: Any,
        error_message: str | None,
        occurred_at: datetime | None,
    ) -> ReconcileOutcome:
        payload = self.sanitizer.sanitize_payload(raw_payload)

        try:
            status = canonical_status(provider, provider_status, self.status_maps)
        except UnrecognizedProviderStatusError as e:
            logger.warning(str(e))
            return ReconcileOutcome.UNRECOGNIZED

        if not notification_id and provider_message_id:
            notification_id = await self.tracker.resolve(provider, provider_message_id)
        if not notification_id:
            await self._orphan(provider, provider_message_id, provider_status, None, payload,
                               "unresolved provider message id")
            return ReconcileOutcome.ORPHANED

        metadata: dict[str, Any] = {"provider_status": provider_status, "payload": payload}
        if error_message:
            metadata["error_message"] = error_message
        if occurred_at is not None:
            metadata["occurred_at"] = occurred_at.isoformat()
        try:
            event = await self.tracker.record_webhook_event(
                notification_id,
                status,
                provider_message_id,
                metadata,
                provider=provider,
            )
        except NotificationNotFoundError:
            await self._orphan(provider, provider_message_id, provider_status, notification_id,
                               payload, "unknown notification id")
            return ReconcileOutcome.ORPHANED

        return _FROM_DISPOSITION[event.disposition]

    async def _orphan(
        self,
        provider: str,
        provider_message_id: str | None,
        provider_status: str,
        notification_id: str | None,
        payload: dict[str, Any],
        reason: str,
    ) -> None:
        await self.tracker.record_orphan(
            OrphanedWebhook(
                id=str(uuid.uuid4()),
                provider=provider,
                provider_message_id=provider_message_id,
                provider_status=provider_status,
                reason=reason,
                notification_id=notification_id,
                payload=payload,
            )
        )
