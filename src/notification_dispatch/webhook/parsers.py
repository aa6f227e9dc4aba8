"""Decoders for provider status callbacks.

Each parser turns an already-deserialized request body into
:class:`~notification_dispatch.delivery.WebhookEvent` objects. Signature
verification happens at the HTTP boundary, before these are called.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..delivery import WebhookEvent
from ..exceptions import InvalidWebhookPayloadError


def parse_twilio_callback(
    form: Mapping[str, Any], query: Mapping[str, Any] | None = None
) -> WebhookEvent:
    """
    Twilio posts ``application/x-www-form-urlencoded`` status callbacks.
    The notification id, when present, comes from the callback URL's query
    string.
    """
    if not isinstance(form, Mapping):
        raise InvalidWebhookPayloadError("Twilio callback must be a form mapping")
    message_sid = form.get("MessageSid") or form.get("SmsSid")
    status = form.get("MessageStatus") or form.get("SmsStatus")
    if not message_sid or not status:
        raise InvalidWebhookPayloadError("Twilio callback lacks MessageSid or MessageStatus")

    notification_id = (query or {}).get("notification_id") or form.get("notification_id")
    error_message = None
    if form.get("ErrorCode"):
        error_message = f"Twilio error {form['ErrorCode']}"
        if form.get("ErrorMessage"):
            error_message = f"{error_message}: {form['ErrorMessage']}"

    return WebhookEvent(
        provider="twilio",
        provider_message_id=str(message_sid),
        provider_status=str(status),
        notification_id=str(notification_id) if notification_id else None,
        error_message=error_message,
        raw_payload=dict(form),
    )


def parse_sendgrid_events(events: Any) -> list[WebhookEvent]:
    """
    SendGrid's Event Webhook posts a JSON array of events. ``custom_args``
    set at send time appear as top-level keys of each event.
    """
    if not isinstance(events, list):
        raise InvalidWebhookPayloadError("SendGrid webhook body must be a JSON array")

    parsed: list[WebhookEvent] = []
    for index, event in enumerate(events):
        if not isinstance(event, Mapping) or not event.get("event"):
            raise InvalidWebhookPayloadError(f"SendGrid event #{index} has no 'event' field")
        # sg_message_id is "<X-Message-Id>.<filter suffix>"
        sg_message_id = event.get("sg_message_id")
        provider_message_id = str(sg_message_id).split(".", 1)[0] if sg_message_id else None
        notification_id = event.get("notification_id")
        if provider_message_id is None and not notification_id:
            raise InvalidWebhookPayloadError(
                f"SendGrid event #{index} carries neither sg_message_id nor notification_id"
            )
        parsed.append(
            WebhookEvent(
                provider="sendgrid",
                provider_message_id=provider_message_id,
                provider_status=str(event["event"]),
                notification_id=str(notification_id) if notification_id else None,
                occurred_at=_from_epoch(event.get("timestamp")),
                error_message=event.get("reason") or event.get("response"),
                raw_payload=dict(event),
            )
        )
    return parsed


def parse_ses_event(payload: Any) -> WebhookEvent:
    """
    SES event publishing record (``eventType``) or SNS feedback
    notification (``notificationType``). An SNS envelope whose ``Message``
    holds the record as a JSON string is unwrapped first.
    """
    if isinstance(payload, Mapping) and payload.get("Type") == "Notification":
        try:
            payload = json.loads(payload["Message"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidWebhookPayloadError(f"Invalid SNS envelope: {e}") from e
    if not isinstance(payload, Mapping):
        raise InvalidWebhookPayloadError("SES event must be a JSON object")

    event_type = payload.get("eventType") or payload.get("notificationType")
    mail = payload.get("mail")
    if not event_type or not isinstance(mail, Mapping) or not mail.get("messageId"):
        raise InvalidWebhookPayloadError("SES event lacks eventType or mail.messageId")

    tags = mail.get("tags") or {}
    tag_values = tags.get("notification_id") or []
    notification_id = tag_values[0] if tag_values else None

    detail = payload.get(_ses_detail_key(str(event_type))) or {}
    error_message = None
    if isinstance(detail, Mapping):
        if detail.get("bounceType"):
            error_message = f"{detail['bounceType']} bounce"
            if detail.get("bounceSubType"):
                error_message = f"{error_message} ({detail['bounceSubType']})"
        elif detail.get("reason") or detail.get("errorMessage"):
            error_message = str(detail.get("reason") or detail.get("errorMessage"))

    return WebhookEvent(
        provider="ses",
        provider_message_id=str(mail["messageId"]),
        provider_status=str(event_type),
        notification_id=str(notification_id) if notification_id else None,
        occurred_at=_from_iso(detail.get("timestamp") if isinstance(detail, Mapping) else None),
        error_message=error_message,
        raw_payload=dict(payload),
    )


def _ses_detail_key(event_type: str) -> str:
    if event_type.lower().replace(" ", "") == "renderingfailure":
        return "failure"
    if event_type.lower() == "deliverydelay":
        return "deliveryDelay"
    return event_type.lower()


def _from_epoch(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _from_iso(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
