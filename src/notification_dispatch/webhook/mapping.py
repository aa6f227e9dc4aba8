"""Provider status vocabularies mapped onto :class:`NotificationStatus`."""

from __future__ import annotations

from collections.abc import Mapping

from ..delivery import NotificationStatus
from ..exceptions import UnrecognizedProviderStatusError

GENERIC = "generic"

_S = NotificationStatus

GENERIC_STATUS_MAP: dict[str, NotificationStatus] = {
    "sent": _S.SENT,
    "delivered": _S.DELIVERED,
    "opened": _S.OPENED,
    "read": _S.OPENED,
    "clicked": _S.CLICKED,
    "failed": _S.FAILED,
    "undelivered": _S.FAILED,
    "error": _S.FAILED,
}

# https://www.twilio.com/docs/messaging/api/message-resource#message-status-values
TWILIO_STATUS_MAP: dict[str, NotificationStatus] = {
    "accepted": _S.SENT,
    "scheduled": _S.SENT,
    "queued": _S.SENT,
    "sending": _S.SENT,
    "sent": _S.SENT,
    "delivered": _S.DELIVERED,
    "read": _S.OPENED,
    "undelivered": _S.FAILED,
    "failed": _S.FAILED,
    "canceled": _S.FAILED,
}

# SendGrid Event Webhook ``event`` values
SENDGRID_STATUS_MAP: dict[str, NotificationStatus] = {
    "processed": _S.SENT,
    "deferred": _S.SENT,
    "delivered": _S.DELIVERED,
    "open": _S.OPENED,
    "click": _S.CLICKED,
    "bounce": _S.FAILED,
    "dropped": _S.FAILED,
    "blocked": _S.FAILED,
}

# SES event publishing ``eventType`` / SNS ``notificationType`` values
SES_STATUS_MAP: dict[str, NotificationStatus] = {
    "send": _S.SENT,
    "deliverydelay": _S.SENT,
    "delivery": _S.DELIVERED,
    "open": _S.OPENED,
    "click": _S.CLICKED,
    "bounce": _S.FAILED,
    "reject": _S.FAILED,
    "rendering failure": _S.FAILED,
    "renderingfailure": _S.FAILED,
}

DEFAULT_STATUS_MAPS: dict[str, Mapping[str, NotificationStatus]] = {
    GENERIC: GENERIC_STATUS_MAP,
    "twilio": TWILIO_STATUS_MAP,
    "sendgrid": SENDGRID_STATUS_MAP,
    "ses": SES_STATUS_MAP,
}


def canonical_status(
    provider: str,
    provider_status: str,
    status_maps: Mapping[str, Mapping[str, NotificationStatus]] = DEFAULT_STATUS_MAPS,
) -> NotificationStatus:
    """
    Look up *provider_status* in *provider*'s table (case-insensitive).

    Providers without a table of their own use the ``generic`` table.

    Raises:
        UnrecognizedProviderStatusError: The value is not in the table.
    """
    table = status_maps.get(provider.lower()) or status_maps.get(GENERIC, {})
    status = table.get(provider_status.strip().lower())
    if status is None:
        raise UnrecognizedProviderStatusError(provider, provider_status)
    return status
