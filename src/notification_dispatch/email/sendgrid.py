"""SendGrid v3 Mail Send implementation using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridEmailAdapter(ProviderAdapter):
    """
    Transactional email through the SendGrid REST API.

    The notification id travels in ``custom_args`` so that event webhooks can
    be correlated without a provider-message-id lookup; the message id is
    read from the ``X-Message-Id`` response header.
    """

    name = "sendgrid"
    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        api_key: str | None,
        from_email: str | None,
        *,
        api_url: str = SENDGRID_SEND_URL,
        categories: tuple[str, ...] = ("notification-service",),
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.categories = categories
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.from_email)

    def describe_missing_configuration(self) -> str:
        return "SendGrid API key or sender address is not set"

    def build_payload(
        self, recipient: str, content: RenderedContent, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": recipient}]}
        if metadata.get("notification_id"):
            personalization["custom_args"] = {"notification_id": str(metadata["notification_id"])}

        body = [{"type": "text/plain", "value": content.body_text}]
        if content.body_html:
            body.append({"type": "text/html", "value": content.body_html})

        categories = list(self.categories)
        if metadata.get("template"):
            categories.insert(0, str(metadata["template"]))

        return {
            "personalizations": [personalization],
            "from": {"email": metadata.get("from_email") or self.from_email},
            "subject": content.subject or "Notification",
            "content": body,
            "categories": categories,
        }

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        payload = self.build_payload(recipient, content, metadata)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"SendGrid timed out: {e}") from e
            except httpx.HTTPStatusError as e:
                raise ProviderError(
                    f"SendGrid HTTP {e.response.status_code}: {e.response.text[:200]}"
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"SendGrid request failed: {e}") from e

        return response.headers.get("X-Message-Id")
