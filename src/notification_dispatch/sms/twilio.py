"""Twilio SMS implementation."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client as TwilioClient

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError

logger = logging.getLogger(__name__)


class TwilioSmsAdapter(ProviderAdapter):
    """
    Twilio Programmable Messaging adapter using the SDK's async HTTP client.

    When a public ``https://`` status-callback URL is configured, the
    notification id is appended as ``notification_id`` so delivery callbacks
    carry it back explicitly.
    """

    name = "twilio"
    channel = NotificationChannel.SMS

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        *,
        status_callback_url: str | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.status_callback_url = status_callback_url

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def describe_missing_configuration(self) -> str:
        return "Twilio account SID, auth token or sender number is not set"

    def status_callback_for(self, notification_id: str | None) -> str | None:
        # Twilio only calls back to publicly reachable URLs.
        if not self.status_callback_url or not self.status_callback_url.startswith("https://"):
            return None
        if not notification_id:
            return self.status_callback_url
        separator = "&" if "?" in self.status_callback_url else "?"
        return f"{self.status_callback_url}{separator}{urlencode({'notification_id': notification_id})}"

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        params: dict[str, Any] = {
            "to": recipient,
            "from_": metadata.get("from_number") or self.from_number,
            "body": content.body_text,
        }
        callback = self.status_callback_for(metadata.get("notification_id"))
        if callback:
            params["status_callback"] = callback

        http_client = AsyncTwilioHttpClient()
        try:
            client = TwilioClient(self.account_sid, self.auth_token, http_client=http_client)
            message = await client.messages.create_async(**params)
        except TwilioRestException as e:
            raise ProviderError(f"Twilio API error {e.code}: {e.msg}") from e
        except TwilioException as e:
            raise ProviderError(f"Twilio request failed: {e}") from e
        finally:
            await http_client.close()

        return message.sid
