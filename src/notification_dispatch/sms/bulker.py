"""Bulker.gr SMS implementation using httpx."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

BULKER_SMS_URL = "https://www.bulker.gr/api/v1/sms/send"


class BulkerSmsAdapter(ProviderAdapter):
    """
    Secondary SMS route over the Bulker.gr HTTP API.

    Bulker answers ``OK;MSG_ID;CHARGE`` or ``ERROR;CODE;DESCRIPTION`` as plain
    text with HTTP 200, so the body decides success.
    """

    name = "bulker"
    channel = NotificationChannel.SMS

    def __init__(
        self,
        auth_key: str | None,
        default_from: str | None = None,
        *,
        sms_url: str = BULKER_SMS_URL,
        validity: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.auth_key = auth_key
        self.default_from = default_from
        self.sms_url = sms_url
        self.validity = validity
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.auth_key and self.default_from)

    def describe_missing_configuration(self) -> str:
        return "Bulker auth key or originator is not set"

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        # Our own id, echoed back in delivery reports
        msg_id = time.time_ns() // 1_000_000
        data = {
            "auth_key": self.auth_key,
            "id": msg_id,
            "from": metadata.get("from_number") or self.default_from,
            # Bulker expects recipient numbers without leading '+'
            "to": recipient.lstrip("+"),
            "text": content.body_text,
            "validity": self.validity,
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(self.sms_url, data=data)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"Bulker timed out: {e}") from e
            except httpx.HTTPError as e:
                raise ProviderError(f"Bulker request failed: {e}") from e

        result = response.text.strip()
        if not result.startswith("OK"):
            raise ProviderError(f"Bulker API error: {result}")
        return str(msg_id)
