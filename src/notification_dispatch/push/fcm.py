"""Firebase Cloud Messaging (HTTP v1) push implementation using httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"


class FcmPushAdapter(ProviderAdapter):
    """
    Push notifications through the FCM HTTP v1 API.

    The OAuth2 access token is supplied by the caller (service-account token
    minting is outside this package). FCM requires every ``data`` value to be
    a string.
    """

    name = "fcm"
    channel = NotificationChannel.PUSH

    def __init__(
        self,
        project_id: str | None,
        access_token: str | None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.project_id = project_id
        self.access_token = access_token
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id and self.access_token)

    def describe_missing_configuration(self) -> str:
        return "FCM project id or access token is not set"

    @property
    def send_url(self) -> str:
        return FCM_SEND_URL.format(project_id=self.project_id)

    def build_message(
        self, recipient: str, content: RenderedContent, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        data = {str(k): str(v) for k, v in content.data.items()}
        if metadata.get("notification_id"):
            data.setdefault("notification_id", str(metadata["notification_id"]))
        message: dict[str, Any] = {
            "token": recipient,
            "notification": {
                "title": content.subject or "Notification",
                "body": content.body_text,
            },
        }
        if data:
            message["data"] = data
        return {"message": message}

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        payload = self.build_message(recipient, content, metadata)
        headers = {"Authorization": f"Bearer {self.access_token}"}

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(self.send_url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"FCM timed out: {e}") from e
            except httpx.HTTPStatusError as e:
                raise ProviderError(
                    f"FCM HTTP {e.response.status_code}: {e.response.text[:200]}"
                ) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"FCM request failed: {e}") from e

        # projects/{project_id}/messages/{message_id}
        return response.json().get("name")
