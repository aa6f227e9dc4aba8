"""AWS SES email implementation."""

from __future__ import annotations

import logging
from typing import Any

from aiobotocore.session import get_session
from botocore.exceptions import BotoCoreError, ClientError

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError

logger = logging.getLogger(__name__)


class SesEmailAdapter(ProviderAdapter):
    """
    AWS SES email adapter using aiobotocore.

    Credentials come from the arguments or the standard AWS provider chain.
    The notification id is attached as a message tag so SES event
    destinations can report it back.
    """

    name = "ses"
    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        region_name: str | None = "us-east-1",
        from_email: str | None = None,
        *,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        configuration_set: str | None = None,
    ):
        self.region_name = region_name
        self.from_email = from_email
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key
        self.configuration_set = configuration_set

    @property
    def is_configured(self) -> bool:
        return bool(self.region_name and self.from_email)

    def describe_missing_configuration(self) -> str:
        return "SES region or sender address is not set"

    def build_request(
        self, recipient: str, content: RenderedContent, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"Text": {"Data": content.body_text, "Charset": "UTF-8"}}
        if content.body_html:
            body["Html"] = {"Data": content.body_html, "Charset": "UTF-8"}

        request: dict[str, Any] = {
            "Source": metadata.get("from_email") or self.from_email,
            "Destination": {"ToAddresses": [recipient]},
            "Message": {
                "Subject": {"Data": content.subject or "", "Charset": "UTF-8"},
                "Body": body,
            },
        }
        if metadata.get("notification_id"):
            request["Tags"] = [
                {"Name": "notification_id", "Value": str(metadata["notification_id"])}
            ]
        if self.configuration_set:
            request["ConfigurationSetName"] = self.configuration_set
        return request

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        request = self.build_request(recipient, content, metadata)
        session = get_session()
        try:
            async with session.create_client(
                "ses",
                region_name=self.region_name,
                aws_access_key_id=self.aws_access_key_id,
                aws_secret_access_key=self.aws_secret_access_key,
            ) as client:
                response = await client.send_email(**request)
        except ClientError as e:
            error = e.response.get("Error", {})
            raise ProviderError(f"SES {error.get('Code', 'error')}: {error.get('Message', e)}") from e
        except BotoCoreError as e:
            raise ProviderError(f"SES request failed: {e}") from e

        return response["MessageId"]
