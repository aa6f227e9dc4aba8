"""SMTP relay implementation."""

from __future__ import annotations

import email.message
import email.policy
import email.utils
import logging
from typing import Any

import aiosmtplib

from ..adapter import ProviderAdapter
from ..delivery import NotificationChannel, RenderedContent
from ..exceptions import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)


class SmtpEmailAdapter(ProviderAdapter):
    """
    Async SMTP email adapter using aiosmtplib.

    A fresh connection is opened for every attempt and closed before the
    attempt returns, so a failed relay never leaves state behind for the
    next adapter in the chain.
    """

    name = "smtp"
    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str | None = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_email)

    def describe_missing_configuration(self) -> str:
        return "SMTP host or sender address is not set"

    def build_message(
        self, recipient: str, content: RenderedContent, metadata: dict[str, Any]
    ) -> email.message.EmailMessage:
        message = email.message.EmailMessage(policy=email.policy.default)
        message["To"] = recipient
        message["From"] = str(metadata.get("from_email") or self.from_email)
        message["Message-ID"] = email.utils.make_msgid(domain=self._sender_domain())
        if content.subject:
            message["Subject"] = content.subject
        if metadata.get("notification_id"):
            message["X-Notification-Id"] = str(metadata["notification_id"])

        if content.body_html:
            # Multipart with both text and HTML
            message.set_content(content.body_text, subtype="plain", charset="utf-8")
            message.add_alternative(content.body_html, subtype="html", charset="utf-8")
        else:
            message.set_content(content.body_text, charset="utf-8")
        return message

    def _sender_domain(self) -> str | None:
        if self.from_email and "@" in self.from_email:
            return self.from_email.rsplit("@", 1)[1]
        return None

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str | None:
        message = self.build_message(recipient, content, metadata)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
        except aiosmtplib.SMTPTimeoutError as e:
            raise ProviderTimeoutError(f"SMTP timed out: {e}") from e
        except aiosmtplib.SMTPException as e:
            raise ProviderError(f"SMTP error: {e}") from e
        except OSError as e:
            raise ProviderError(f"SMTP connection failed: {e}") from e

        return message["Message-ID"]
