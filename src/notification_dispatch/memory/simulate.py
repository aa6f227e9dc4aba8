"""Last-resort adapter that logs the message instead of sending it."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from notification_dispatch.adapter import ProviderAdapter
from notification_dispatch.delivery import NotificationChannel, RenderedContent

logger = logging.getLogger(__name__)


class SimulatedAdapter(ProviderAdapter):
    """
    Development adapter that prints notifications to the log and always
    succeeds. Channel senders only fall back to it when no real adapter for
    the channel is configured.
    """

    name = "simulate"

    def __init__(self, channel: NotificationChannel, output_to_stdout: bool = False):
        self.channel = channel
        self.output_to_stdout = output_to_stdout

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str:
        output = [
            "═" * 50,
            f"[SIMULATION] {self.channel.value.upper()} NOTIFICATION",
            f"To:      {recipient}",
            f"Subject: {content.subject or '(No Subject)'}",
            f"Body:    {content.body_text}",
        ]
        if content.body_html:
            output.append(f"HTML:    [Available: {len(content.body_html)} bytes]")
        if content.data:
            output.append(f"Data:    {', '.join(sorted(content.data))}")
        if metadata.get("notification_id"):
            output.append(f"Id:      {metadata['notification_id']}")
        output.append("═" * 50)

        full_output = "\n".join(output)
        logger.info(full_output)
        if self.output_to_stdout:
            print(full_output)

        return f"simulated-{self.channel.value}-{uuid.uuid4().hex[:16]}"
