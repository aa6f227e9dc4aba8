"""Scriptable adapter for test assertions."""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from notification_dispatch.adapter import ProviderAdapter
from notification_dispatch.delivery import NotificationChannel, RenderedContent
from notification_dispatch.exceptions import ProviderError


@dataclass
class AttemptedMessage:
    """Record of one attempt for test assertions."""

    recipient: str
    content: RenderedContent
    metadata: dict[str, Any]


class ScriptedAdapter(ProviderAdapter):
    """
    Test double (Fake) whose outcomes are scripted up front.

    Each script step is either ``"ok"``, an exception instance to raise from
    ``_deliver`` or a float delay in seconds before succeeding. The last step
    repeats once the script is exhausted.
    """

    def __init__(
        self,
        name: str,
        channel: NotificationChannel = NotificationChannel.EMAIL,
        script: Iterable[str | float | BaseException] = ("ok",),
        *,
        configured: bool = True,
    ) -> None:
        self.name = name
        self.channel = channel
        self._script: deque[str | float | BaseException] = deque(script)
        self._configured = configured
        self._counter = itertools.count(1)
        self.attempts: list[AttemptedMessage] = []

    @classmethod
    def failing(cls, name: str, reason: str = "provider rejected message", **kwargs: Any) -> ScriptedAdapter:
        return cls(name, script=[ProviderError(reason)], **kwargs)

    @property
    def is_configured(self) -> bool:
        return self._configured

    def describe_missing_configuration(self) -> str:
        return f"{self.name} credentials missing"

    async def _deliver(
        self,
        recipient: str,
        content: RenderedContent,
        metadata: dict[str, Any],
    ) -> str:
        self.attempts.append(AttemptedMessage(recipient, content, metadata))
        step = self._script.popleft() if len(self._script) > 1 else self._script[0]
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, (int, float)):
            await asyncio.sleep(step)
        return f"{self.name}-msg-{next(self._counter)}"

    def assert_attempted(self, recipient: str, count: int = 1) -> None:
        """Helper for test assertions."""
        matches = [a for a in self.attempts if a.recipient == recipient]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} attempts to {recipient} via {self.name}, "
                f"but found {len(matches)}."
            )
