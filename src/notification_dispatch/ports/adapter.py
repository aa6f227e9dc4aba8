"""Provider adapter port."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..delivery import AttemptResult, NotificationChannel, RenderedContent


@runtime_checkable
class IProviderAdapter(Protocol):
    """
    Uniform contract over one external delivery mechanism.

    Adapters must explicitly declare: class SmtpEmailAdapter(ProviderAdapter):
    """

    name: str
    channel: NotificationChannel

    async def attempt(
        self,
        recipient: str,
        content: RenderedContent,
        *,
        timeout: float,
        metadata: Mapping[str, Any] | None = None,
    ) -> AttemptResult:
        """Try once to hand the message to the provider, bounded by *timeout*."""
        ...
