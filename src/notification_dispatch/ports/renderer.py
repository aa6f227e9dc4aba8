"""Template renderer port."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ..delivery import NotificationChannel, RenderedContent


@runtime_checkable
class ITemplateRenderer(Protocol):
    """Protocol for turning (channel, template, data) into deliverable content."""

    def render(
        self,
        channel: NotificationChannel,
        template: str,
        data: Mapping[str, Any],
    ) -> RenderedContent:
        """Render content. Must not raise for known templates."""
        ...
