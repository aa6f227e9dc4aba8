"""Jinja2 template renderer."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from html import escape
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    TemplateNotFound,
    select_autoescape,
)

from ..delivery import NotificationChannel, RenderedContent
from ..ports.renderer import ITemplateRenderer
from .builtin import BUILTIN_TEMPLATES, PUSH_ACTIONS

logger = logging.getLogger(__name__)


def stringify_push_data(data: Mapping[str, Any]) -> dict[str, str]:
    """Push payloads only carry strings; ``None`` values are dropped."""
    result: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            result[str(key)] = json.dumps(value, default=str)
        else:
            result[str(key)] = str(value)
    return result


class JinjaTemplateRenderer(ITemplateRenderer):
    """
    Renders ``(channel, template, data)`` with Jinja2.

    Templates are looked up as ``{channel}/{template}.txt`` (body),
    ``.subject`` (email subject / push title) and ``.html`` (email only).
    Files under *template_dir* shadow the built-ins. Unknown templates and
    templates that fail to render fall back to a generic layout built from
    ``data["subject"]`` and ``data["message"]``/``data["body"]``.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        loaders: list[Any] = []
        if template_dir is not None:
            loaders.append(FileSystemLoader(str(template_dir)))
        loaders.append(DictLoader(BUILTIN_TEMPLATES))
        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(
                enabled_extensions=("html",), default_for_string=False, default=False
            ),
        )

    def render(
        self,
        channel: NotificationChannel,
        template: str,
        data: Mapping[str, Any],
    ) -> RenderedContent:
        context = dict(data)
        try:
            content = self._render_template(channel, template, context)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Rendering {channel.value} template {template!r} failed: {e}")
            return self.render_default(channel, context)
        if content is None:
            logger.debug(f"No {channel.value} template {template!r}, using default layout")
            return self.render_default(channel, context)
        return content

    def _render_template(
        self, channel: NotificationChannel, template: str, context: dict[str, Any]
    ) -> RenderedContent | None:
        prefix = f"{channel.value}/{template}"
        body = self._render_part(f"{prefix}.txt", context)
        if body is None:
            return None
        subject = self._render_part(f"{prefix}.subject", context)

        if channel is NotificationChannel.EMAIL:
            return RenderedContent(
                subject=(subject or "Notification").strip(),
                body_text=body.strip(),
                body_html=self._render_part(f"{prefix}.html", context),
            )
        if channel is NotificationChannel.PUSH:
            payload = stringify_push_data(context)
            if template in PUSH_ACTIONS:
                payload["action"] = PUSH_ACTIONS[template]
            return RenderedContent(
                subject=(subject or "Notification").strip(),
                body_text=body.strip(),
                data=payload,
            )
        return RenderedContent(body_text=body.strip())

    def _render_part(self, name: str, context: dict[str, Any]) -> str | None:
        try:
            template = self._env.get_template(name)
        except TemplateNotFound:
            return None
        return template.render(context)

    @staticmethod
    def render_default(channel: NotificationChannel, data: Mapping[str, Any]) -> RenderedContent:
        message = str(data.get("message") or data.get("body") or "")
        if channel is NotificationChannel.EMAIL:
            return RenderedContent(
                subject=str(data.get("subject") or "Notification"),
                body_text=str(data.get("text") or message),
                body_html=str(data.get("html") or f"<p>{escape(message)}</p>"),
            )
        if channel is NotificationChannel.PUSH:
            return RenderedContent(
                subject=str(data.get("title") or data.get("subject") or "Notification"),
                body_text=str(data.get("body") or data.get("message") or ""),
                data=stringify_push_data(data),
            )
        return RenderedContent(body_text=message)
