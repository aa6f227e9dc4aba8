"""Template rendering."""

from __future__ import annotations

from .builtin import BUILTIN_TEMPLATE_NAMES, BUILTIN_TEMPLATES, PUSH_ACTIONS
from .renderer import JinjaTemplateRenderer, stringify_push_data

__all__ = [
    "BUILTIN_TEMPLATES",
    "BUILTIN_TEMPLATE_NAMES",
    "JinjaTemplateRenderer",
    "PUSH_ACTIONS",
    "stringify_push_data",
]
