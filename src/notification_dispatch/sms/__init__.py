"""SMS provider adapters."""

from __future__ import annotations

from .bulker import BulkerSmsAdapter
from .twilio import TwilioSmsAdapter

__all__ = ["BulkerSmsAdapter", "TwilioSmsAdapter"]
