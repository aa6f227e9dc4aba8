"""Push provider adapters."""

from __future__ import annotations

from .fcm import FcmPushAdapter

__all__ = ["FcmPushAdapter"]
