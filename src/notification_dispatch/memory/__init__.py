"""Memory adapters for testing and development."""

from __future__ import annotations

from .fake import ScriptedAdapter
from .simulate import SimulatedAdapter

__all__ = ["ScriptedAdapter", "SimulatedAdapter"]
