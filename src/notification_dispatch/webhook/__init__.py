"""Provider callback decoding and status mapping."""

from __future__ import annotations

from .mapping import DEFAULT_STATUS_MAPS, GENERIC, canonical_status
from .parsers import parse_sendgrid_events, parse_ses_event, parse_twilio_callback

__all__ = [
    "DEFAULT_STATUS_MAPS",
    "GENERIC",
    "canonical_status",
    "parse_sendgrid_events",
    "parse_ses_event",
    "parse_twilio_callback",
]
