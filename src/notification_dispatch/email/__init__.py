"""Email provider adapters."""

from __future__ import annotations

from .sendgrid import SendGridEmailAdapter
from .ses import SesEmailAdapter
from .smtp import SmtpEmailAdapter

__all__ = ["SendGridEmailAdapter", "SesEmailAdapter", "SmtpEmailAdapter"]
