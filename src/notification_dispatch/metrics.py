"""Prometheus collectors for dispatch, provider attempts and webhook handling.

Collectors are registered once on the default registry at import time:

- ``notification_dispatch_total{channel, outcome}``
- ``notification_provider_attempts_total{provider, outcome}``
- ``notification_provider_attempt_seconds{provider}``
- ``notification_webhooks_total{provider, outcome}``
- ``notification_status_transitions_total{status}``
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

_logger = logging.getLogger(__name__)

DISPATCH_TOTAL = Counter(
    "notification_dispatch_total",
    "Dispatch requests by channel and synchronous outcome",
    ["channel", "outcome"],
)
PROVIDER_ATTEMPTS_TOTAL = Counter(
    "notification_provider_attempts_total",
    "Provider adapter attempts by outcome",
    ["provider", "outcome"],
)
PROVIDER_ATTEMPT_SECONDS = Histogram(
    "notification_provider_attempt_seconds",
    "Provider adapter attempt duration",
    ["provider"],
)
WEBHOOKS_TOTAL = Counter(
    "notification_webhooks_total",
    "Provider status callbacks by reconciliation outcome",
    ["provider", "outcome"],
)
STATUS_TRANSITIONS_TOTAL = Counter(
    "notification_status_transitions_total",
    "Applied notification status transitions",
    ["status"],
)


def observe_attempt(provider: str, outcome: str, duration: float) -> None:
    try:
        PROVIDER_ATTEMPTS_TOTAL.labels(provider=provider, outcome=outcome).inc()
        PROVIDER_ATTEMPT_SECONDS.labels(provider=provider).observe(duration)
    except Exception:  # noqa: BLE001
        _logger.debug("Failed to emit provider attempt metrics", exc_info=True)


def count_dispatch(channel: str, outcome: str) -> None:
    try:
        DISPATCH_TOTAL.labels(channel=channel, outcome=outcome).inc()
    except Exception:  # noqa: BLE001
        _logger.debug("Failed to emit dispatch metrics", exc_info=True)


def count_webhook(provider: str, outcome: str) -> None:
    try:
        WEBHOOKS_TOTAL.labels(provider=provider, outcome=outcome).inc()
    except Exception:  # noqa: BLE001
        _logger.debug("Failed to emit webhook metrics", exc_info=True)


def count_transition(status: str) -> None:
    try:
        STATUS_TRANSITIONS_TOTAL.labels(status=status).inc()
    except Exception:  # noqa: BLE001
        _logger.debug("Failed to emit transition metrics", exc_info=True)
