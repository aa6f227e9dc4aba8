"""One-line JSON log entries with correlation context."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .correlation import get_correlation_id

_log = logging.getLogger(__name__)


def emit(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log ``{"event": ..., **fields, "correlation_id": ...}`` as a JSON line."""
    if not logger.isEnabledFor(level):
        return
    try:
        entry = {"event": event, **fields, "correlation_id": get_correlation_id()}
        logger.log(level, json.dumps(entry, default=str, sort_keys=True))
    except Exception:  # noqa: BLE001
        _log.debug("Failed to emit structured log entry", exc_info=True)


class JsonFormatter(logging.Formatter):
    """Wraps every record in a JSON object; structured entries are embedded as-is."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
        }
        try:
            decoded = json.loads(message)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict):
            payload.update(decoded)
        else:
            payload["message"] = message
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "INFO", *, json_logs: bool = False) -> None:
    """Install a stderr handler on the ``notification_dispatch`` logger tree."""
    root = logging.getLogger("notification_dispatch")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)
