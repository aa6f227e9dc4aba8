"""Redaction of credentials in request metadata and provider webhook payloads."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

REDACTED = "***"

_DEFAULT_SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "access_token",
        "auth_token",
        "auth_key",
        "api_key",
        "authorization",
        "private_key",
        "signature",
        "x-twilio-signature",
        "x-twilio-email-event-webhook-signature",
        # device tokens, email addresses and phone numbers stay: the audit
        # trail needs them to explain a delivery.
    }
)


class MetadataSanitizer:
    """
    Produces copies of metadata and raw webhook payloads that are safe to keep
    in the delivery-status audit trail and in logs.

    Field names are matched case-insensitively at any nesting depth.
    """

    def __init__(
        self,
        *,
        redact_fields: set[str] | None = None,
        hash_fields: set[str] | None = None,
        sensitive_fields: set[str] | None = None,
    ) -> None:
        self._redact_fields = {f.lower() for f in (redact_fields or set())}
        self._hash_fields = {f.lower() for f in (hash_fields or set())}
        sensitive = set(sensitive_fields or _DEFAULT_SENSITIVE_FIELDS)
        self._sensitive_fields = {f.lower() for f in sensitive}

    def sanitize(self, metadata: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return a sanitized copy of a metadata mapping."""
        if not metadata:
            return {}
        return self._sanitize_mapping(metadata)

    def sanitize_payload(self, payload: Any) -> dict[str, Any]:
        """Sanitize an arbitrary decoded webhook body into a storable dict."""
        if payload is None:
            return {}
        if isinstance(payload, Mapping):
            return self._sanitize_mapping(payload)
        return {"body": self._sanitize_value(payload)}

    def _sanitize_mapping(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return {str(key): self._sanitize_value(value, str(key).lower()) for key, value in data.items()}

    def _sanitize_value(self, value: Any, field_name: str | None = None) -> Any:
        if field_name is not None:
            if field_name in self._hash_fields:
                return self._hash_value(value)
            if field_name in self._redact_fields or field_name in self._sensitive_fields:
                return REDACTED
        if isinstance(value, Mapping):
            return self._sanitize_mapping(value)
        if isinstance(value, (list, tuple)):
            return [self._sanitize_value(item) for item in value]
        return value

    @staticmethod
    def _hash_value(value: Any) -> str:
        digest = hashlib.sha256(str(value).encode("utf-8")).hexdigest()
        return f"sha256:{digest}"


default_sanitizer = MetadataSanitizer()
