"""Exception hierarchy for notification dispatch."""

from __future__ import annotations


class NotificationDispatchError(Exception):
    """Root exception for the notification-dispatch package."""


class InvalidRequestError(NotificationDispatchError):
    """Raised when a dispatch request is malformed or ambiguous.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class NotificationNotFoundError(NotificationDispatchError):
    """Raised when a status update references an unknown notification."""

    def __init__(self, notification_id: str) -> None:
        self.notification_id = notification_id
        super().__init__(f"Notification with id={notification_id!r} not found")


class PersistenceError(NotificationDispatchError):
    """Base class for notification store failures."""


class ConcurrentStatusUpdateError(PersistenceError):
    """Raised when a compare-and-swap on a notification's status fails."""

    def __init__(self, notification_id: str, expected: str, actual: str | None) -> None:
        self.notification_id = notification_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Status of notification {notification_id} changed concurrently "
            f"(expected {expected}, found {actual})"
        )


class ProviderError(NotificationDispatchError):
    """Raised inside a provider adapter when the provider rejects a message."""


class ProviderTimeoutError(ProviderError):
    """Raised when the provider's own client gives up waiting."""


class UnrecognizedProviderStatusError(NotificationDispatchError):
    """Raised when a provider status has no canonical mapping."""

    def __init__(self, provider: str, provider_status: str) -> None:
        self.provider = provider
        self.provider_status = provider_status
        super().__init__(f"Unrecognized status {provider_status!r} from provider {provider!r}")


class InvalidWebhookPayloadError(NotificationDispatchError):
    """Raised when an inbound provider callback cannot be parsed."""


class LockAcquisitionError(NotificationDispatchError):
    """Failed to acquire a per-notification lock within the timeout."""

    def __init__(self, resource: str, timeout: float) -> None:
        self.resource = resource
        self.timeout = timeout
        super().__init__(f"Failed to acquire lock on {resource} within {timeout}s")


class ConfigurationError(NotificationDispatchError):
    """Raised when adapters or channels are configured inconsistently."""
