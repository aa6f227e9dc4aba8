"""Multi-provider notification dispatch: Email, SMS, Push, with delivery-status reconciliation."""

from __future__ import annotations

from .adapter import ProviderAdapter
from .correlation import get_correlation_id, set_correlation_id
from .delivery import (
    AttemptResult,
    DeliveryStatusEvent,
    ErrorKind,
    EventDisposition,
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationStatusView,
    OrphanedWebhook,
    Recipient,
    RenderedContent,
    SendOutcome,
    WebhookEvent,
)
from .dispatcher import DispatchRequest, DispatchResult, NotificationDispatcher
from .exceptions import (
    ConcurrentStatusUpdateError,
    ConfigurationError,
    InvalidRequestError,
    InvalidWebhookPayloadError,
    LockAcquisitionError,
    NotificationDispatchError,
    NotificationNotFoundError,
    PersistenceError,
    ProviderError,
    ProviderTimeoutError,
    UnrecognizedProviderStatusError,
)
from .locking import InMemoryLockStrategy

# Memory adapters for testing
from .memory.fake import ScriptedAdapter
from .memory.simulate import SimulatedAdapter
from .persistence.memory import InMemoryNotificationStore
from .ports.adapter import IProviderAdapter
from .ports.locking import ILockStrategy
from .ports.renderer import ITemplateRenderer
from .ports.store import INotificationStore
from .reconciler import ReconcileOutcome, WebhookReconciler
from .sanitization import MetadataSanitizer
from .sender import ChannelSender
from .structured_logging import configure_logging
from .template.renderer import JinjaTemplateRenderer
from .tracker import DeliveryStatusTracker

__all__ = [
    "AttemptResult",
    "ChannelSender",
    "ConcurrentStatusUpdateError",
    "ConfigurationError",
    "DeliveryStatusEvent",
    "DeliveryStatusTracker",
    "DispatchRequest",
    "DispatchResult",
    "ErrorKind",
    "EventDisposition",
    "ILockStrategy",
    "INotificationStore",
    "IProviderAdapter",
    "ITemplateRenderer",
    "InMemoryLockStrategy",
    "InMemoryNotificationStore",
    "InvalidRequestError",
    "InvalidWebhookPayloadError",
    "JinjaTemplateRenderer",
    "LockAcquisitionError",
    "MetadataSanitizer",
    "Notification",
    "NotificationChannel",
    "NotificationDispatchError",
    "NotificationDispatcher",
    "NotificationNotFoundError",
    "NotificationStatus",
    "NotificationStatusView",
    "OrphanedWebhook",
    "PersistenceError",
    "ProviderAdapter",
    "ProviderError",
    "ProviderTimeoutError",
    "Recipient",
    "ReconcileOutcome",
    "RenderedContent",
    "ScriptedAdapter",
    "SendOutcome",
    "SimulatedAdapter",
    "UnrecognizedProviderStatusError",
    "WebhookEvent",
    "WebhookReconciler",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
