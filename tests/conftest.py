"""Test configuration for notification-dispatch."""

import pytest

from notification_dispatch.delivery import NotificationChannel, RenderedContent
from notification_dispatch.dispatcher import NotificationDispatcher
from notification_dispatch.locking import InMemoryLockStrategy
from notification_dispatch.memory.fake import ScriptedAdapter
from notification_dispatch.persistence.memory import InMemoryNotificationStore
from notification_dispatch.reconciler import WebhookReconciler
from notification_dispatch.sender import ChannelSender
from notification_dispatch.template.renderer import JinjaTemplateRenderer
from notification_dispatch.tracker import DeliveryStatusTracker

pytest_plugins = ["pytest_asyncio"]


@pytest.fixture
def notification_content():
    """Sample rendered notification."""
    return RenderedContent(
        body_text="Test message body",
        subject="Test Subject",
    )


@pytest.fixture
def store():
    return InMemoryNotificationStore()


@pytest.fixture
def tracker(store):
    return DeliveryStatusTracker(store, InMemoryLockStrategy(), lock_timeout=1.0)


@pytest.fixture
def reconciler(tracker):
    return WebhookReconciler(tracker)


@pytest.fixture
def make_dispatcher(tracker):
    """Build a dispatcher whose channels are served by the given adapters."""

    def _make(*adapters, channel=NotificationChannel.EMAIL, fallback=None, attempt_timeout=1.0):
        sender = ChannelSender(
            channel, list(adapters), fallback=fallback, attempt_timeout=attempt_timeout
        )
        return NotificationDispatcher({channel: sender}, tracker, JinjaTemplateRenderer())

    return _make


@pytest.fixture
def email_adapter():
    return ScriptedAdapter("primary", NotificationChannel.EMAIL)
