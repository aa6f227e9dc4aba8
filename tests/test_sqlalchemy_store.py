"""Tests for the SQLAlchemy notification store (aiosqlite)."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from notification_dispatch.delivery import (
    AttemptResult,
    DeliveryStatusEvent,
    EventDisposition,
    Notification,
    NotificationChannel,
    NotificationStatus,
    OrphanedWebhook,
    Recipient,
    RenderedContent,
    SendOutcome,
)
from notification_dispatch.exceptions import (
    ConcurrentStatusUpdateError,
    NotificationNotFoundError,
    PersistenceError,
)
from notification_dispatch.locking import InMemoryLockStrategy
from notification_dispatch.persistence.sqlalchemy import (
    NotificationBase,
    SQLAlchemyNotificationStore,
)
from notification_dispatch.tracker import DeliveryStatusTracker

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(NotificationBase.metadata.create_all)
    yield SQLAlchemyNotificationStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


def _notification(notification_id="n-1", recipient_id="user-1", created_at=T0):
    return Notification(
        id=notification_id,
        channel=NotificationChannel.EMAIL,
        template="password-reset",
        recipient=Recipient(recipient_id, "u@example.com", NotificationChannel.EMAIL),
        content=RenderedContent(
            body_text="Code 1", subject="Reset", body_html="<p>Code 1</p>", data={"k": "v"}
        ),
        created_at=created_at,
        updated_at=created_at,
        metadata={"correlation_id": "c-1"},
    )


def _event(notification_id="n-1", status=NotificationStatus.SENT, **kwargs):
    defaults = {
        "id": f"e-{status.value}-{kwargs.get('attempt', 1)}",
        "notification_id": notification_id,
        "status": status,
        "provider": "sendgrid",
        "attempt": 1,
        "timestamp": T0,
    }
    defaults.update(kwargs)
    return DeliveryStatusEvent(**defaults)


@pytest.mark.asyncio
async def test_round_trips_notification(sql_store):
    await sql_store.create_notification(_notification())

    loaded = await sql_store.get_notification_by_id("n-1")

    assert loaded == _notification()
    assert await sql_store.get_notification_by_id("missing") is None


@pytest.mark.asyncio
async def test_duplicate_create_is_rejected(sql_store):
    await sql_store.create_notification(_notification())

    with pytest.raises(PersistenceError):
        await sql_store.create_notification(_notification())


@pytest.mark.asyncio
async def test_compare_and_swap_update(sql_store):
    await sql_store.create_notification(_notification())

    updated = await sql_store.update_notification_status(
        "n-1",
        NotificationStatus.SENT,
        expected_status=NotificationStatus.PENDING,
        updated_at=T0 + timedelta(seconds=1),
        sent_at=T0 + timedelta(seconds=1),
    )

    assert updated.status is NotificationStatus.SENT
    assert updated.sent_at == T0 + timedelta(seconds=1)
    with pytest.raises(ConcurrentStatusUpdateError) as exc_info:
        await sql_store.update_notification_status(
            "n-1",
            NotificationStatus.FAILED,
            expected_status=NotificationStatus.PENDING,
            updated_at=T0,
        )
    assert exc_info.value.actual == "sent"
    with pytest.raises(NotificationNotFoundError):
        await sql_store.update_notification_status(
            "missing",
            NotificationStatus.SENT,
            expected_status=NotificationStatus.PENDING,
            updated_at=T0,
        )


@pytest.mark.asyncio
async def test_events_ordered_by_timestamp_then_insertion(sql_store):
    await sql_store.create_notification(_notification())
    later = _event(status=NotificationStatus.DELIVERED, attempt=2, timestamp=T0 + timedelta(1))
    first = _event(provider_message_id="sg-1", metadata={"attempts": []})
    tie = _event(
        id="e-dup",
        status=NotificationStatus.SENT,
        disposition=EventDisposition.DUPLICATE,
    )

    stored = [await sql_store.append_delivery_status_event(e) for e in (later, first, tie)]

    assert stored[0].sequence < stored[1].sequence < stored[2].sequence
    history = await sql_store.list_delivery_status_events("n-1")
    assert [e.id for e in history] == [first.id, "e-dup", later.id]
    assert history[0].metadata == {"attempts": []}
    assert history[1].disposition is EventDisposition.DUPLICATE


@pytest.mark.asyncio
async def test_event_for_unknown_notification_is_rejected(sql_store):
    with pytest.raises(NotificationNotFoundError):
        await sql_store.append_delivery_status_event(_event("missing"))


@pytest.mark.asyncio
async def test_find_by_provider_message_id(sql_store):
    await sql_store.create_notification(_notification())
    await sql_store.append_delivery_status_event(_event(provider_message_id="sg-1"))

    found = await sql_store.find_notification_by_provider_message_id("sendgrid", "sg-1")

    assert found is not None and found.id == "n-1"
    assert await sql_store.find_notification_by_provider_message_id("ses", "sg-1") is None


@pytest.mark.asyncio
async def test_orphans_and_recent_notifications(sql_store):
    await sql_store.append_orphaned_webhook(
        OrphanedWebhook(
            id="o-1",
            provider="twilio",
            provider_message_id="SM404",
            provider_status="delivered",
            reason="unresolved provider message id",
            payload={"MessageSid": "SM404"},
        )
    )
    for offset, recipient_id in enumerate(["user-1", "user-2", "user-1"]):
        await sql_store.create_notification(
            _notification(f"n-{offset}", recipient_id, T0 + timedelta(minutes=offset))
        )

    [orphan] = await sql_store.list_orphaned_webhooks()
    recent = await sql_store.list_notifications(recipient_id="user-1")

    assert orphan.payload == {"MessageSid": "SM404"}
    assert orphan.received_at.tzinfo is not None
    assert [n.id for n in recent] == ["n-2", "n-0"]


@pytest.mark.asyncio
async def test_list_notifications_filters_by_status_with_paging(sql_store):
    for offset in range(4):
        await sql_store.create_notification(
            _notification(f"n-{offset}", created_at=T0 + timedelta(minutes=offset))
        )
    await sql_store.update_notification_status(
        "n-1",
        NotificationStatus.SENT,
        expected_status=NotificationStatus.PENDING,
        updated_at=T0,
    )

    pending = await sql_store.list_notifications(
        statuses=[NotificationStatus.PENDING], oldest_first=True, limit=100
    )
    page = await sql_store.list_notifications(limit=2, offset=1)

    assert [n.id for n in pending] == ["n-0", "n-2", "n-3"]
    assert [n.id for n in page] == ["n-2", "n-1"]


@pytest.mark.asyncio
async def test_tracker_over_sql_store(sql_store):
    """Test the tracker keeps history monotonic on the SQL store under concurrency."""
    tracker = DeliveryStatusTracker(sql_store, InMemoryLockStrategy(), lock_timeout=5.0)
    await tracker.register(_notification())
    await tracker.record_send_outcome(
        "n-1",
        SendOutcome(
            ok=True,
            provider="sendgrid",
            provider_message_id="sg-1",
            attempts=(AttemptResult.success("sendgrid", "sg-1"),),
        ),
    )

    await asyncio.gather(
        *(
            tracker.record_webhook_event("n-1", status, "sg-1", provider="sendgrid")
            for status in (
                NotificationStatus.OPENED,
                NotificationStatus.DELIVERED,
                NotificationStatus.DELIVERED,
                NotificationStatus.SENT,
            )
        )
    )

    view = await tracker.get_status("n-1")
    assert view.status is NotificationStatus.OPENED
    assert len(view.history) == 5
    assert await tracker.resolve("sendgrid", "sg-1") == "n-1"
