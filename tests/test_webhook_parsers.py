"""Tests for provider callback decoders."""

import json
from datetime import datetime, timezone

import pytest

from notification_dispatch.exceptions import InvalidWebhookPayloadError
from notification_dispatch.webhook.parsers import (
    parse_sendgrid_events,
    parse_ses_event,
    parse_twilio_callback,
)


def test_twilio_callback_with_query_notification_id():
    event = parse_twilio_callback(
        {"MessageSid": "SM1", "MessageStatus": "delivered", "To": "+15550100"},
        {"notification_id": "n-1"},
    )

    assert event.provider == "twilio"
    assert event.provider_message_id == "SM1"
    assert event.provider_status == "delivered"
    assert event.notification_id == "n-1"
    assert event.error_message is None


def test_twilio_legacy_fields_and_error_code():
    event = parse_twilio_callback(
        {
            "SmsSid": "SM2",
            "SmsStatus": "undelivered",
            "ErrorCode": "30003",
            "ErrorMessage": "Unreachable destination handset",
        }
    )

    assert event.provider_message_id == "SM2"
    assert event.notification_id is None
    assert event.error_message == "Twilio error 30003: Unreachable destination handset"


def test_twilio_callback_without_sid_is_invalid():
    with pytest.raises(InvalidWebhookPayloadError):
        parse_twilio_callback({"MessageStatus": "sent"})


def test_sendgrid_batch():
    events = parse_sendgrid_events(
        [
            {
                "event": "delivered",
                "sg_message_id": "abc123.filter0001.16648.5515E0B88.0",
                "notification_id": "n-1",
                "timestamp": 1700000000,
            },
            {"event": "bounce", "sg_message_id": "def456.filter", "reason": "550 no such user"},
        ]
    )

    assert [e.provider_message_id for e in events] == ["abc123", "def456"]
    assert events[0].notification_id == "n-1"
    assert events[0].occurred_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)
    assert events[1].error_message == "550 no such user"
    assert events[1].notification_id is None


@pytest.mark.parametrize(
    "body",
    [
        {"event": "delivered"},
        [{"sg_message_id": "abc"}],
        [{"event": "delivered"}],
        ["not an object"],
    ],
)
def test_sendgrid_invalid_bodies(body):
    with pytest.raises(InvalidWebhookPayloadError):
        parse_sendgrid_events(body)


def _ses_bounce():
    return {
        "eventType": "Bounce",
        "mail": {"messageId": "ses-1", "tags": {"notification_id": ["n-9"]}},
        "bounce": {
            "bounceType": "Permanent",
            "bounceSubType": "General",
            "timestamp": "2024-03-01T10:00:00.000Z",
        },
    }


def test_ses_event_record():
    event = parse_ses_event(_ses_bounce())

    assert event.provider == "ses"
    assert event.provider_message_id == "ses-1"
    assert event.provider_status == "Bounce"
    assert event.notification_id == "n-9"
    assert event.error_message == "Permanent bounce (General)"
    assert event.occurred_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def test_ses_sns_envelope_is_unwrapped():
    envelope = {"Type": "Notification", "Message": json.dumps(_ses_bounce())}

    event = parse_ses_event(envelope)

    assert event.provider_message_id == "ses-1"


def test_ses_feedback_notification_type():
    event = parse_ses_event({"notificationType": "Delivery", "mail": {"messageId": "ses-2"}})

    assert event.provider_status == "Delivery"
    assert event.notification_id is None


@pytest.mark.parametrize(
    "body",
    [
        {"Type": "Notification", "Message": "{not json"},
        {"eventType": "Delivery"},
        {"eventType": "Delivery", "mail": {}},
        "Delivery",
    ],
)
def test_ses_invalid_bodies(body):
    with pytest.raises(InvalidWebhookPayloadError):
        parse_ses_event(body)
