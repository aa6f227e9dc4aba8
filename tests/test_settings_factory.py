"""Tests for settings loading and engine wiring."""

import logging

import pytest
from pydantic import ValidationError

from notification_dispatch.config import DispatchSettings
from notification_dispatch.delivery import NotificationChannel, NotificationStatus
from notification_dispatch.email import SendGridEmailAdapter, SmtpEmailAdapter
from notification_dispatch.exceptions import ConfigurationError
from notification_dispatch.factory import build_adapter, build_channel_senders, build_engine
from notification_dispatch.reconciler import ReconcileOutcome
from notification_dispatch.sms import TwilioSmsAdapter
from notification_dispatch.structured_logging import JsonFormatter


def _settings(**overrides):
    return DispatchSettings(_env_file=None, **overrides)


def test_defaults():
    settings = _settings()

    assert settings.email_providers == ["sendgrid", "smtp"]
    assert settings.sms_providers == ["twilio"]
    assert settings.attempt_timeout == 10.0
    assert settings.simulate_when_unconfigured


def test_environment_with_nested_secrets(monkeypatch):
    monkeypatch.setenv("NOTIFY_EMAIL_PROVIDERS", "smtp, sendgrid")
    monkeypatch.setenv("NOTIFY_SMS_PROVIDERS", '["bulker", "twilio"]')
    monkeypatch.setenv("NOTIFY_SENDGRID__API_KEY", "SG.secret")
    monkeypatch.setenv("NOTIFY_TWILIO__FROM_NUMBER", "+15550100")
    monkeypatch.setenv("NOTIFY_LOG_LEVEL", "debug")

    settings = _settings()

    assert settings.email_providers == ["smtp", "sendgrid"]
    assert settings.sms_providers == ["bulker", "twilio"]
    assert settings.sendgrid.api_key.get_secret_value() == "SG.secret"
    assert "SG.secret" not in repr(settings)
    assert settings.twilio.from_number == "+15550100"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"attempt_timeout": 0},
        {"email_providers": ["carrier-pigeon"]},
        {"sms_providers": ["sendgrid"]},
    ],
)
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        _settings(**overrides)


def test_build_adapter_passes_credentials():
    settings = _settings(
        sendgrid={"api_key": "SG.key", "from_email": "noreply@example.com"},
        twilio={"account_sid": "AC1", "auth_token": "tok", "from_number": "+15550100"},
    )

    sendgrid = build_adapter("sendgrid", settings)
    twilio = build_adapter("TWILIO", settings)

    assert isinstance(sendgrid, SendGridEmailAdapter)
    assert sendgrid.is_configured
    assert isinstance(twilio, TwilioSmsAdapter)
    assert twilio.is_configured
    assert not build_adapter("smtp", settings).is_configured


def test_build_adapter_rejects_unknown_name():
    with pytest.raises(ConfigurationError, match="pigeon"):
        build_adapter("pigeon", _settings())


def test_channel_senders_keep_order_and_fallback():
    senders = build_channel_senders(_settings(email_providers=["smtp", "sendgrid"]))

    email = senders[NotificationChannel.EMAIL]
    assert isinstance(email.adapters[0], SmtpEmailAdapter)
    assert email.provider_names == ["smtp", "sendgrid", "simulate"]
    assert set(senders) == set(NotificationChannel)


def test_channel_without_providers_or_simulation_is_disabled():
    senders = build_channel_senders(
        _settings(push_providers=[], simulate_when_unconfigured=False)
    )

    assert NotificationChannel.PUSH not in senders
    assert senders[NotificationChannel.EMAIL].fallback is None


@pytest.mark.asyncio
async def test_engine_simulates_unconfigured_providers():
    engine = build_engine(_settings(), configure_logs=False)

    result = await engine.dispatcher.dispatch(
        {
            "recipient_id": "user-1",
            "phone": "+15550100",
            "template": "verification-code",
            "data": {"code": "1234"},
        }
    )

    assert result.accepted
    assert result.provider == "simulate"
    outcome = await engine.reconciler.reconcile(
        "simulate", result.provider_message_id, "delivered"
    )
    assert outcome is ReconcileOutcome.APPLIED
    view = await engine.tracker.get_status(result.notification_id)
    assert view.status is NotificationStatus.DELIVERED


def test_engine_applies_logging_settings():
    package_logger = logging.getLogger("notification_dispatch")
    try:
        build_engine(_settings(log_level="WARNING", json_logs=True))

        assert package_logger.level == logging.WARNING
        [handler] = package_logger.handlers
        assert isinstance(handler.formatter, JsonFormatter)
    finally:
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
        package_logger.setLevel(logging.NOTSET)
