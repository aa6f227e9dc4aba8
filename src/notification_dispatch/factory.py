"""Builds adapters, channel senders and the full engine from settings."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import SecretStr

from .config import DispatchSettings
from .delivery import NotificationChannel
from .dispatcher import NotificationDispatcher
from .email import SendGridEmailAdapter, SesEmailAdapter, SmtpEmailAdapter
from .exceptions import ConfigurationError
from .locking import InMemoryLockStrategy
from .memory import SimulatedAdapter
from .persistence import InMemoryNotificationStore
from .ports.adapter import IProviderAdapter
from .ports.locking import ILockStrategy
from .ports.store import INotificationStore
from .push import FcmPushAdapter
from .reconciler import WebhookReconciler
from .sender import ChannelSender
from .sms import BulkerSmsAdapter, TwilioSmsAdapter
from .structured_logging import configure_logging
from .template import JinjaTemplateRenderer
from .tracker import DeliveryStatusTracker

logger = logging.getLogger(__name__)


def _secret(value: SecretStr | None) -> str | None:
    return value.get_secret_value() if value is not None else None


def _sendgrid(s: DispatchSettings) -> IProviderAdapter:
    return SendGridEmailAdapter(
        _secret(s.sendgrid.api_key), s.sendgrid.from_email, api_url=s.sendgrid.api_url
    )


def _smtp(s: DispatchSettings) -> IProviderAdapter:
    return SmtpEmailAdapter(
        s.smtp.host,
        s.smtp.port,
        username=s.smtp.username,
        password=_secret(s.smtp.password),
        use_tls=s.smtp.use_tls,
        from_email=s.smtp.from_email,
    )


def _ses(s: DispatchSettings) -> IProviderAdapter:
    return SesEmailAdapter(
        s.ses.region_name,
        s.ses.from_email,
        aws_access_key_id=s.ses.aws_access_key_id,
        aws_secret_access_key=_secret(s.ses.aws_secret_access_key),
        configuration_set=s.ses.configuration_set,
    )


def _twilio(s: DispatchSettings) -> IProviderAdapter:
    return TwilioSmsAdapter(
        s.twilio.account_sid,
        _secret(s.twilio.auth_token),
        s.twilio.from_number,
        status_callback_url=s.twilio.status_callback_url,
    )


def _bulker(s: DispatchSettings) -> IProviderAdapter:
    return BulkerSmsAdapter(
        _secret(s.bulker.auth_key),
        s.bulker.default_from,
        sms_url=s.bulker.sms_url,
        validity=s.bulker.validity,
    )


def _fcm(s: DispatchSettings) -> IProviderAdapter:
    return FcmPushAdapter(s.fcm.project_id, _secret(s.fcm.access_token))


ADAPTER_BUILDERS: dict[str, Callable[[DispatchSettings], IProviderAdapter]] = {
    "sendgrid": _sendgrid,
    "smtp": _smtp,
    "ses": _ses,
    "twilio": _twilio,
    "bulker": _bulker,
    "fcm": _fcm,
}


def build_adapter(name: str, settings: DispatchSettings) -> IProviderAdapter:
    """Instantiate the adapter registered under *name*."""
    try:
        builder = ADAPTER_BUILDERS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown provider adapter {name!r}; expected one of {sorted(ADAPTER_BUILDERS)}"
        ) from None
    return builder(settings)


def build_channel_senders(settings: DispatchSettings) -> dict[NotificationChannel, ChannelSender]:
    provider_lists: dict[NotificationChannel, list[str]] = {
        NotificationChannel.EMAIL: list(settings.email_providers),
        NotificationChannel.SMS: list(settings.sms_providers),
        NotificationChannel.PUSH: list(settings.push_providers),
    }
    senders: dict[NotificationChannel, ChannelSender] = {}
    for channel, names in provider_lists.items():
        adapters = [build_adapter(name, settings) for name in names]
        for adapter in adapters:
            if adapter.channel is not channel:
                raise ConfigurationError(
                    f"{adapter.name} is a {adapter.channel.value} adapter, "
                    f"listed under {channel.value}"
                )
        fallback = SimulatedAdapter(channel) if settings.simulate_when_unconfigured else None
        if not adapters and fallback is None:
            logger.info(f"No {channel.value} providers configured; channel disabled")
            continue
        senders[channel] = ChannelSender(
            channel,
            adapters,
            fallback=fallback,
            attempt_timeout=settings.attempt_timeout,
        )
    return senders


@dataclass
class DispatchEngine:
    """Wired-together dispatch, reconciliation and status tracking."""

    dispatcher: NotificationDispatcher
    reconciler: WebhookReconciler
    tracker: DeliveryStatusTracker
    store: INotificationStore


def build_engine(
    settings: DispatchSettings | None = None,
    store: INotificationStore | None = None,
    *,
    lock_strategy: ILockStrategy | None = None,
    configure_logs: bool = True,
) -> DispatchEngine:
    settings = settings or DispatchSettings()
    if configure_logs:
        configure_logging(settings.log_level, json_logs=settings.json_logs)
    store = store or InMemoryNotificationStore()
    tracker = DeliveryStatusTracker(
        store,
        lock_strategy or InMemoryLockStrategy(),
        lock_timeout=settings.lock_timeout,
    )
    dispatcher = NotificationDispatcher(
        build_channel_senders(settings),
        tracker,
        JinjaTemplateRenderer(settings.template_dir),
        attempt_timeout=settings.attempt_timeout,
    )
    return DispatchEngine(
        dispatcher=dispatcher,
        reconciler=WebhookReconciler(tracker),
        tracker=tracker,
        store=store,
    )
