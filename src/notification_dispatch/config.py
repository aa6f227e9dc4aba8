"""Dispatch engine settings.

Environment variables use the ``NOTIFY_`` prefix and ``__`` for nesting.
Example: ``NOTIFY_EMAIL_PROVIDERS='["sendgrid","smtp"]'``,
``NOTIFY_SENDGRID__API_KEY=SG.xxx``, ``NOTIFY_TWILIO__FROM_NUMBER=+15550100``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

EmailProvider = Literal["sendgrid", "smtp", "ses"]
SmsProvider = Literal["twilio", "bulker"]
PushProvider = Literal["fcm"]


class SendGridSettings(BaseModel):
    api_key: SecretStr | None = None
    from_email: str | None = None
    api_url: str = "https://api.sendgrid.com/v3/mail/send"


class SmtpSettings(BaseModel):
    host: str | None = None
    port: int = Field(default=587, ge=1, le=65535)
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = Field(default=True, description="STARTTLS after connecting")
    from_email: str | None = None


class SesSettings(BaseModel):
    region_name: str | None = "us-east-1"
    from_email: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: SecretStr | None = None
    configuration_set: str | None = None


class TwilioSettings(BaseModel):
    account_sid: str | None = None
    auth_token: SecretStr | None = None
    from_number: str | None = None
    status_callback_url: str | None = Field(
        default=None,
        description="Public https URL for delivery callbacks; ignored unless https",
    )


class BulkerSettings(BaseModel):
    auth_key: SecretStr | None = None
    default_from: str | None = None
    sms_url: str = "https://www.bulker.gr/api/v1/sms/send"
    validity: int = Field(default=1, ge=1)


class FcmSettings(BaseModel):
    project_id: str | None = None
    access_token: SecretStr | None = None


class DispatchSettings(BaseSettings):
    """Dispatch engine configuration.

    Provider lists are ordered: the first configured adapter is the primary,
    the rest are fallbacks. When none of a channel's adapters has
    credentials and ``simulate_when_unconfigured`` is set, messages are
    logged instead of sent.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    email_providers: Annotated[list[EmailProvider], NoDecode] = Field(
        default_factory=lambda: ["sendgrid", "smtp"]
    )
    sms_providers: Annotated[list[SmsProvider], NoDecode] = Field(
        default_factory=lambda: ["twilio"]
    )
    push_providers: Annotated[list[PushProvider], NoDecode] = Field(
        default_factory=lambda: ["fcm"]
    )

    attempt_timeout: float = Field(default=10.0, gt=0, description="Seconds per provider attempt")
    lock_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for a notification lock"
    )
    simulate_when_unconfigured: bool = True
    template_dir: Path | None = None

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = False

    sendgrid: SendGridSettings = Field(default_factory=SendGridSettings)
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    ses: SesSettings = Field(default_factory=SesSettings)
    twilio: TwilioSettings = Field(default_factory=TwilioSettings)
    bulker: BulkerSettings = Field(default_factory=BulkerSettings)
    fcm: FcmSettings = Field(default_factory=FcmSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("email_providers", "sms_providers", "push_providers", mode="before")
    @classmethod
    def _split_provider_list(cls, value: object) -> object:
        # Accept "sendgrid,smtp" as well as a JSON list
        if not isinstance(value, str):
            return value
        if value.lstrip().startswith("["):
            return json.loads(value)
        return [item.strip().lower() for item in value.split(",") if item.strip()]
