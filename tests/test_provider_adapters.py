"""Tests for concrete provider adapters against mocked transports."""

import json

import aiosmtplib
import httpx
import pytest

from notification_dispatch.delivery import ErrorKind, RenderedContent
from notification_dispatch.email import sendgrid, ses
from notification_dispatch.email.sendgrid import SendGridEmailAdapter
from notification_dispatch.email.ses import SesEmailAdapter
from notification_dispatch.email.smtp import SmtpEmailAdapter
from notification_dispatch.push.fcm import FcmPushAdapter
from notification_dispatch.sms import twilio
from notification_dispatch.sms.bulker import BulkerSmsAdapter
from notification_dispatch.sms.twilio import TwilioSmsAdapter

META = {"notification_id": "n-1", "template": "password-reset"}


@pytest.fixture
def email_content():
    return RenderedContent(
        subject="Reset your password",
        body_text="Code: 482913",
        body_html="<p>Code: 482913</p>",
    )


# --- SendGrid ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_sendgrid_posts_payload_and_returns_message_id(email_content):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(202, headers={"X-Message-Id": "sg-abc"})

    adapter = SendGridEmailAdapter(
        "SG.key", "noreply@example.com", transport=httpx.MockTransport(handler)
    )

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0, metadata=META)

    assert result.ok
    assert result.provider_message_id == "sg-abc"
    assert captured["auth"] == "Bearer SG.key"
    body = captured["body"]
    assert body["personalizations"][0]["to"] == [{"email": "u@example.com"}]
    assert body["personalizations"][0]["custom_args"] == {"notification_id": "n-1"}
    assert body["categories"] == ["password-reset", "notification-service"]
    assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]


@pytest.mark.asyncio
async def test_sendgrid_http_error_is_provider_failure(email_content):
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
    adapter = SendGridEmailAdapter("SG.key", "noreply@example.com", transport=transport)

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0)

    assert result.error_kind is ErrorKind.PROVIDER_FAILURE
    assert "401" in result.error_detail


@pytest.mark.asyncio
async def test_sendgrid_transport_timeout_is_timeout(email_content):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    adapter = SendGridEmailAdapter(
        "SG.key", "noreply@example.com", transport=httpx.MockTransport(handler)
    )

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0)

    assert result.error_kind is ErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_sendgrid_without_key_is_unavailable(email_content):
    adapter = SendGridEmailAdapter(None, "noreply@example.com")

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0)

    assert result.error_kind is ErrorKind.UNAVAILABLE


def test_sendgrid_default_url():
    assert SendGridEmailAdapter("k", "a@b.c").api_url == sendgrid.SENDGRID_SEND_URL


# --- SMTP -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_smtp_sends_multipart_message(monkeypatch, email_content):
    sent = []

    async def fake_send(message, **kwargs):
        sent.append((message, kwargs))
        return ({}, "OK")

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    adapter = SmtpEmailAdapter("smtp.example.com", 587, from_email="noreply@example.com")

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0, metadata=META)

    assert result.ok
    message, kwargs = sent[0]
    assert result.provider_message_id == message["Message-ID"]
    assert message["X-Notification-Id"] == "n-1"
    assert message.is_multipart()
    assert kwargs["hostname"] == "smtp.example.com"
    assert kwargs["start_tls"] is True


@pytest.mark.asyncio
async def test_smtp_error_is_provider_failure(monkeypatch, email_content):
    async def fake_send(message, **kwargs):
        raise aiosmtplib.SMTPRecipientsRefused([])

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    adapter = SmtpEmailAdapter("smtp.example.com", from_email="noreply@example.com")

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0)

    assert result.error_kind is ErrorKind.PROVIDER_FAILURE


@pytest.mark.asyncio
async def test_smtp_connection_refused_is_provider_failure(monkeypatch, email_content):
    async def fake_send(message, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    adapter = SmtpEmailAdapter("smtp.example.com", from_email="noreply@example.com")

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0)

    assert result.error_kind is ErrorKind.PROVIDER_FAILURE
    assert "refused" in result.error_detail


# --- SES --------------------------------------------------------------------


class _FakeSesClient:
    def __init__(self, calls):
        self.calls = calls

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send_email(self, **request):
        self.calls.append(request)
        return {"MessageId": "ses-123"}


class _FakeSession:
    def __init__(self, calls):
        self.calls = calls

    def create_client(self, service, **kwargs):
        assert service == "ses"
        return _FakeSesClient(self.calls)


@pytest.mark.asyncio
async def test_ses_sends_tagged_email(monkeypatch, email_content):
    calls = []
    monkeypatch.setattr(ses, "get_session", lambda: _FakeSession(calls))
    adapter = SesEmailAdapter("eu-west-1", "noreply@example.com", configuration_set="events")

    result = await adapter.attempt("u@example.com", email_content, timeout=1.0, metadata=META)

    assert result.ok
    assert result.provider_message_id == "ses-123"
    request = calls[0]
    assert request["Destination"] == {"ToAddresses": ["u@example.com"]}
    assert request["Tags"] == [{"Name": "notification_id", "Value": "n-1"}]
    assert request["ConfigurationSetName"] == "events"
    assert "Html" in request["Message"]["Body"]


# --- Twilio -----------------------------------------------------------------


class _FakeTwilioHttpClient:
    closed = False

    async def close(self):
        type(self).closed = True


class _FakeMessages:
    calls = []

    async def create_async(self, **params):
        self.calls.append(params)
        return type("Message", (), {"sid": "SM123"})()


class _FakeTwilioClient:
    def __init__(self, account_sid, auth_token, http_client=None):
        self.messages = _FakeMessages()


@pytest.mark.asyncio
async def test_twilio_sends_with_https_status_callback(monkeypatch):
    _FakeMessages.calls = []
    monkeypatch.setattr(twilio, "AsyncTwilioHttpClient", _FakeTwilioHttpClient)
    monkeypatch.setattr(twilio, "TwilioClient", _FakeTwilioClient)
    adapter = TwilioSmsAdapter(
        "AC1", "token", "+15550100", status_callback_url="https://hooks.example.com/twilio"
    )

    result = await adapter.attempt(
        "+15550199", RenderedContent(body_text="Code 1"), timeout=1.0, metadata=META
    )

    assert result.ok
    assert result.provider_message_id == "SM123"
    params = _FakeMessages.calls[0]
    assert params["to"] == "+15550199"
    assert params["from_"] == "+15550100"
    assert params["status_callback"] == "https://hooks.example.com/twilio?notification_id=n-1"
    assert _FakeTwilioHttpClient.closed


def test_twilio_ignores_non_https_callback():
    adapter = TwilioSmsAdapter(
        "AC1", "token", "+15550100", status_callback_url="http://localhost:3000/webhook"
    )

    assert adapter.status_callback_for("n-1") is None


def test_twilio_callback_keeps_existing_query():
    adapter = TwilioSmsAdapter(
        "AC1", "token", "+15550100", status_callback_url="https://h.example.com/cb?src=sms"
    )

    assert adapter.status_callback_for("n-1") == "https://h.example.com/cb?src=sms&notification_id=n-1"


def test_twilio_requires_credentials():
    assert not TwilioSmsAdapter(None, "token", "+15550100").is_configured


# --- Bulker -----------------------------------------------------------------


@pytest.mark.asyncio
async def test_bulker_strips_plus_and_accepts_ok():
    captured = {}

    def handler(request):
        captured["form"] = dict(httpx.QueryParams(request.content.decode()))
        return httpx.Response(200, text="OK;123;0.04")

    adapter = BulkerSmsAdapter("key", "ACME", transport=httpx.MockTransport(handler))

    result = await adapter.attempt("+306900000000", RenderedContent(body_text="hi"), timeout=1.0)

    assert result.ok
    assert captured["form"]["to"] == "306900000000"
    assert captured["form"]["from"] == "ACME"
    assert result.provider_message_id == captured["form"]["id"]


@pytest.mark.asyncio
async def test_bulker_error_body_is_provider_failure():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="ERROR;7;Bad number"))
    adapter = BulkerSmsAdapter("key", "ACME", transport=transport)

    result = await adapter.attempt("+306900000000", RenderedContent(body_text="hi"), timeout=1.0)

    assert result.error_kind is ErrorKind.PROVIDER_FAILURE
    assert "Bad number" in result.error_detail


# --- FCM --------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fcm_posts_v1_message():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": "projects/demo/messages/0:123"})

    adapter = FcmPushAdapter("demo", "ya29.token", transport=httpx.MockTransport(handler))
    content = RenderedContent(
        subject="Password reset", body_text="Check your email", data={"action": "PASSWORD_RESET"}
    )

    result = await adapter.attempt("device-token", content, timeout=1.0, metadata=META)

    assert result.ok
    assert result.provider_message_id == "projects/demo/messages/0:123"
    assert captured["url"] == "https://fcm.googleapis.com/v1/projects/demo/messages:send"
    message = captured["body"]["message"]
    assert message["token"] == "device-token"
    assert message["notification"] == {"title": "Password reset", "body": "Check your email"}
    assert message["data"] == {"action": "PASSWORD_RESET", "notification_id": "n-1"}


@pytest.mark.asyncio
async def test_fcm_rejected_token_is_provider_failure():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
    )
    adapter = FcmPushAdapter("demo", "ya29.token", transport=transport)

    result = await adapter.attempt("stale", RenderedContent(body_text="x"), timeout=1.0)

    assert result.error_kind is ErrorKind.PROVIDER_FAILURE
    assert "404" in result.error_detail
