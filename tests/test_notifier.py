"""Tests for the email transports and transport selection."""
# pylint: disable=missing-function-docstring

import asyncio
import json
import smtplib

import httpx
import pytest

from formmail.config import Settings
from formmail.errors import DeliveryRejected, TransportError
from formmail.schemas import NotificationRequest
from formmail.services import notifier as notifier_mod
from formmail.services.notifier import (
    DryRunNotifier,
    ResendNotifier,
    SmtpNotifier,
    build_notifier,
)


def _request(**overrides):
    data = {
        "from": "Easy Way Loans <onboarding@resend.dev>",
        "to": "office@easywayloan.com",
        "replyTo": "a@x.com",
        "subject": "New Enquiry from Asha",
        "html": "<p>hi</p>",
        "text": "hi",
    }
    data.update(overrides)
    return NotificationRequest(**data)


def _send(n, req):
    async def _go():
        try:
            return await n.send(req)
        finally:
            await n.aclose()

    return asyncio.run(_go())


# ---- Resend ------------------------------------------------------------------


def test_resend_posts_payload_and_returns_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "4ef9a417"})

    n = ResendNotifier("re_test", transport=httpx.MockTransport(handler))
    result = _send(n, _request())

    assert result.success is True
    assert result.id == "4ef9a417"
    assert seen["url"] == "https://api.resend.com/emails"
    assert seen["auth"] == "Bearer re_test"
    assert seen["body"] == {
        "from": "Easy Way Loans <onboarding@resend.dev>",
        "to": ["office@easywayloan.com"],
        "subject": "New Enquiry from Asha",
        "html": "<p>hi</p>",
        "text": "hi",
        "reply_to": "a@x.com",
    }


def test_resend_without_id_returns_none():
    n = ResendNotifier("re_test", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="")))
    assert _send(n, _request()).id is None


def test_resend_api_error_is_rejection():
    def handler(request):
        return httpx.Response(422, json={"name": "validation_error", "message": "Invalid `to` field"})

    n = ResendNotifier("re_test", transport=httpx.MockTransport(handler))
    with pytest.raises(DeliveryRejected) as exc:
        _send(n, _request())
    assert exc.value.status == 422
    assert "Invalid `to` field" in exc.value.detail


def test_resend_network_error_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    n = ResendNotifier("re_test", transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError) as exc:
        _send(n, _request())
    assert not isinstance(exc.value, DeliveryRejected)


def test_resend_requires_key():
    with pytest.raises(ValueError):
        ResendNotifier("")


# ---- SMTP --------------------------------------------------------------------


class FakeSMTP:
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.steps = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        self.steps.append("ehlo")

    def starttls(self, context=None):
        self.steps.append("starttls")

    def login(self, user, pwd):
        self.steps.append(("login", user))

    def send_message(self, msg):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(notifier_mod.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_smtp_sends_multipart_with_reply_to(fake_smtp):
    n = SmtpNotifier("smtp.example.com", 587, "user", "pw")
    result = _send(n, _request())

    conn = fake_smtp.instances[0]
    assert (conn.host, conn.port) == ("smtp.example.com", 587)
    assert conn.steps == ["ehlo", "starttls", "ehlo", ("login", "user")]
    msg = conn.sent[0]
    assert msg["Reply-To"] == "a@x.com"
    assert msg["To"] == "office@easywayloan.com"
    assert msg.get_body(preferencelist=("html",)).get_content().strip() == "<p>hi</p>"
    assert msg.get_body(preferencelist=("plain",)).get_content().strip() == "hi"
    assert result.success is True
    assert result.id == msg["Message-ID"]


def test_smtp_rejection(fake_smtp):
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({"office@easywayloan.com": (550, b"no such user")})
    n = SmtpNotifier("smtp.example.com", 587, "user", "pw")
    with pytest.raises(DeliveryRejected):
        _send(n, _request())


def test_smtp_network_failure(fake_smtp):
    fake_smtp.fail_with = ConnectionRefusedError("refused")
    n = SmtpNotifier("smtp.example.com", 587, "user", "pw")
    with pytest.raises(TransportError) as exc:
        _send(n, _request())
    assert not isinstance(exc.value, DeliveryRejected)


def test_smtp_requires_credentials():
    with pytest.raises(ValueError):
        SmtpNotifier("smtp.example.com", 587, "", "")


# ---- dry run / selection -----------------------------------------------------


def test_dry_run_returns_null_id():
    result = _send(DryRunNotifier(), _request())
    assert result.success is True
    assert result.id is None


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({}, DryRunNotifier),
        ({"RESEND_API_KEY": "re_x"}, ResendNotifier),
        ({"SMTP_HOST": "smtp.x", "SMTP_USERNAME": "u", "SMTP_PASSWORD": "p"}, SmtpNotifier),
        ({"RESEND_API_KEY": "re_x", "SMTP_HOST": "smtp.x"}, ResendNotifier),
        ({"RESEND_API_KEY": "re_x", "EMAIL_DRY_RUN": True}, DryRunNotifier),
        ({"EMAIL_TRANSPORT": "dry_run", "RESEND_API_KEY": "re_x"}, DryRunNotifier),
        (
            {"EMAIL_TRANSPORT": "smtp", "RESEND_API_KEY": "re_x",
             "SMTP_HOST": "smtp.x", "SMTP_USERNAME": "u", "SMTP_PASSWORD": "p"},
            SmtpNotifier,
        ),
    ],
)
def test_build_notifier_selection(kwargs, expected):
    n = build_notifier(Settings(**kwargs))
    try:
        assert isinstance(n, expected)
    finally:
        asyncio.run(n.aclose())


@pytest.mark.parametrize(
    "kwargs",
    [
        {"EMAIL_TRANSPORT": "resend"},
        {"EMAIL_TRANSPORT": "smtp", "SMTP_HOST": "smtp.x"},
        {"EMAIL_TRANSPORT": "carrier-pigeon"},
    ],
)
def test_build_notifier_misconfigured(kwargs):
    with pytest.raises(ValueError):
        build_notifier(Settings(**kwargs))


@pytest.mark.parametrize(
    "response, expected_id",
    [
        (httpx.Response(200, json={"id": 42}), "42"),
        (httpx.Response(200, json=["ok"]), None),
        (httpx.Response(200, json={"data": {"id": "x"}}), None),
    ],
)
def test_resend_accepted_send_with_unusual_body_is_success(response, expected_id):
    n = ResendNotifier("re_test", transport=httpx.MockTransport(lambda r: response))
    result = _send(n, _request())
    assert result.success is True
    assert result.id == expected_id


def test_smtp_unusable_header_is_rejection(fake_smtp):
    n = SmtpNotifier("smtp.example.com", 587, "user", "pw")
    with pytest.raises(DeliveryRejected):
        _send(n, _request(replyTo="a@x.com\r\nBcc: x@y"))
    assert fake_smtp.instances == []


@pytest.mark.parametrize("env", ["prod", "production", "staging"])
def test_build_notifier_without_transport_outside_dev_fails(env):
    with pytest.raises(ValueError):
        build_notifier(Settings(ENV=env, SEND_TO_EMAIL="office@easywayloan.com"))


@pytest.mark.parametrize("kwargs", [{"EMAIL_DRY_RUN": True}, {"EMAIL_TRANSPORT": "dry_run"}])
def test_build_notifier_explicit_dry_run_outside_dev(kwargs):
    assert isinstance(build_notifier(Settings(ENV="prod", **kwargs)), DryRunNotifier)
