# formmail/services/notifier.py
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Protocol

import httpx
from starlette.concurrency import run_in_threadpool

from formmail.config import Settings
from formmail.errors import DeliveryRejected, TransportError
from formmail.schemas import NotificationRequest, NotificationResult

log = logging.getLogger(__name__)


class Notifier(Protocol):
    name: str

    async def send(self, request: NotificationRequest) -> NotificationResult: ...

    async def aclose(self) -> None: ...


# ---- Resend (HTTP API) -------------------------------------------------------


class ResendNotifier:
    name = "resend"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("RESEND_API_KEY is required for the resend transport")
        # one client for the process lifetime; requests share nothing else
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _payload(req: NotificationRequest) -> dict:
        payload = {
            "from": req.from_,
            "to": [req.to],
            "subject": req.subject,
            "html": req.html,
        }
        if req.text:
            payload["text"] = req.text
        if req.reply_to:
            payload["reply_to"] = req.reply_to
        return payload

    async def send(self, request: NotificationRequest) -> NotificationResult:
        try:
            r = await self._client.post("/emails", json=self._payload(request))
        except httpx.HTTPError as e:
            raise TransportError(f"Resend network error: {e!r}") from e

        if r.status_code >= 400:
            raise DeliveryRejected(r.text or "<no body>", status=r.status_code)

        # the email is accepted at this point; the body only supplies the id
        try:
            data = r.json()
        except ValueError:
            data = None
        message_id = data.get("id") if isinstance(data, dict) else None
        if message_id is not None:
            message_id = str(message_id)
        log.info("Resend send ok → %s id=%s", request.to, message_id)
        return NotificationResult(success=True, id=message_id)

    async def aclose(self) -> None:
        await self._client.aclose()


# ---- SMTP --------------------------------------------------------------------


class SmtpNotifier:
    name = "smtp"

    def __init__(self, host: str, port: int = 587, username: str = "", password: str = "", timeout: float = 20.0):
        if not (host and username and password):
            raise ValueError("SMTP transport needs SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD")
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    @staticmethod
    def build_message(req: NotificationRequest) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = req.from_
        msg["To"] = req.to
        msg["Subject"] = req.subject
        if req.reply_to:
            msg["Reply-To"] = req.reply_to
        msg["Message-ID"] = make_msgid()
        msg.set_content(req.text or "")
        msg.add_alternative(req.html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        context = ssl.create_default_context()
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            s.ehlo()
            s.starttls(context=context)
            s.ehlo()
            s.login(self.username, self.password)
            s.send_message(msg)

    async def send(self, request: NotificationRequest) -> NotificationResult:
        try:
            msg = self.build_message(request)
        except ValueError as e:
            # header values email.message refuses (embedded CR/LF etc.)
            raise DeliveryRejected(f"Unusable message headers: {e!r}") from e

        try:
            await run_in_threadpool(self._send_sync, msg)
        except smtplib.SMTPException as e:
            raise DeliveryRejected(f"SMTP send failed: {e!r}") from e
        except OSError as e:
            raise TransportError(f"SMTP error talking to {self.host}:{self.port}: {e!r}") from e

        log.info("SMTP send ok → %s via %s:%s", request.to, self.host, self.port)
        return NotificationResult(success=True, id=msg["Message-ID"])

    async def aclose(self) -> None:
        # connections are per-send
        return None


# ---- dry run -----------------------------------------------------------------


class DryRunNotifier:
    name = "dry_run"

    async def send(self, request: NotificationRequest) -> NotificationResult:
        log.info("[EMAIL DRY RUN] to=%s reply_to=%s subject=%s", request.to, request.reply_to, request.subject)
        return NotificationResult(success=True, id=None)

    async def aclose(self) -> None:
        return None


# ---- factory -----------------------------------------------------------------


def build_notifier(settings: Settings) -> Notifier:
    """
    Pick the transport:
    - EMAIL_DRY_RUN → dry run
    - EMAIL_TRANSPORT=resend|smtp|dry_run → that one (missing creds raise ValueError)
    - auto → Resend if RESEND_API_KEY, else SMTP if SMTP_HOST, else dry run in
      ENV=dev only; any other ENV raises ValueError
    """
    choice = settings.EMAIL_TRANSPORT
    if settings.EMAIL_DRY_RUN or choice == "dry_run":
        return DryRunNotifier()

    if choice == "auto":
        if settings.RESEND_API_KEY:
            choice = "resend"
        elif settings.SMTP_HOST:
            choice = "smtp"
        elif settings.ENV == "dev":
            log.warning("No email transport configured (RESEND_API_KEY / SMTP_HOST); using dry run")
            return DryRunNotifier()
        else:
            raise ValueError(
                f"No email transport configured for ENV={settings.ENV!r}: set RESEND_API_KEY or SMTP_HOST, "
                "or EMAIL_DRY_RUN=1 / EMAIL_TRANSPORT=dry_run to send nothing on purpose"
            )

    if choice == "resend":
        return ResendNotifier(
            settings.RESEND_API_KEY,
            base_url=settings.RESEND_API_URL,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    if choice == "smtp":
        return SmtpNotifier(
            settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Unknown EMAIL_TRANSPORT: {settings.EMAIL_TRANSPORT!r}")
