# formmail/services/intake.py
from __future__ import annotations

import logging

from formmail.config import IntakePolicy
from formmail.errors import DeliveryRejected, TransportError, ValidationError
from formmail.schemas import NotificationRequest, NotificationResult, Submission
from formmail.services.notifier import Notifier
from formmail.services.rendering import header_safe, render_html, render_text, subject_for

log = logging.getLogger(__name__)

SEND_FAILED = "Failed to send email"
SERVER_ERROR = "Server error"


def missing_fields(sub: Submission, policy: IntakePolicy) -> list[str]:
    missing = [f for f in policy.required_fields if not sub.value_of(f)]
    if policy.required_any_of and not any(sub.value_of(f) for f in policy.required_any_of):
        missing.append(" or ".join(policy.required_any_of))
    return missing


class FormIntakeHandler:
    """
    Turns one form submission into one email.

    The notifier and policy are fixed at construction; handle() keeps no state
    between calls so one instance serves concurrent requests.
    """

    def __init__(self, notifier: Notifier, policy: IntakePolicy, recipient: str, sender: str):
        self.notifier = notifier
        self.policy = policy
        self.recipient = recipient
        self.sender = sender

    def validate(self, sub: Submission) -> None:
        missing = missing_fields(sub, self.policy)
        if missing:
            raise ValidationError(missing)

    def build_request(self, sub: Submission) -> NotificationRequest:
        subject = subject_for(sub.source_page, sub.name, self.policy.default_subject)
        return NotificationRequest(
            from_=self.sender,
            to=self.recipient,
            reply_to=header_safe(sub.email),
            subject=subject,
            html=render_html(sub, subject),
            text=render_text(sub),
        )

    async def handle(self, sub: Submission) -> NotificationResult:
        """
        Raises ValidationError before anything is sent. Transport failures come
        back as success=False with a generic error; detail only goes to the log.
        """
        self.validate(sub)
        request = self.build_request(sub)

        try:
            result = await self.notifier.send(request)
        except DeliveryRejected as e:
            log.error("%s send rejected: %s", self.notifier.name, e)
            return NotificationResult(success=False, error=SEND_FAILED)
        except TransportError as e:
            log.error("%s transport error: %s", self.notifier.name, e)
            return NotificationResult(success=False, error=SERVER_ERROR)
        except Exception:
            log.exception("Unexpected error sending form email")
            return NotificationResult(success=False, error=SERVER_ERROR)

        if not result.success:
            log.error("%s reported failure: %s", self.notifier.name, result.error)
            return NotificationResult(success=False, error=SEND_FAILED)

        log.info("Form email sent: subject=%r id=%s", request.subject, result.id)
        return NotificationResult(success=True, id=result.id)
