# formmail/services/rendering.py
from __future__ import annotations

import html
import re

from formmail.schemas import Submission

SUBJECTS = {
    "Application Form": "New Loan Application from {name}",
    "Contact Form": "New Contact Request from {name}",
    "Home Contact": "New Enquiry from {name}",
}

PLACEHOLDER = "-"
UNKNOWN_PAGE = "Unknown"

_NEWLINES = re.compile(r"\r\n|\r|\n")


def escape(value: str | None) -> str:
    """Escape &, < and > only; quotes are left alone since nothing lands in an attribute."""
    return html.escape(value or "", quote=False)


def header_safe(value: str | None) -> str:
    """Collapse runs of whitespace, CR/LF included, to single spaces."""
    return " ".join((value or "").split())


def subject_for(source_page: str | None, name: str, default: str = "New Enquiry from {name}") -> str:
    template = SUBJECTS.get(source_page or "", default)
    return template.replace("{name}", header_safe(name))


def _message_html(message: str | None) -> str:
    return _NEWLINES.sub("<br>", escape(message or PLACEHOLDER))


def render_html(sub: Submission, subject: str) -> str:
    return f"""
<h2>{escape(subject)}</h2>
<p><strong>Name:</strong> {escape(sub.name)}</p>
<p><strong>Email:</strong> {escape(sub.email)}</p>
<p><strong>Phone:</strong> {escape(sub.phone or PLACEHOLDER)}</p>
<p><strong>Loan Type:</strong> {escape(sub.loan_type or PLACEHOLDER)}</p>
<p><strong>Message:</strong></p>
<p>{_message_html(sub.message)}</p>
<p>Submitted from page: <strong>{escape(sub.source_page or UNKNOWN_PAGE)}</strong></p>
""".strip()


def render_text(sub: Submission) -> str:
    lines = [
        f"Name:      {sub.name or ''}",
        f"Email:     {sub.email or ''}",
        f"Phone:     {sub.phone or PLACEHOLDER}",
        f"Loan Type: {sub.loan_type or PLACEHOLDER}",
        "",
        "Message:",
        _NEWLINES.sub("\n", sub.message or PLACEHOLDER),
        "",
        f"Submitted from page: {sub.source_page or UNKNOWN_PAGE}",
    ]
    return "\n".join(lines)
