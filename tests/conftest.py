"""Pytest configuration: import path, env defaults and shared fakes."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

# Keep a developer's .env from pointing tests at a real transport
os.environ.setdefault("EMAIL_DRY_RUN", "1")

from formmail.config import IntakePolicy, Settings  # noqa: E402
from formmail.errors import TransportError  # noqa: E402
from formmail.schemas import NotificationRequest, NotificationResult  # noqa: E402


class RecordingNotifier:
    """Notifier double: records every request, optionally fails."""

    name = "fake"

    def __init__(self, result: NotificationResult | None = None, error: Exception | None = None):
        self.result = result or NotificationResult(success=True, id=None)
        self.error = error
        self.calls: list[NotificationRequest] = []
        self.closed = False

    async def send(self, request: NotificationRequest) -> NotificationResult:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.result

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SEND_TO_EMAIL="office@easywayloan.com",
        FROM_EMAIL="onboarding@resend.dev",
        FROM_NAME="Easy Way Loans",
        POLICY=IntakePolicy(required_fields=("name", "email", "phone")),
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(error=TransportError("connection reset by peer; api_key=re_secret"))


@pytest.fixture
def make_notifier():
    return RecordingNotifier
