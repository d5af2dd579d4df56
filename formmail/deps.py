# formmail/deps.py
from fastapi import Request

from formmail.services.intake import FormIntakeHandler


def get_intake_handler(request: Request) -> FormIntakeHandler:
    return request.app.state.intake_handler
