# formmail/routers/forms.py
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from formmail.deps import get_intake_handler
from formmail.errors import ValidationError
from formmail.schemas import Submission
from formmail.services.intake import FormIntakeHandler

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["forms"])


async def _read_body(request: Request) -> dict:
    """Parse JSON or form bodies; anything unreadable counts as empty."""
    ct = (request.headers.get("content-type") or "").lower()
    raw = {}
    if ct.startswith("application/x-www-form-urlencoded") or ct.startswith("multipart/form-data"):
        try:
            form = await request.form()
            raw = dict(form)
        except Exception as e:  # malformed multipart etc.
            log.info("Unreadable form body: %r", e)
    else:
        try:
            raw = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raw = {}
    return raw if isinstance(raw, dict) else {}


@router.post("/send-form")
async def send_form(request: Request, handler: FormIntakeHandler = Depends(get_intake_handler)):
    raw = await _read_body(request)

    try:
        submission = Submission.model_validate(raw)
    except PydanticValidationError as e:
        log.info("Rejected form: invalid field types (%s)", e.error_count())
        return JSONResponse({"success": False, "error": "Invalid form data"}, status_code=400)

    try:
        result = await handler.handle(submission)
    except ValidationError as e:
        log.info("Rejected form: %s", e)
        return JSONResponse({"success": False, "error": e.public_message}, status_code=400)

    status_code = 200 if result.success else 500
    return JSONResponse(result.to_response(), status_code=status_code)
