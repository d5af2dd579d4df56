# formmail/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formmail.config import Settings, load_settings
from formmail.logging_config import setup_logging
from formmail.routers.forms import router as forms_router
from formmail.routers.health import router as health_router
from formmail.services.intake import FormIntakeHandler
from formmail.services.notifier import DryRunNotifier, Notifier, build_notifier

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, notifier: Optional[Notifier] = None) -> FastAPI:
    settings = settings or load_settings()
    notifier = notifier or build_notifier(settings)

    if not settings.SEND_TO_EMAIL and not isinstance(notifier, DryRunNotifier):
        # a real transport needs somewhere to send to
        raise ValueError("SEND_TO_EMAIL must be set when a real email transport is configured")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Form mail backend up (transport=%s, origins=%d)", notifier.name, len(settings.ALLOWED_ORIGINS))
        yield
        await notifier.aclose()

    app = FastAPI(title="Form Mail Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.notifier = notifier
    app.state.intake_handler = FormIntakeHandler(
        notifier=notifier,
        policy=settings.POLICY,
        recipient=settings.SEND_TO_EMAIL,
        sender=settings.sender,
    )

    allowed = frozenset(settings.ALLOWED_ORIGINS)

    # ---------- Origin allow-list ----------
    @app.middleware("http")
    async def origin_guard(request: Request, call_next):
        origin = request.headers.get("origin")
        # no Origin = curl / server-to-server; preflight is answered by CORSMiddleware
        if origin and request.method != "OPTIONS" and origin not in allowed:
            log.warning("Blocked request from origin %s to %s", origin, request.url.path)
            return JSONResponse({"success": False, "error": "CORS not allowed"}, status_code=403)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.ALLOWED_ORIGINS),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"success": False, "error": "Server error"}, status_code=500)

    # ---------- Routers ----------
    app.include_router(health_router)
    app.include_router(forms_router)
    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
