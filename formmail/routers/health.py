from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Form mail backend running"


@router.get("/health")
def health(request: Request):
    settings = request.app.state.settings
    return {"ok": True, "env": settings.ENV, "transport": request.app.state.notifier.name}
