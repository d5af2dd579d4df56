# formmail/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# load .env into process env vars (never overrides what the host already set)
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")

SUBMISSION_FIELDS = ("name", "email", "phone", "message", "loanType", "sourcePage")

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "https://darkblue-fly-926171.hostingersite.com",  # live test site
    "https://easywayloan.com",
    "https://www.easywayloan.com",
)


def _as_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in ("1", "true", "yes", "y", "on")


def _as_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, default)).strip())
    except ValueError:
        return default


def _as_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, default)).strip())
    except ValueError:
        return default


def _as_list(raw: str | None, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    """
    Accepts:  'a, b,,c'
    Returns:  ('a', 'b', 'c')
    """
    if raw is None:
        return default
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class IntakePolicy:
    """Which fields a submission must carry and the fallback subject line."""

    required_fields: tuple[str, ...] = ("name", "email", "phone")
    required_any_of: tuple[str, ...] = ()
    default_subject: str = "New Enquiry from {name}"

    def __post_init__(self):
        unknown = [f for f in self.required_fields + self.required_any_of if f not in SUBMISSION_FIELDS]
        if unknown:
            raise ValueError(f"Unknown submission field(s) in policy: {', '.join(unknown)}")

        # name + email are never optional
        required = tuple(dict.fromkeys(("name", "email") + self.required_fields))
        object.__setattr__(self, "required_fields", required)

        if not ({"phone", "message"} & set(required)) and not self.required_any_of:
            object.__setattr__(self, "required_any_of", ("phone", "message"))


@dataclass(frozen=True)
class Settings:
    # App
    ENV: str = "dev"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    ALLOWED_ORIGINS: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS

    # Intake
    POLICY: IntakePolicy = field(default_factory=IntakePolicy)

    # Email
    SEND_TO_EMAIL: str = ""
    FROM_EMAIL: str = "onboarding@resend.dev"
    FROM_NAME: str = "Easy Way Loans"
    EMAIL_TRANSPORT: str = "auto"  # auto | resend | smtp | dry_run
    EMAIL_DRY_RUN: bool = False
    EMAIL_TIMEOUT_SECONDS: float = 20.0

    # Resend (HTTP API)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com"

    # SMTP
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""

    @property
    def sender(self) -> str:
        if self.FROM_NAME:
            return f"{self.FROM_NAME} <{self.FROM_EMAIL}>"
        return self.FROM_EMAIL


def load_settings() -> Settings:
    """Build an immutable Settings snapshot from the current environment."""
    policy = IntakePolicy(
        required_fields=_as_list(os.getenv("REQUIRED_FIELDS"), ("name", "email", "phone")),
        required_any_of=_as_list(os.getenv("REQUIRED_ANY_OF")),
        default_subject=os.getenv("DEFAULT_SUBJECT") or "New Enquiry from {name}",
    )
    return Settings(
        ENV=os.getenv("ENV", "dev"),
        PORT=_as_int("PORT", 3000),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        LOG_FILE=os.getenv("LOG_FILE", "").strip(),
        ALLOWED_ORIGINS=_as_list(os.getenv("ALLOWED_ORIGINS"), DEFAULT_ALLOWED_ORIGINS),
        POLICY=policy,
        SEND_TO_EMAIL=os.getenv("SEND_TO_EMAIL", "").strip(),
        FROM_EMAIL=os.getenv("FROM_EMAIL", "onboarding@resend.dev").strip(),
        FROM_NAME=os.getenv("FROM_NAME", "Easy Way Loans").strip(),
        EMAIL_TRANSPORT=os.getenv("EMAIL_TRANSPORT", "auto").strip().lower(),
        EMAIL_DRY_RUN=_as_bool("EMAIL_DRY_RUN", False),
        EMAIL_TIMEOUT_SECONDS=_as_float("EMAIL_TIMEOUT_SECONDS", 20.0),
        RESEND_API_KEY=os.getenv("RESEND_API_KEY", "").strip(),
        RESEND_API_URL=os.getenv("RESEND_API_URL", "https://api.resend.com").strip().rstrip("/"),
        SMTP_HOST=os.getenv("SMTP_HOST", "").strip(),
        SMTP_PORT=_as_int("SMTP_PORT", 587),
        SMTP_USERNAME=os.getenv("SMTP_USERNAME", "").strip(),
        SMTP_PASSWORD=os.getenv("SMTP_PASSWORD", ""),
    )
