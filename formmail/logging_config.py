# formmail/logging_config.py
import logging
import logging.config
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def build_logging_config(level: str = "INFO", log_file: str = "") -> dict:
    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "access": {
                "format": "%(asctime)s | %(levelname)s | uvicorn.access | %(message)s",
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "access_console": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "level": level,
            },
        },

        "loggers": {},
        "root": {},
    }

    if log_file:
        path = Path(log_file)
        if not path.is_absolute():
            path = BASE_DIR / path
        path.parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": str(path),
            "maxBytes": 5 * 1024 * 1024,  # 5 MB
            "backupCount": 5,
            "encoding": "utf-8",
            "level": level,
        }
        handlers.append("file")

    config["loggers"] = {
        # Uvicorn core logs
        "uvicorn": {
            "handlers": handlers,
            "level": level,
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": handlers,
            "level": level,
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["access_console"],
            "level": level,
            "propagate": False,
        },
        # formmail.* propagates to root
        "formmail": {
            "level": level,
        },
    }
    config["root"] = {"handlers": handlers, "level": level}
    return config


def setup_logging(level: str = "INFO", log_file: str = "") -> None:
    logging.config.dictConfig(build_logging_config(level, log_file))
    logging.getLogger("formmail").info("Logging initialized (level=%s, file=%s)", level, log_file or "-")
