"""
Logging configuration for the ledger service.

- Development: human-readable console lines
- Production: one JSON object per line on stdout

Environment variables:
- LOG_FORMAT: "json" or "console" (default: console when DEBUG, else json)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG when DEBUG)
"""
import json
import logging
import os
from datetime import datetime, timezone

# LogRecord attributes that are not "extra" payload
_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


def get_logging_config(debug: bool = False) -> dict:
    """Build the Django LOGGING dict."""
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    if log_format == "json":
        formatters = {
            "json": {"()": "ledger_project.logging_config.JsonFormatter"},
        }
        formatter = "json"
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        formatter = "verbose"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": {
            "": {"handlers": ["console"], "level": log_level},
            "django": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "django.request": {
                "handlers": ["console"],
                "level": log_level if debug else "ERROR",
                "propagate": False,
            },
            # SQL echo only while debugging
            "django.db.backends": {
                "handlers": ["console"] if debug else ["null"],
                "level": "DEBUG" if debug else "INFO",
                "propagate": False,
            },
            # Application loggers
            "ledger_core": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "celery": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
        },
    }


class JsonFormatter(logging.Formatter):
    """
    JSON lines: timestamp, level, logger, message, plus any
    `extra={...}` fields passed by the caller (journal_number, amount, ...).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                # Decimal, date, model instances
                extras[key] = str(value)
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)
