"""
Structured logging configuration for the Company AI engine.

Plain stdlib logging: modules call logging.getLogger(__name__) and log an
event name with extra={...} fields. configure_logging() decides how those
records are rendered.

Environments:
- production: one JSON object per line on stdout
- anything else: colored single-line text on stderr

The request id lives in a ContextVar so it follows a request across the
asyncio tasks spawned for it (e.g. concurrent department analyses).

Usage:
    from company_ai.observability.logging_config import configure_logging, set_request_id

    configure_logging()  # reads COMPANY_AI_ENV
    set_request_id("req-42")

    logger = logging.getLogger(__name__)
    logger.info("department_analyzed", extra={
        "company_id": "acme",
        "department_type": "sales",
        "duration_ms": 812,
    })
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

ENV_VAR = "COMPANY_AI_ENV"

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai", "google_genai")

# ─── Request Context ──────────────────────────────────────────────────

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "company_ai_request_id", default=None
)


def set_request_id(request_id: str) -> None:
    """Tag every record logged from the current context with `request_id`."""
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set(None)


class ContextFilter(logging.Filter):
    """Copies the current request id onto each record that passes through."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = _request_id.get()
        if request_id:
            record.request_id = request_id  # type: ignore[attr-defined]
        return True


# ─── Record helpers ───────────────────────────────────────────────────

# Attributes every LogRecord carries; anything else came from extra={...}
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime",
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED and not key.startswith("_")
    }


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


# ─── Formatters ───────────────────────────────────────────────────────


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record:

        {"timestamp": "2024-05-01T12:00:00+00:00", "level": "INFO",
         "logger": "company_ai.service", "message": "company_analyzed",
         "request_id": "req-42", "company_id": "acme", "duration_ms": 2310}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, _json_safe(value)) for key, value in _extra_fields(record).items()
        )
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """
    Human-readable single line for local runs:

        [12:00:00] INFO     company_ai.service: company_analyzed [company_id=acme]

    Only the fields in SHOWN_FIELDS are printed, in that order.
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    SHOWN_FIELDS = (
        "request_id", "company_id", "department_type", "provider",
        "model", "severity", "duration_ms", "error",
    )

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        fields = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self.SHOWN_FIELDS
            if getattr(record, key, None) is not None
        )
        line = (
            f"[{self.formatTime(record, '%H:%M:%S')}] "
            f"{color}{record.levelname:<8}{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        if fields:
            line += f" [{fields}]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ─── Configuration ────────────────────────────────────────────────────


def configure_logging(
    env: Optional[str] = None,
    level: int = logging.INFO,
) -> None:
    """
    Install a single handler on the root logger.

    Args:
        env: "production" for JSON output; defaults to $COMPANY_AI_ENV,
             then "development".
        level: Root log level.
    """
    env = (env or os.environ.get(ENV_VAR) or "development").strip().lower()

    if env == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(DevFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Vendor SDKs log every HTTP round-trip at INFO
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
