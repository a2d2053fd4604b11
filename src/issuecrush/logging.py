"""Structured logging for the IssueCrush server.

Records are emitted as one JSON object per line. The formatter is also the
single place where credentials are scrubbed: token-bearing extras are redacted
and session ids are shortened, so call sites can pass them through ``extra=``
without repeating that logic.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

REDACTED = "[redacted]"
SESSION_ID_VISIBLE_CHARS = 8

_SECRET_EXTRA_KEYS: frozenset[str] = frozenset(
    {"token", "access_token", "github_token", "client_secret", "api_key", "authorization"}
)
_SESSION_EXTRA_KEYS: frozenset[str] = frozenset({"session", "session_id"})

# Anything already on a bare LogRecord is not caller-supplied context.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "uvicorn.access")


def shorten_session_id(session_id: str) -> str:
    if len(session_id) <= SESSION_ID_VISIBLE_CHARS:
        return session_id
    return f"{session_id[:SESSION_ID_VISIBLE_CHARS]}..."


def scrub_extra(key: str, value: Any) -> Any:
    """Return ``value`` safe for the log stream."""

    if key.lower() in _SECRET_EXTRA_KEYS:
        return REDACTED if value else value
    if key in _SESSION_EXTRA_KEYS and isinstance(value, str):
        return shorten_session_id(value)
    return value


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: scrub_extra(key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Send JSON logs to stdout at ``level``, replacing existing root handlers."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    # Per-request client logs duplicate the request middleware's line.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
