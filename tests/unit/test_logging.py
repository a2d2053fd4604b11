"""Unit tests for structured logging."""

from __future__ import annotations

import json
import logging
import sys

from issuecrush.logging import REDACTED, JsonFormatter, configure_logging, shorten_session_id


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="issuecrush.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Fetched %d issues",
        args=(3,),
        exc_info=None,
    )
    record.repo = "octo-org/octo-app"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "issuecrush.test"
    assert payload["message"] == "Fetched 3 issues"
    assert payload["extra"] == {"repo": "octo-org/octo-app"}


def test_json_formatter_renders_exceptions() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("issuecrush.test").makeRecord(
            "issuecrush.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]
    assert "extra" not in payload


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("info")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_json_formatter_scrubs_credentials_and_session_ids() -> None:
    record = logging.LogRecord(
        name="issuecrush.sessions.store",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Session created",
        args=(),
        exc_info=None,
    )
    record.session = "a" * 64
    record.token = "ghp_secret"
    record.access_token = "gho_secret"
    record.github_token = ""
    record.backend = "memory"

    line = JsonFormatter().format(record)
    extra = json.loads(line)["extra"]

    assert extra["session"] == "aaaaaaaa..."
    assert extra["token"] == REDACTED
    assert extra["access_token"] == REDACTED
    assert extra["github_token"] == ""
    assert extra["backend"] == "memory"
    assert "secret" not in line


def test_shorten_session_id_leaves_short_values() -> None:
    assert shorten_session_id("abc") == "abc"
    assert shorten_session_id("0123456789") == "01234567..."
