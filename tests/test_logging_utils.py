"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from restock.logging_utils import configure_logging, session_context


def make_record(msg, *args):
    return logging.LogRecord(
        name="restock.test.logging",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


def render(record):
    handler = logging.getLogger().handlers[0]
    for filter_ in handler.filters:
        filter_.filter(record)
    return handler.format(record)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    formatted = render(make_record("Authorization header Bearer %s", secret))

    assert secret not in formatted
    assert "[redacted]" in formatted


def test_known_key_patterns_are_masked_without_configuration():
    configure_logging("INFO", "plain")

    formatted = render(make_record("calling %s", "http://llm.local/?api_key=abc123 with sk-abcdefghijkl"))

    assert "abc123" not in formatted
    assert "sk-abcdefghijkl" not in formatted


def test_json_records_carry_session_id():
    configure_logging("DEBUG", "json")

    with session_context("session-42"):
        inside = json.loads(render(make_record("pruning %d items", 3)))
    outside = json.loads(render(make_record("idle")))

    assert inside["session_id"] == "session-42"
    assert inside["message"] == "pruning 3 items"
    assert inside["level"] == "INFO"
    assert "session_id" not in outside


def test_httpx_is_kept_quiet():
    configure_logging("DEBUG", "plain")

    assert logging.getLogger("httpx").level == logging.WARNING
