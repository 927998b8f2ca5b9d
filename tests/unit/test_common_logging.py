"""Tests for structured logging helpers."""

import io
import json
import logging
import sys

import pytest

from pattern_common.logging_config import (
    JsonFormatter,
    apply_logging_settings,
    configure_logging,
    set_correlation_id,
    set_run_id,
)

pytestmark = pytest.mark.unit


def _capture(logger):
    stream = io.StringIO()
    base = logging.getLogger(logger.name)
    base.handlers[0].setStream(stream)
    return stream


class TestContextLogger:
    def test_text_mode_appends_fields(self):
        logger = configure_logging("tests:text")
        stream = _capture(logger)

        logger.info("scan:done", prefix="a/", count=3)

        line = stream.getvalue()
        assert "scan:done - prefix=a/ count=3" in line

    def test_json_mode_emits_fields_and_context_ids(self):
        logger = configure_logging("tests:json", log_format="json")
        stream = _capture(logger)
        set_correlation_id("corr-1")
        set_run_id("run-1")
        try:
            logger.warning("compare", distance=4)
        finally:
            set_correlation_id(None)
            set_run_id(None)

        record = json.loads(stream.getvalue())
        assert record["severity"] == "WARNING"
        assert record["distance"] == 4
        assert record["correlation_id"] == "corr-1"
        assert record["run_id"] == "run-1"

    def test_level_filtering(self):
        logger = configure_logging("tests:level", log_level="WARNING")
        stream = _capture(logger)

        logger.info("hidden")
        logger.error("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_reconfigure_replaces_handlers(self):
        configure_logging("tests:dup")
        configure_logging("tests:dup")

        assert len(logging.getLogger("tests:dup").handlers) == 1


class TestLoggingSettings:
    def test_environment_supplies_defaults(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        logger = configure_logging("tests:env")

        base = logging.getLogger(logger.name)
        assert isinstance(base.handlers[0].formatter, JsonFormatter)
        assert base.level == logging.WARNING

    def test_explicit_arguments_beat_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")

        logger = configure_logging("tests:explicit", log_format="%(message)s")

        formatter = logging.getLogger(logger.name).handlers[0].formatter
        assert not isinstance(formatter, JsonFormatter)

    def test_apply_reaches_loggers_created_earlier(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        logger = configure_logging("tests:early")
        assert not isinstance(logging.getLogger("tests:early").handlers[0].formatter, JsonFormatter)

        apply_logging_settings("DEBUG", "json")
        try:
            stream = _capture(logger)
            logger.debug("late", count=1)
            base = logging.getLogger("tests:early")
            assert isinstance(base.handlers[0].formatter, JsonFormatter)
            assert json.loads(stream.getvalue())["count"] == 1
        finally:
            apply_logging_settings("INFO")


def test_json_formatter_includes_exception():
    formatter = JsonFormatter()
    try:
        raise ValueError("bad")
    except ValueError:
        record = logging.LogRecord("n", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    payload = json.loads(formatter.format(record))
    assert "ValueError: bad" in payload["exc_info"]
