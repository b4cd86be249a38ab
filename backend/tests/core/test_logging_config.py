"""Unit tests for courseware.core.logging_config."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from courseware.core.logging_config import JSONFormatter, configure_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("courseware.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "courseware.test"
        assert entry["message"] == "hello"
        assert "timestamp" in entry

    def test_sweep_extra_carried(self):
        sweep = {"deleted": {"courses": 1}, "total": 1}
        entry = json.loads(JSONFormatter().format(_record(sweep=sweep)))
        assert entry["sweep"] == sweep

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "courseware.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestConfigureLogging:
    @pytest.fixture
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield root
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_production_uses_json(self, restore_root):
        configure_logging("production", "WARNING")
        assert restore_root.level == logging.WARNING
        assert len(restore_root.handlers) == 1
        assert isinstance(restore_root.handlers[0].formatter, JSONFormatter)

    def test_development_is_plain(self, restore_root):
        configure_logging("development", "debug")
        assert restore_root.level == logging.DEBUG
        assert not isinstance(restore_root.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root):
        configure_logging("development", "chatty")
        assert restore_root.level == logging.INFO
