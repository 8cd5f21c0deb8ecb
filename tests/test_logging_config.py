"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys

from periodizer.logging_config import ENGINE_NAME, JSONFormatter, get_logger, plan_context, setup_logging


def _record(msg="hello %s", args=("world",), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="test", level=level, pathname="test.py",
        lineno=1, msg=msg, args=args, exc_info=exc_info
    )


def test_json_formatter_outputs_valid_json():
    parsed = json.loads(JSONFormatter().format(_record()))
    assert parsed["message"] == "hello world"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "test"
    assert parsed["engine"] == ENGINE_NAME
    assert parsed["location"].endswith(":1")
    assert "timestamp" in parsed
    assert "context" not in parsed
    assert "env" not in parsed


def test_json_formatter_tags_environment():
    parsed = json.loads(JSONFormatter(app_env="staging").format(_record()))
    assert parsed["env"] == "staging"


def test_json_formatter_includes_exception():
    try:
        raise ValueError("test error")
    except ValueError:
        exc_info = sys.exc_info()
    parsed = json.loads(JSONFormatter().format(_record("fail", (), exc_info, logging.ERROR)))
    assert parsed["exception"]["type"] == "ValueError"
    assert parsed["exception"]["message"] == "test error"


def test_json_formatter_collects_context_extras():
    record = _record()
    record.ctx_week = 3
    record.ctx_phases = {"base": 4}
    record.unrelated = "skip"
    parsed = json.loads(JSONFormatter().format(record))
    assert parsed["context"] == {"week": 3, "phases": {"base": 4}}


def test_plan_context_prefixes_fields():
    extra = plan_context("marathon", "daniels", week=7)
    assert extra == {"ctx_goal": "marathon", "ctx_methodology": "daniels", "ctx_week": 7}
    record = _record()
    record.__dict__.update(extra)
    parsed = json.loads(JSONFormatter().format(record))
    assert parsed["context"] == {"goal": "marathon", "methodology": "daniels", "week": 7}


def test_get_logger_returns_named_logger():
    log = get_logger("my.module")
    assert log.name == "my.module"
    assert isinstance(log, logging.Logger)


def test_setup_logging_idempotent():
    root = logging.getLogger()
    initial_count = len(root.handlers)
    setup_logging()
    setup_logging()
    # Should not add duplicate handlers
    assert len(root.handlers) <= initial_count + 1
