"""Structured JSON logging for the plan engine.

Records carry their ``ctx_*`` extras under ``context`` with the prefix
stripped, so a warning raised while scheduling week 7 of a marathon plan
reads ``{"context": {"week": 7, "goal": "marathon", ...}}``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

ENGINE_NAME = "run-periodizer"
CONTEXT_PREFIX = "ctx_"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with the engine and environment."""

    def __init__(self, app_env: Optional[str] = None):
        super().__init__()
        self.app_env = app_env

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "engine": ENGINE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if self.app_env:
            log_entry["env"] = self.app_env
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        context = {
            k[len(CONTEXT_PREFIX):]: v for k, v in record.__dict__.items() if k.startswith(CONTEXT_PREFIX)
        }
        if context:
            log_entry["context"] = context
        return json.dumps(log_entry, default=str)


def plan_context(goal: str, methodology: str, **fields: Any) -> dict[str, Any]:
    """``extra=`` mapping that tags a record with the plan being generated."""
    extra = {f"{CONTEXT_PREFIX}goal": goal, f"{CONTEXT_PREFIX}methodology": methodology}
    extra.update({f"{CONTEXT_PREFIX}{k}": v for k, v in fields.items()})
    return extra


def setup_logging(level: str = "INFO", app_env: Optional[str] = None) -> None:
    """Configure structured JSON logging to stdout. Safe to call repeatedly."""
    root = logging.getLogger()
    if any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(app_env))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # pandas emits chatty debug records when frames are grouped
    logging.getLogger("pandas").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger for a module."""
    return logging.getLogger(name)
