"""Structured logging configuration with scoring run tracking."""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import settings


# Context variable identifying the scoring call a log line belongs to
scoring_run_id_var: ContextVar[Optional[str]] = ContextVar("scoring_run_id", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = scoring_run_id_var.get()
        if run_id:
            log_data["scoring_run_id"] = run_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        run_id = scoring_run_id_var.get()
        rid = f"[{run_id[:8]}] " if run_id else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:8} {rid}{record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class SensitiveDataFilter(logging.Filter):
    """Redact credentials that end up in log messages."""

    SENSITIVE_KEYS = {
        "api_key",
        "openai_api_key",
        "authorization",
        "password",
        "secret",
        "token",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage().lower()
        for key in self.SENSITIVE_KEYS:
            if key in message:
                record.msg = self._redact_value(str(record.msg), key)
        return True

    def _redact_value(self, text: str, key: str) -> str:
        """Redact values after sensitive keys."""
        patterns = [
            rf'({key}\s*[=:]\s*)[^\s,}}\]]+',
            rf"('{key}'\s*:\s*)[^\s,}}\]]+",
            rf'("{key}"\s*:\s*)[^\s,}}\]]+',
        ]
        for pattern in patterns:
            text = re.sub(pattern, r"\1[REDACTED]", text, flags=re.IGNORECASE)
        return text


def setup_logging() -> None:
    """Configure root logging for processes embedding Kronos."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, settings.log_level))

    if settings.log_format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(TextFormatter())

    handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("yfinance").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the kronos prefix."""
    return logging.getLogger(f"kronos.{name}")
