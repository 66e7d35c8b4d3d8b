"""Logging setup for harness runs.

Records carry the running scenario's ID and the emitting thread, since
emission workers and the log follower log from their own threads. Drain
credentials travel through cf arguments and service payloads, so every
handler gets a filter that scrubs PEM blocks, credential fields and
userinfo in drain URLs before anything is written.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Settings, get_settings


scenario_id_var: ContextVar[Optional[str]] = ContextVar("scenario_id", default=None)

REDACTED = "[REDACTED]"

# A truncated block (no END marker) is scrubbed to the end of the text
_PEM_BLOCK = re.compile(
    r"-----BEGIN [A-Z0-9 ]+-----(?:.*?-----END [A-Z0-9 ]+-----|.*)",
    re.DOTALL,
)
_CREDENTIAL_FIELD = re.compile(
    r"""(\b(?:cert|key|password|token|secret|authorization)\b["']?\s*[:=]\s*)"""
    r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|[^\s,}\]]+)""",
    re.IGNORECASE,
)
_DRAIN_USERINFO = re.compile(r"(syslog(?:-tls)?://)[^/@\s]+@", re.IGNORECASE)


def redact_secrets(text: str) -> str:
    """Scrub client key material and credential values from `text`."""
    text = _PEM_BLOCK.sub(REDACTED, text)
    text = _CREDENTIAL_FIELD.sub(rf"\1{REDACTED}", text)
    return _DRAIN_USERINFO.sub(rf"\1{REDACTED}@", text)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, include_location: bool = False):
        super().__init__()
        self.include_location = include_location

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }

        scenario_id = scenario_id_var.get()
        if scenario_id:
            log_data["scenario_id"] = scenario_id

        if record.exc_info:
            log_data["exception"] = redact_secrets(self.formatException(record.exc_info))

        if self.include_location:
            log_data["location"] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """`time LEVEL [scenario] (thread) logger: message`"""

    def format(self, record: logging.LogRecord) -> str:
        scenario_id = scenario_id_var.get()
        sid = f"[{scenario_id[:12]}] " if scenario_id else ""
        thread = f"({record.threadName}) " if record.threadName != "MainThread" else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:8} {sid}{thread}{record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + redact_secrets(self.formatException(record.exc_info))

        return base


class SensitiveDataFilter(logging.Filter):
    """Rewrite records whose message carries drain credentials."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(config: Settings | None = None) -> None:
    """Install a single stdout handler on the root logger."""
    config = config or get_settings()
    level = getattr(logging, config.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if config.log_format == "json":
        handler.setFormatter(StructuredFormatter(include_location=config.log_level == "DEBUG"))
    else:
        handler.setFormatter(TextFormatter())
    handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(handler)

    # Producer requests every cadence interval would drown the scenario log
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the drainwatch namespace."""
    return logging.getLogger(f"drainwatch.{name}")
