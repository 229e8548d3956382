"""
Logging setup for the Durak server.

Production gets one JSON object per line; everything else gets a short
coloured line. Both formats carry whatever connection context is set:
the HTTP request id, the WebSocket's player id and the game it is seated
in.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
player_id_var: ContextVar[Optional[str]] = ContextVar("player_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

_CONTEXT_VARS = {
    "request_id": request_id_var,
    "player_id": player_id_var,
    "session_id": session_id_var,
}

# Short labels and how much of each value the dev formatter shows
_DEV_LABELS = {
    "request_id": ("req", 8),
    "player_id": ("player", 8),
    "session_id": ("session", None),
}

_NOISY_LOGGERS = ("uvicorn.access", "uvicorn.error", "websockets", "asyncio")


def _context_values(record: logging.LogRecord) -> dict:
    """Context for a record; `extra=` values win over context vars."""
    values = {}
    for name, var in _CONTEXT_VARS.items():
        value = getattr(record, name, None) or var.get()
        if value:
            values[name] = value
    return values


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_values(record),
        }

        if record.levelno >= logging.ERROR:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Compact coloured lines for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        parts = []
        for name, value in _context_values(record).items():
            label, width = _DEV_LABELS[name]
            parts.append(f"{label}={str(value)[:width]}")
        context = f" [{', '.join(parts)}]" if parts else ""

        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}{context} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Root log level name; unknown names fall back to INFO.
        environment: "production" selects JSON output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JSONFormatter() if environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, environment={environment}")
