"""Logging setup for the MCP server.

All output goes to stderr: with the stdio transport, stdout carries the
MCP protocol stream and must never receive log lines.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from exa_websets.app.core.config import settings

# Extra fields attached to records by the client and tool layers
CONTEXT_FIELDS = (
    "request_id",
    "tool",
    "method",
    "path",
    "attempt",
    "error_kind",
    "status_code",
    "duration_ms",
)

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
STRUCTURED_FORMAT = TEXT_FORMAT + " [request_id=%(request_id)s tool=%(tool)s error_kind=%(error_kind)s]"


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Context fields set to None are omitted. Any other non-standard
    attribute passed through ``extra=`` ends up under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record all context fields so format strings can use them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, None)
        return True


def get_logging_config() -> Dict[str, Any]:
    """Build a ``logging.config.dictConfig`` dict from the current settings."""
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    if log_format == "json":
        formatter: Dict[str, Any] = {"()": "exa_websets.app.core.logging.JSONFormatter"}
    elif log_format == "structured":
        formatter = {"format": STRUCTURED_FORMAT}
    else:
        formatter = {"format": TEXT_FORMAT}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"context": {"()": "exa_websets.app.core.logging.ContextFilter"}},
        "formatters": {log_format: formatter},
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": sys.stderr,
                "level": log_level,
                "formatter": log_format,
                "filters": ["context"],
            },
        },
        "loggers": {
            "exa_websets": {"level": log_level, "handlers": ["stderr"], "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": ["stderr"]},
    }


def setup_logging() -> None:
    """Configure logging for the server process."""
    logging.config.dictConfig(get_logging_config())

    for noisy in ("httpx", "httpcore", "mcp"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = "exa_websets") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    request_id: Optional[str] = None,
    tool: Optional[str] = None,
    method: Optional[str] = None,
    path: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for a log call, dropping None values.

    Example:
        >>> logger.info("Calling API", extra=get_log_context(method="GET", path="/websets"))
    """
    context = {"request_id": request_id, "tool": tool, "method": method, "path": path, **extra}
    return {key: value for key, value in context.items() if value is not None}
