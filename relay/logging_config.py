"""Structured logging for the relay.

Every record is written as one JSON object per line. Structured fields travel
in ``extra={"context": {...}}`` and end up under the ``context`` key.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

SERVICE_NAME = "whatsapp-relay"

# Per-request chatter from the HTTP stack drowns out relay events.
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Handler:
    """Replace root handlers with a single JSON handler and return it."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"relay.{name}")


class IdentityLoggerAdapter(logging.LoggerAdapter):
    """Stamps the conversation identity on every record.

    Call sites may pass ``context={...}``; it is merged over the identity.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        merged = dict(self.extra)
        merged.update(kwargs.pop("context", None) or {})
        kwargs["extra"] = {"context": merged}
        return msg, kwargs


def identity_logger(name: str, identity: str) -> IdentityLoggerAdapter:
    return IdentityLoggerAdapter(get_logger(name), {"sender": identity})
