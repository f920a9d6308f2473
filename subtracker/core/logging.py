from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

HANDLER_NAME = "subtracker"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_KNOWN_FIELDS = {
    "method",
    "path",
    "status_code",
    "duration_ms",
    "field",
    "value",
    "subscription_id",
    "error",
}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        extras: dict[str, Any] = {
            key: value for key, value in record.__dict__.items() if key in _KNOWN_FIELDS
        }
        if record.exc_info:
            extras["exception"] = self.formatException(record.exc_info)

        error_value = extras.get("error")
        if isinstance(error_value, str):
            extras["error"] = error_value[:500]

        payload["fields"] = extras
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger with either plain text or JSON output."""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.set_name(HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    # Only replace our own handler; foreign handlers (e.g. test capture) stay attached.
    for existing in list(root_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
