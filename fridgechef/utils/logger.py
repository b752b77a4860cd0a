"""Console logging for FridgeChef.

Two output styles, picked by LOG_TYPE:
- text (default): one colored line per record, prefixed with a level icon
- json: one JSON object per record, for log shippers

LOG_LEVEL (DEBUG, INFO, WARNING, ERROR; default INFO) sets the threshold.

Provider attempts are logged with `candidate`, `outcome` and `elapsed_ms`
passed through `extra=`; both styles render them.
"""

import json
import logging
import os
import sys
from typing import Any

ATTEMPT_FIELDS = ("candidate", "outcome", "elapsed_ms")

RESET = "\033[0m"

# level -> (ANSI color, icon)
LEVEL_STYLES = {
    "DEBUG": ("\033[36m", "🔍"),
    "INFO": ("\033[32m", "ℹ️"),
    "WARNING": ("\033[33m", "⚠️"),
    "ERROR": ("\033[31m", "❌"),
    "CRITICAL": ("\033[35m", "❌"),
}


def attempt_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the attempt extras present on a record, in ATTEMPT_FIELDS order."""
    return {field: getattr(record, field) for field in ATTEMPT_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **attempt_fields(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Extras may hold enums or models; fall back to str()
        return json.dumps(payload, default=str)


class RichTextFormatter(logging.Formatter):
    """Colored single-line output with a level icon and trailing [key=value] extras."""

    def format(self, record: logging.LogRecord) -> str:
        color, icon = LEVEL_STYLES.get(record.levelname, (RESET, ""))
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        line = f"{icon} {timestamp} {record.levelname:<8} {record.name:<20} {record.getMessage()}"
        extras = attempt_fields(record)
        if extras:
            line += " [" + " ".join(f"{key}={value}" for key, value in extras.items()) + "]"

        text = f"{color}{line}{RESET}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


FORMATTERS = {
    "text": RichTextFormatter,
    "json": JSONFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Return the named logger with a stdout handler attached.

    A logger that already has handlers is returned untouched, so repeated calls
    never duplicate output.

    Args:
        name: Logger name.

    Returns:
        The configured logger.
    """
    named_logger = logging.getLogger(name)
    if named_logger.handlers:
        return named_logger

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    formatter_class = FORMATTERS.get(os.getenv("LOG_TYPE", "text").lower(), RichTextFormatter)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter_class())

    named_logger.setLevel(level)
    named_logger.addHandler(handler)
    return named_logger


logger = get_logger("fridgechef")

# aiohttp logs every connection reuse at DEBUG
logging.getLogger("aiohttp").setLevel(logging.WARNING)
