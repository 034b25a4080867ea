"""Logging setup for applications using the Booqable client.

The library only attaches a ``NullHandler`` to the ``booqable`` logger. Applications
call :func:`configure_logging` to route records somewhere, or set the ``debug`` client
option, which calls :func:`enable_debug_logging`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

PACKAGE_LOGGER = "booqable"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers whose chatter hides the request log lines.
NOISY_LOGGERS = ("httpx", "httpcore")

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record.

    ``extra=`` fields (method, url, status_code, elapsed_ms, ...) land in ``context``:

        {"level": "DEBUG",
         "message": "HTTP response GET https://demo.booqable.com/api/4/orders -> 200",
         "timestamp": "2026-01-29T12:00:00.000000+00:00",
         "context": {"logger_name": "booqable.http", "status_code": 200, ...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        context.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, _ = record.exc_info
            context["error_type"] = exc_type.__name__
            context["error_message"] = str(exc)
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        return json.dumps(
            {
                "level": record.levelname,
                "message": record.getMessage(),
                "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "context": context,
            },
            default=str,
        )


def _quiet_noisy_loggers() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Configure the root logger.

    Safe to call again; the previous root handlers are replaced.

    Args:
        level: Level name, case-insensitive (e.g. "debug")
        format_string: Text format; ignored when ``structured`` is set
        filename: Log file path; stdout when None
        structured: Emit JSON lines via :class:`StructuredJSONFormatter`

    Examples:
        >>> configure_logging(level="DEBUG")
        >>> configure_logging(structured=True, filename="booqable.jsonl")
    """
    handler: logging.Handler = (
        logging.FileHandler(filename) if filename else logging.StreamHandler(sys.stdout)
    )
    handler.setFormatter(
        StructuredJSONFormatter()
        if structured
        else logging.Formatter(format_string or TEXT_FORMAT)
    )

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
    _quiet_noisy_loggers()


def enable_debug_logging() -> logging.Logger:
    """Print DEBUG records of the ``booqable`` logger to stdout.

    The stdout handler is attached once, however often this is called.

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)
    if not any(getattr(h, "_booqable_debug", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        handler._booqable_debug = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
