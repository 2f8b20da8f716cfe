"""Logging setup for applications embedding the Atmos client.

The library only emits records through ``logging.getLogger(__name__)``
loggers under the ``atmosclient`` namespace. Nothing here runs on import.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any

LOGGER_NAMESPACE = "atmosclient"

# Extra attributes attached to per-request log records by the client
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "uid")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Fields: timestamp, level, logger, message, plus the request extras
    listed in ``REQUEST_FIELDS`` when present on the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in REQUEST_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def request_extra(
    method: str,
    path: str,
    status: int | None,
    started: float,
    uid: str | None = None,
) -> dict[str, Any]:
    """Build the ``extra`` mapping for a completed-request log record.

    Args:
        method: HTTP method of the request.
        path: Request path (without host).
        status: Response status, or None when no response was received.
        started: ``time.monotonic()`` value taken before sending.
        uid: The Atmos UID that signed the request.

    Returns:
        A dict suitable for ``logger.debug(..., extra=...)``.
    """
    return {
        "method": method,
        "path": path,
        "status": status,
        "duration_ms": round((time.monotonic() - started) * 1000, 2),
        "uid": uid,
    }


def configure_logging(
    level: str = "INFO",
    fmt: str = "text",
    logger_name: str = LOGGER_NAMESPACE,
) -> logging.Logger:
    """Attach a stderr handler to the client's logger namespace.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Format type, 'text' for human-readable or 'json' for structured.
        logger_name: Logger to configure. Pass "" to configure the root logger.

    Returns:
        The configured logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    target = logging.getLogger(logger_name)
    target.setLevel(numeric_level)

    for handler in target.handlers[:]:
        target.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    target.addHandler(handler)
    return target
