"""Centralized logging setup: JSON formatter and handler installation."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset({
    "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno",
    "funcName", "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "name", "message",
    "taskName",
})

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Merges any `extra=` kwargs (e.g. ``type_tag``, ``offset``) directly into
    the payload so decode warnings can be filtered per block.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
                  .isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        # Merge any extra fields passed via logger.info(..., extra={...})
        for key, value in getattr(record, "__dict__", {}).items():
            if key not in _RESERVED_ATTRS:
                payload[key] = value

        # safe fallback for non-serializable objects
        return json.dumps(payload, default=str)


def configure_logging(
    level: int = logging.WARNING,
    json_output: bool = False,
    stream: Optional[Any] = None,
) -> logging.Handler:
    """Attach one handler to the ``dlx3`` package logger.

    Replaces a handler installed by a previous call, so calling this twice
    does not duplicate output.

    Args:
        level: Minimum level for the ``dlx3`` logger.
        json_output: Use ``JsonFormatter`` instead of the plain text format.
        stream: Target stream; ``sys.stderr`` when ``None``.

    Returns:
        The installed handler.
    """
    logger = logging.getLogger("dlx3")
    for handler in list(logger.handlers):
        if getattr(handler, "_dlx3_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))
    handler._dlx3_handler = True
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
