"""Structured JSON logging module.

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves. Applications and the CLI call
``setup_logging`` to emit one JSON object per record, including the
pipeline context of the run that produced it.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional, TextIO

from tensorprep.settings import get_settings

# Name of the pipeline currently running in this context
pipeline_var: ContextVar[str | None] = ContextVar("pipeline", default=None)

EXTRA_FIELDS = ("pipeline", "operation", "latency_ms", "shape", "dtype")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON objects with standardized fields:
    - timestamp: ISO format timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - pipeline: Pipeline context, from the record or the active run
    - operation, latency_ms, shape, dtype: Optional extra fields
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        pipeline = pipeline_var.get()
        if pipeline:
            log_data["pipeline"] = pipeline

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                value = getattr(record, key)
                log_data[key] = list(value) if isinstance(value, tuple) else value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Handler:
    """Send every record through a single JSON handler on the root logger.

    Handlers already on the root logger are replaced, so repeated calls
    never duplicate output.

    Args:
        level: Level name, case-insensitive (defaults to ``Settings.LOG_LEVEL``)
        stream: Destination (defaults to stdout at call time)

    Returns:
        The installed handler
    """
    if level is None:
        level = get_settings().LOG_LEVEL

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(level.upper())
    return handler
