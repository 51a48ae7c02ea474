"""Console logging configuration for the CLI and the web app."""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional, Union


class JsonFormatter(logging.Formatter):
    """Serialize a log record into a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_logs: bool = False,
    stream: Optional[object] = None,
) -> logging.Logger:
    """Attach a console handler to the ``anonboard`` logger.

    Calling it twice replaces the previous handler instead of stacking
    duplicates.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("anonboard")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_anonboard_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._anonboard_console = True  # type: ignore[attr-defined]
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
    logger.addHandler(handler)
    return logger
