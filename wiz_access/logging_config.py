"""Structured JSON logging configuration.

Logs go to stderr so that `wiz-access sync` can keep stdout for records.
LOG_FORMAT=text switches to a plain formatter for interactive runs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# Extra fields attached by the client, the builders and the runner
_EXTRA_FIELDS = (
    "resource_type",
    "operation",
    "records",
    "skipped",
    "attempt",
    "delay_s",
    "duration_s",
    "status_code",
    "capability",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Attach a single stderr handler to the ``wiz_access`` logger tree."""
    handler = logging.StreamHandler(sys.stderr)
    if log_format.lower() == "text":
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())
    logger = logging.getLogger("wiz_access")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
