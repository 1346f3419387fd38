"""
Log formatters for the Natours API.

``JsonFormatter`` emits one JSON object per record. Request lines written by
``RequestLoggingMiddleware`` carry their method, path, status and duration as
separate keys so log aggregators can filter on them.
"""

import json
import logging
from datetime import datetime, timezone

# Attributes copied from ``extra=...`` when a record carries them
REQUEST_FIELDS = ("method", "path", "status_code", "duration_ms")


class JsonFormatter(logging.Formatter):
    """
    Format log records as JSON.

    Every line has ``timestamp`` (UTC, ISO 8601), ``level``, ``logger`` and
    ``message``. Request fields and a formatted ``exception`` are added when
    present on the record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in REQUEST_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)
