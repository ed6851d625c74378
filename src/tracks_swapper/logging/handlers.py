"""JSON log formatting."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord has; anything else came from ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

# Set by FileContextFilter; reported as top-level keys.
_CONTEXT_ATTRS = ("file_id", "file_path")


class JSONFormatter(logging.Formatter):
    """Format each record as one JSON object per line.

    Keys: ``timestamp`` (ISO-8601 UTC), ``level``, ``message``, ``logger``,
    ``file_id``/``file_path`` when set, ``context`` for other extra fields
    and ``exception`` when exc_info is present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for name in _CONTEXT_ATTRS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in _CONTEXT_ATTRS
            and key != "file_tag"
            and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
