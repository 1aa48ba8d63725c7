"""Structured JSON logging configuration.

Configures Python logging to emit one JSON object per line with required
fields: timestamp, level, logger, message, request_id. Request fields
(method, path, status_code, duration_ms) and error fields (error_code,
resource) are added when attached through ``extra`` on the log call.

SECURITY: Never logs service keys, tokens or passwords.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# Patterns that should be redacted from log output
_SENSITIVE_PATTERNS = re.compile(
    r"(service.key|api.key|secret|password|token|authorization)"
    r"[\s]*[=:]\s*\S+",
    re.IGNORECASE,
)

_EXTRA_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "error_code",
    "resource",
    "event",
    "reason",
    "source_ip",
)


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON with structured fields.

    Each entry contains at minimum: timestamp, level, logger, message and
    request_id (``null`` outside a request).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._sanitize(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }

        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                value = getattr(record, name)
                entry[name] = self._sanitize(value) if isinstance(value, str) else value

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self._sanitize(self.formatException(record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _sanitize(text: str) -> str:
        """Remove sensitive values from log text."""
        return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with JSON formatting.

    Parameters
    ----------
    level:
        Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
