"""Structured JSON logger.

Outputs one JSON object per line with severity, timestamp, and message
fields, plus the upload/stream context passed via ``extra``.
"""

import json
import logging
import sys
from datetime import UTC, datetime

EXTRA_FIELDS = ("file_uri", "phase", "attempt", "duration_seconds", "error")


class StructuredJsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    SEVERITY_MAP: dict[int, str] = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON string with severity, timestamp, message, logger name,
            and extra fields.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "severity": self.SEVERITY_MAP.get(record.levelno, "DEFAULT"),
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        # Metric records spread their fields into the top level
        metrics = getattr(record, "metrics", None)
        if isinstance(metrics, dict):
            log_entry.update(metrics)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])

        return json.dumps(log_entry)


def setup_logging(level: int = logging.INFO, stream=None) -> None:
    """Configure the root logger with structured JSON output.

    Safe to call more than once: the JSON handler is only added the first
    time, later calls just change the level.

    Args:
        level: Root log level.
        stream: Output stream (default stderr, keeping stdout for results).
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Avoid adding duplicate handlers if called multiple times
    if any(isinstance(h.formatter, StructuredJsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)
