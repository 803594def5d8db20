"""Upload metrics collection and reporting.

Provides the UploadMetrics dataclass, a StageTimer context manager for
measuring upload phase durations, and log_upload_metrics() for emitting
metrics as one structured JSON log line.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass
class UploadMetrics:
    """All metrics collected for a single upload call."""

    display_name: str
    status: str
    file_size_bytes: int
    mime_type: str
    file_uri: str = ""
    initiate_duration_seconds: float = 0.0
    transfer_duration_seconds: float = 0.0
    processing_wait_duration_seconds: float = 0.0
    wall_time_seconds: float = 0.0
    retry_count: int = 0
    error_phase: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of an upload phase.

    Captures stage_name, start_time, end_time (as UTC datetimes),
    and duration_seconds (as a monotonic float). The duration is recorded
    even when the block raises.

    Usage:
        timer = StageTimer("initiate")
        with timer:
            await start_upload()
        print(timer.duration_seconds)
    """

    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self.failed = False
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        elapsed = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)
        self.duration_seconds = elapsed
        self.failed = exc_type is not None


def log_upload_metrics(metrics: UploadMetrics) -> None:
    """Emit upload metrics as a single structured JSON log line.

    The fields travel in the record's ``metrics`` extra, which
    StructuredJsonFormatter spreads into the top level of the JSON object
    next to its own timestamp and severity.

    Args:
        metrics: Populated UploadMetrics dataclass.
    """
    entry = {
        "metric_type": "upload_completion",
        **asdict(metrics),
    }
    logger.info(
        "Upload metrics for %s: %s",
        metrics.display_name,
        metrics.status,
        extra={"metrics": entry},
    )
