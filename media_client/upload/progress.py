"""Upload session state and progress reporting."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

ProgressCallback = Callable[[float], None]
Dispatch = Callable[..., Any]


@dataclass
class UploadSession:
    """Ephemeral state of one upload call. Never shared or persisted."""

    local_path: Path
    file_size_bytes: int
    mime_type: str
    display_name: str
    upload_url: str = ""
    bytes_sent: int = 0

    def record_sent(self, count: int) -> None:
        self.bytes_sent = min(self.file_size_bytes, self.bytes_sent + count)


def _call_directly(callback: ProgressCallback, fraction: float) -> None:
    callback(fraction)


class UploadProgress:
    """Normalizes bytes-sent counts into a strictly increasing 0.0-1.0 fraction.

    Fractions are computed against the greater of the expected transfer
    size and the locally measured file size. Callback invocations go through
    ``dispatch(callback, fraction)``, so callers can marshal them onto
    another context (e.g. ``loop.call_soon_threadsafe``).

    Args:
        callback: Receives each new fraction.
        file_size_bytes: Size measured before the upload started.
        expected_total: Size declared to the transport, if different.
        dispatch: How to invoke the callback (default: call directly).
    """

    def __init__(
        self,
        callback: ProgressCallback,
        file_size_bytes: int,
        expected_total: int | None = None,
        dispatch: Dispatch | None = None,
    ) -> None:
        self._callback = callback
        self._total = max(file_size_bytes, expected_total or 0)
        self._dispatch = dispatch or _call_directly
        self._last: float | None = None

    @property
    def last_reported(self) -> float | None:
        return self._last

    def start(self) -> None:
        """Report 0.0 before the first byte is sent."""
        if self._last is None:
            self._emit(0.0)

    def update(self, bytes_sent: int) -> None:
        if self._total <= 0:
            return
        fraction = min(1.0, bytes_sent / self._total)
        if self._last is None or fraction > self._last:
            self._emit(fraction)

    def complete(self) -> None:
        """Report 1.0 once the transfer succeeded."""
        self.start()
        if self._last < 1.0:
            self._emit(1.0)

    def _emit(self, fraction: float) -> None:
        self._last = fraction
        self._dispatch(self._callback, fraction)
