"""Custom exception hierarchy for the media client.

All exceptions inherit from MediaClientError, enabling targeted handling
at call boundaries while preserving specific failure context. Each class
declares its own retry decision, which the retry executor trusts verbatim.
"""

from __future__ import annotations

from media_client.retry.decision import (
    DO_NOT_RETRY,
    RETRY,
    RetryAfter,
    RetryDecision,
    classify_status_code,
)

STILL_PROCESSING_RETRY_SECONDS = 2.0


class MediaClientError(Exception):
    """Base exception for all media client errors."""

    user_message = "Something went wrong. Please try again."
    silent = False

    def __init__(self, message: str, file_uri: str | None = None) -> None:
        self.file_uri = file_uri
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_uri:
            return f"[file={self.file_uri}] {super().__str__()}"
        return super().__str__()

    @property
    def retry_decision(self) -> RetryDecision:
        return DO_NOT_RETRY


class AuthNotConfiguredError(MediaClientError):
    """Raised before any network call when no credential is configured."""

    user_message = "API key is not set. Add your Gemini API key to continue."


class UploadError(MediaClientError):
    """Raised when a local file cannot be uploaded (missing, unreadable)."""

    user_message = "The video could not be uploaded."

    def __init__(
        self, message: str, file_uri: str | None = None, path: str | None = None
    ) -> None:
        self.path = path
        super().__init__(message, file_uri)


class FileTooLargeError(MediaClientError):
    """Raised pre-flight when the file exceeds the remote upload limit."""

    def __init__(self, size_bytes: int, max_bytes: int, path: str | None = None) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        self.path = path
        super().__init__(
            f"File is {size_bytes} bytes, exceeds upload limit of {max_bytes} bytes"
        )

    @property
    def user_message(self) -> str:  # type: ignore[override]
        size_mb = self.size_bytes / (1024 * 1024)
        max_mb = self.max_bytes / (1024 * 1024)
        return f"The video is too large ({size_mb:.1f}MB). The maximum is {max_mb:.0f}MB."


class TransportError(MediaClientError):
    """Raised when a request fails below HTTP (timeout, DNS, connection loss)."""

    user_message = "Network error. Check your connection and try again."

    def __init__(
        self, message: str, transient: bool = True, file_uri: str | None = None
    ) -> None:
        self.transient = transient
        super().__init__(message, file_uri)

    @property
    def retry_decision(self) -> RetryDecision:
        return RETRY if self.transient else DO_NOT_RETRY


class ServerError(MediaClientError):
    """Raised when the remote service answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        retry_after: float | None = None,
        file_uri: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message, file_uri)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.status_code in (401, 403):
            return "The API key was rejected. Check that it is valid."
        return f"The server returned an error (HTTP {self.status_code})."

    @property
    def retry_decision(self) -> RetryDecision:
        return classify_status_code(self.status_code, self.retry_after)


class RateLimitedError(ServerError):
    """Raised on HTTP 429; honors the server's retry-delay hint when present."""

    user_message = "Too many requests. Please wait a moment and try again."

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        file_uri: str | None = None,
    ) -> None:
        super().__init__(message, 429, retry_after=retry_after, file_uri=file_uri)


class StillProcessingError(MediaClientError):
    """Raised by the processing poller while the remote file is not ready."""

    user_message = "The video is still being processed. Please try again shortly."

    @property
    def retry_decision(self) -> RetryDecision:
        return RetryAfter(STILL_PROCESSING_RETRY_SECONDS)


class ProcessingFailedError(MediaClientError):
    """Raised when server-side processing of an uploaded file failed."""

    user_message = "The server could not process this video."


class MalformedResponseError(MediaClientError):
    """Raised when a 2xx response is missing required data."""

    user_message = "The server response was invalid."

    @property
    def retry_decision(self) -> RetryDecision:
        return RETRY


class OperationCancelledError(MediaClientError):
    """Raised when an in-flight operation observes an explicit cancel."""

    user_message = "Cancelled."
    silent = True
