"""Client configuration.

Explicit constructor arguments win; unset values fall back to environment
variables, then to the defaults below.

Environment variables:
    GEMINI_BASE_URL, GEMINI_API_VERSION, GEMINI_MODEL,
    MEDIA_MAX_UPLOAD_BYTES, MEDIA_LARGE_FILE_WARNING_BYTES,
    MEDIA_REQUEST_TIMEOUT_SECONDS, MEDIA_UPLOAD_TIMEOUT_SECONDS
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_API_VERSION = "v1beta"
DEFAULT_MODEL = "gemini-3-pro-preview"
DEFAULT_MIME_TYPE = "video/mp4"

# Gemini processing limit; larger files tend to time out server-side
MAX_UPLOAD_SIZE_BYTES = 100 * 1024 * 1024
LARGE_FILE_WARNING_BYTES = 50 * 1024 * 1024

REQUEST_TIMEOUT_SECONDS = 60.0
UPLOAD_TIMEOUT_SECONDS = 300.0
UPLOAD_CHUNK_SIZE = 256 * 1024


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{value}'") from exc


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name, "")
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{value}'") from exc


@dataclass(frozen=True)
class ClientConfig:
    """Endpoints, limits, and timeouts for the remote analysis service."""

    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    model: str = DEFAULT_MODEL
    max_upload_bytes: int = MAX_UPLOAD_SIZE_BYTES
    large_file_warning_bytes: int = LARGE_FILE_WARNING_BYTES
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    upload_timeout_seconds: float = UPLOAD_TIMEOUT_SECONDS
    upload_chunk_size: int = UPLOAD_CHUNK_SIZE
    default_mime_type: str = DEFAULT_MIME_TYPE
    generation_config: dict[str, object] = field(
        default_factory=lambda: {"mediaResolution": "MEDIA_RESOLUTION_MEDIUM"}
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.max_upload_bytes <= 0:
            raise ValueError("max_upload_bytes must be positive")
        if self.upload_chunk_size <= 0:
            raise ValueError("upload_chunk_size must be positive")

    @classmethod
    def from_env(cls, **overrides: object) -> ClientConfig:
        """Build a config from environment variables plus explicit overrides."""
        values: dict[str, object] = {
            "base_url": os.environ.get("GEMINI_BASE_URL", "") or DEFAULT_BASE_URL,
            "api_version": os.environ.get("GEMINI_API_VERSION", "") or DEFAULT_API_VERSION,
            "model": os.environ.get("GEMINI_MODEL", "") or DEFAULT_MODEL,
            "max_upload_bytes": _env_int("MEDIA_MAX_UPLOAD_BYTES", MAX_UPLOAD_SIZE_BYTES),
            "large_file_warning_bytes": _env_int(
                "MEDIA_LARGE_FILE_WARNING_BYTES", LARGE_FILE_WARNING_BYTES
            ),
            "request_timeout_seconds": _env_float(
                "MEDIA_REQUEST_TIMEOUT_SECONDS", REQUEST_TIMEOUT_SECONDS
            ),
            "upload_timeout_seconds": _env_float(
                "MEDIA_UPLOAD_TIMEOUT_SECONDS", UPLOAD_TIMEOUT_SECONDS
            ),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]

    @property
    def upload_start_url(self) -> str:
        return f"{self.base_url}/upload/{self.api_version}/files"

    def file_status_url(self, file_id: str) -> str:
        return f"{self.base_url}/{self.api_version}/files/{file_id}"

    @property
    def stream_url(self) -> str:
        return (
            f"{self.base_url}/{self.api_version}/models/"
            f"{self.model}:streamGenerateContent?alt=sse"
        )
