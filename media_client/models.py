"""Data models shared by the upload, polling, and streaming components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FileProcessingState(Enum):
    """Server-side processing state of an uploaded file.

    Derived fresh on every poll. A file only moves from PENDING to one of
    the terminal states.
    """

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"

    @classmethod
    def from_remote(cls, status: str) -> FileProcessingState:
        """Map a remote status string (e.g. "PROCESSING", "ACTIVE") to a state."""
        normalized = status.strip().upper()
        if normalized in ("ACTIVE", "READY"):
            return cls.ACTIVE
        if normalized == "FAILED":
            return cls.FAILED
        return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is not FileProcessingState.PENDING


@dataclass(frozen=True)
class RemoteFileReference:
    """Stable identifier of an uploaded file, used in analysis requests."""

    uri: str
    name: str = ""
    mime_type: str = ""

    @property
    def file_id(self) -> str:
        """Last path component of the name (or URI), e.g. "files/abc" -> "abc"."""
        source = self.name or self.uri
        return source.rstrip("/").rsplit("/", 1)[-1]

    @classmethod
    def from_upload_response(cls, body: dict[str, Any], default_mime_type: str = "") -> RemoteFileReference:
        """Build a reference from a finalize response ``{"file": {...}}``.

        Raises:
            ValueError: If the body has no ``file.uri`` string.
        """
        file_info = body.get("file") if isinstance(body, dict) else None
        if not isinstance(file_info, dict):
            raise ValueError("Missing 'file' object in upload response")
        uri = file_info.get("uri")
        if not uri or not isinstance(uri, str):
            raise ValueError("Missing 'file.uri' in upload response")
        return cls(
            uri=uri,
            name=str(file_info.get("name") or ""),
            mime_type=str(file_info.get("mimeType") or default_mime_type),
        )


class Role(Enum):
    """Author of a conversation turn."""

    USER = "user"
    MODEL = "model"

    @classmethod
    def parse(cls, value: str) -> Role:
        """Parse a role name; "assistant" is accepted as an alias of MODEL."""
        normalized = value.strip().lower()
        if normalized == "assistant":
            return cls.MODEL
        return cls(normalized)


@dataclass(frozen=True)
class ConversationTurn:
    """One prior turn of a conversation, supplied by the caller."""

    role: Role
    text: str

    def to_content(self) -> dict[str, Any]:
        return {"role": self.role.value, "parts": [{"text": self.text}]}


@dataclass(frozen=True)
class AnalysisChunk:
    """One incremental text fragment of a streamed analysis response."""

    text: str
    index: int

    def __str__(self) -> str:
        return self.text
