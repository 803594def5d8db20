"""Three-phase resumable upload coordinator.

Orchestrates: validate -> initiate (get upload URL) -> stream bytes with
progress -> await server-side processing. Returns the remote file reference
once the file is ready for analysis.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import time
from collections.abc import AsyncIterator
from pathlib import Path

import httpx

from media_client.config import ClientConfig
from media_client.credentials import CredentialProvider, auth_headers, require_credential
from media_client.models import RemoteFileReference
from media_client.observability.metrics import StageTimer, UploadMetrics, log_upload_metrics
from media_client.retry.executor import RetryExecutor
from media_client.retry.policy import DEFAULT_POLICY, RetryPolicy
from media_client.transport import json_body, send
from media_client.upload.poller import ProcessingPoller
from media_client.upload.progress import (
    Dispatch,
    ProgressCallback,
    UploadProgress,
    UploadSession,
)
from media_client.utils.errors import (
    FileTooLargeError,
    MalformedResponseError,
    UploadError,
)

logger = logging.getLogger(__name__)

UPLOAD_URL_HEADER = "x-goog-upload-url"


class UploadCoordinator:
    """Uploads a local media file with the resumable upload protocol.

    No partial resume is attempted: a retried or restarted upload always
    sends the whole file from offset 0.

    Args:
        client: Shared httpx client.
        credentials: Credential accessor, consulted once per request attempt.
        config: Endpoints, limits, and timeouts.
        poller: Processing poller (built from the same client if omitted).
        policy: Retry policy for the initiate and non-progress upload requests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        config: ClientConfig | None = None,
        poller: ProcessingPoller | None = None,
        policy: RetryPolicy = DEFAULT_POLICY,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._config = config or ClientConfig()
        self._poller = poller or ProcessingPoller(client, credentials, self._config)
        self._policy = policy

    async def upload(
        self,
        path: str | os.PathLike[str],
        progress_callback: ProgressCallback | None = None,
        *,
        mime_type: str | None = None,
        display_name: str | None = None,
        executor: RetryExecutor | None = None,
        dispatch: Dispatch | None = None,
    ) -> RemoteFileReference:
        """Upload a file and wait until the service has processed it.

        Args:
            path: Local media file.
            progress_callback: Receives upload fractions from 0.0 to 1.0.
            mime_type: MIME type (guessed from the extension if omitted).
            display_name: Remote display name (defaults to the file name).
            executor: Executor whose cancel() aborts the upload. A private one
                is created when omitted.
            dispatch: How to invoke the progress callback, e.g.
                ``loop.call_soon_threadsafe``.

        Returns:
            Reference to the uploaded, ACTIVE remote file.

        Raises:
            AuthNotConfiguredError: No credential configured.
            UploadError: The file is missing or unreadable.
            FileTooLargeError: The file exceeds the upload limit.
            OperationCancelledError: The executor was cancelled.
            MediaClientError: Transport, server, or processing failures, as raised.
        """
        require_credential(self._credentials)
        session = self._open_session(Path(path), mime_type, display_name)
        executor = executor or RetryExecutor(name=f"upload {session.display_name}")

        metrics = UploadMetrics(
            display_name=session.display_name,
            status="failed",
            file_size_bytes=session.file_size_bytes,
            mime_type=session.mime_type,
        )
        wall_start = time.monotonic()
        phase = "initiate"
        try:
            with StageTimer("initiate") as timer:
                session.upload_url = await self._initiate(session, executor)
            metrics.initiate_duration_seconds = timer.duration_seconds

            phase = "transfer"
            with StageTimer("transfer") as timer:
                reference = await self._transfer(
                    session, executor, progress_callback, dispatch
                )
            metrics.transfer_duration_seconds = timer.duration_seconds
            metrics.file_uri = reference.uri

            phase = "processing"
            with StageTimer("processing") as timer:
                await self._poller.await_ready(reference, executor=executor)
            metrics.processing_wait_duration_seconds = timer.duration_seconds
        except Exception as exc:
            metrics.error_phase = phase
            metrics.error_message = str(exc)
            metrics.retry_count = getattr(exc, "_retry_count", 0)
            logger.error(
                "Upload failed in phase '%s' for %s: %s",
                phase,
                session.display_name,
                exc,
                extra={"phase": phase, "error": type(exc).__name__},
            )
            raise
        else:
            metrics.status = "completed"
            logger.info(
                "Uploaded %s as %s",
                session.display_name,
                reference.uri,
                extra={"file_uri": reference.uri},
            )
            return reference
        finally:
            metrics.wall_time_seconds = time.monotonic() - wall_start
            log_upload_metrics(metrics)

    def _open_session(
        self, path: Path, mime_type: str | None, display_name: str | None
    ) -> UploadSession:
        """Validate the local file and measure its size once."""
        if not path.is_file():
            raise UploadError("File does not exist", path=str(path))
        if not os.access(path, os.R_OK):
            raise UploadError("File is not readable", path=str(path))
        try:
            file_size = path.stat().st_size
        except OSError as exc:
            raise UploadError(f"Unable to determine file size: {exc}", path=str(path)) from exc

        max_size = self._config.max_upload_bytes
        if file_size > max_size:
            logger.warning(
                "File too large for upload: %d bytes (max: %d)", file_size, max_size
            )
            raise FileTooLargeError(file_size, max_size, path=str(path))
        if file_size > self._config.large_file_warning_bytes:
            logger.info("Large file upload starting: %dMB", file_size // (1024 * 1024))

        resolved_mime = (
            mime_type
            or mimetypes.guess_type(path.name)[0]
            or self._config.default_mime_type
        )
        return UploadSession(
            local_path=path,
            file_size_bytes=file_size,
            mime_type=resolved_mime,
            display_name=display_name or path.name,
        )

    async def _initiate(self, session: UploadSession, executor: RetryExecutor) -> str:
        """Phase 1: reserve an upload URL."""

        async def start_upload() -> str:
            headers = {
                **auth_headers(self._credentials),
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(session.file_size_bytes),
                "X-Goog-Upload-Header-Content-Type": session.mime_type,
            }
            request = self._client.build_request(
                "POST",
                self._config.upload_start_url,
                headers=headers,
                json={"file": {"display_name": session.display_name}},
            )
            response = await send(self._client, request)
            upload_url = response.headers.get(UPLOAD_URL_HEADER)
            if not upload_url:
                raise MalformedResponseError("Failed to get upload URL")
            return upload_url

        return await executor.execute(start_upload, policy=self._policy)

    async def _transfer(
        self,
        session: UploadSession,
        executor: RetryExecutor,
        progress_callback: ProgressCallback | None,
        dispatch: Dispatch | None,
    ) -> RemoteFileReference:
        """Phase 2: stream the file body as the final and only chunk.

        With a progress callback the body is sent once: a half-streamed body
        cannot be replayed without restarting from phase 1. Without one, the
        whole transfer is retried.
        """
        if progress_callback is None:
            return await executor.execute(
                lambda: self._send_body(session, executor, None), policy=self._policy
            )

        progress = UploadProgress(
            progress_callback,
            file_size_bytes=session.file_size_bytes,
            expected_total=session.file_size_bytes,
            dispatch=dispatch,
        )
        executor.raise_if_cancelled()
        progress.start()
        reference = await executor.run_until_cancelled(
            self._send_body(session, executor, progress)
        )
        progress.complete()
        return reference

    async def _send_body(
        self,
        session: UploadSession,
        executor: RetryExecutor,
        progress: UploadProgress | None,
    ) -> RemoteFileReference:
        session.bytes_sent = 0
        headers = {
            **auth_headers(self._credentials),
            "X-Goog-Upload-Command": "upload, finalize",
            "X-Goog-Upload-Offset": "0",
            "Content-Type": session.mime_type,
            "Content-Length": str(session.file_size_bytes),
        }
        timeout = httpx.Timeout(
            self._config.upload_timeout_seconds,
            connect=self._config.request_timeout_seconds,
        )
        request = self._client.build_request(
            "POST",
            session.upload_url,
            headers=headers,
            content=self._iter_file(session, executor, progress),
            timeout=timeout,
        )
        response = await send(self._client, request)
        try:
            return RemoteFileReference.from_upload_response(
                json_body(response), default_mime_type=session.mime_type
            )
        except ValueError as exc:
            raise MalformedResponseError(f"Failed to parse upload response: {exc}") from exc

    async def _iter_file(
        self,
        session: UploadSession,
        executor: RetryExecutor,
        progress: UploadProgress | None,
    ) -> AsyncIterator[bytes]:
        """Yield the file in chunks, never past the size measured up front."""
        remaining = session.file_size_bytes
        chunk_size = self._config.upload_chunk_size
        with open(session.local_path, "rb") as media_file:
            while remaining > 0:
                executor.raise_if_cancelled()
                chunk = media_file.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
                session.record_sent(len(chunk))
                if progress is not None:
                    progress.update(session.bytes_sent)
