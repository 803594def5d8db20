"""Media analysis service facade.

Owns one httpx client and composes the upload coordinator, processing
poller, and streaming analysis client behind upload/analyze/chat calls.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Sequence

import httpx

from media_client.analysis.prompts import INITIAL_ANALYSIS_PROMPT
from media_client.analysis.streaming import StreamingAnalysisClient
from media_client.config import ClientConfig
from media_client.credentials import CredentialProvider, env_credentials
from media_client.models import AnalysisChunk, ConversationTurn, RemoteFileReference
from media_client.retry.executor import RetryExecutor
from media_client.upload.coordinator import UploadCoordinator
from media_client.upload.poller import ProcessingPoller
from media_client.upload.progress import Dispatch, ProgressCallback


class MediaAnalysisService:
    """Upload videos and hold streamed conversations about them.

    Args:
        credentials: Credential accessor (defaults to ``GEMINI_API_KEY``).
        config: Client configuration (defaults to ``ClientConfig.from_env()``).
        client: Optional httpx client; one is created and owned otherwise.
    """

    def __init__(
        self,
        credentials: CredentialProvider | None = None,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or ClientConfig.from_env()
        self._credentials = credentials or env_credentials()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds
        )
        self.poller = ProcessingPoller(self._client, self._credentials, self.config)
        self.uploader = UploadCoordinator(
            self._client, self._credentials, self.config, poller=self.poller
        )
        self.analysis = StreamingAnalysisClient(
            self._client, self._credentials, self.config
        )

    async def __aenter__(self) -> MediaAnalysisService:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def upload_video(
        self,
        path: str | os.PathLike[str],
        progress_callback: ProgressCallback | None = None,
        *,
        executor: RetryExecutor | None = None,
        dispatch: Dispatch | None = None,
    ) -> RemoteFileReference:
        """Upload a video and wait until it is ready for analysis."""
        return await self.uploader.upload(
            path, progress_callback, executor=executor, dispatch=dispatch
        )

    def analyze_video(
        self,
        reference: RemoteFileReference,
        prompt: str = INITIAL_ANALYSIS_PROMPT,
        *,
        executor: RetryExecutor | None = None,
    ) -> AsyncIterator[AnalysisChunk]:
        """Stream the initial analysis of an uploaded video."""
        return self.analysis.stream(reference, [], prompt, executor=executor)

    def chat(
        self,
        reference: RemoteFileReference,
        history: Sequence[ConversationTurn],
        message: str,
        *,
        executor: RetryExecutor | None = None,
    ) -> AsyncIterator[AnalysisChunk]:
        """Stream the answer to a follow-up question about a video."""
        return self.analysis.stream(reference, history, message, executor=executor)
