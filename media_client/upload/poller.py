"""Processing-completion poller for uploaded files.

After the bytes are uploaded the service processes the media asynchronously.
The poller queries the file status until it becomes ACTIVE or FAILED, with a
slow-growing backoff tuned for work that usually finishes within a minute.
"""

from __future__ import annotations

import logging

import httpx

from media_client.config import ClientConfig
from media_client.credentials import CredentialProvider, auth_headers
from media_client.models import FileProcessingState, RemoteFileReference
from media_client.retry.executor import RetryExecutor
from media_client.retry.policy import DEFAULT_POLICY, RetryPolicy
from media_client.transport import json_body, send
from media_client.utils.errors import (
    MalformedResponseError,
    ProcessingFailedError,
    StillProcessingError,
)

logger = logging.getLogger(__name__)

# ~30 polls, 1-3s apart: allows roughly a minute of server-side processing
PROCESSING_POLL_POLICY = RetryPolicy(
    max_attempts=30,
    initial_delay=1.0,
    max_delay=3.0,
    multiplier=1.1,
)


class ProcessingPoller:
    """Polls the file status endpoint until processing completes.

    Each poll is one status request wrapped in its own per-request retry
    policy, so a transient network failure does not consume a poll attempt.

    Args:
        client: Shared httpx client.
        credentials: Credential accessor, consulted once per request attempt.
        config: Endpoint configuration.
        policy: Outer policy governing how many polls are made.
        request_policy: Inner policy for each status request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        config: ClientConfig | None = None,
        policy: RetryPolicy = PROCESSING_POLL_POLICY,
        request_policy: RetryPolicy = DEFAULT_POLICY,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._config = config or ClientConfig()
        self._policy = policy
        self._request_policy = request_policy

    async def await_ready(
        self,
        reference: RemoteFileReference,
        executor: RetryExecutor | None = None,
    ) -> None:
        """Wait until the remote file is ACTIVE.

        Args:
            reference: The uploaded file.
            executor: Executor whose cancel() aborts the wait. A private one
                is created when omitted.

        Raises:
            ProcessingFailedError: The service reported FAILED.
            StillProcessingError: Still not ready after all polls.
            MalformedResponseError: Status responses kept missing a state.
            OperationCancelledError: The executor was cancelled.
        """
        executor = executor or RetryExecutor(name="processing poll")
        poll_count = 0

        async def poll_once() -> None:
            nonlocal poll_count
            poll_count += 1
            state = await self.fetch_state(reference, executor)
            logger.debug(
                "Poll %d for %s: %s",
                poll_count,
                reference.uri,
                state.value,
                extra={"file_uri": reference.uri, "phase": "processing", "attempt": poll_count},
            )
            if state is FileProcessingState.ACTIVE:
                return
            if state is FileProcessingState.FAILED:
                raise ProcessingFailedError(
                    "File processing failed", file_uri=reference.uri
                )
            raise StillProcessingError(
                "File is still processing", file_uri=reference.uri
            )

        await executor.execute(poll_once, policy=self._policy)
        logger.info(
            "File %s is active after %d polls",
            reference.uri,
            poll_count,
            extra={"file_uri": reference.uri, "phase": "processing"},
        )

    async def fetch_state(
        self,
        reference: RemoteFileReference,
        executor: RetryExecutor | None = None,
    ) -> FileProcessingState:
        """Issue one status request and interpret its ``state`` field.

        Raises:
            MalformedResponseError: If the response has no string ``state``.
        """
        executor = executor or RetryExecutor(name="status request")
        url = self._config.file_status_url(reference.file_id)

        async def request_status() -> httpx.Response:
            request = self._client.build_request(
                "GET", url, headers=auth_headers(self._credentials)
            )
            return await send(self._client, request)

        response = await executor.execute(request_status, policy=self._request_policy)
        body = json_body(response)
        state = body.get("state")
        if not isinstance(state, str):
            raise MalformedResponseError(
                "Status response has no 'state' field", file_uri=reference.uri
            )
        return FileProcessingState.from_remote(state)
