"""Streamed analysis requests over server-sent events.

Sends the file reference and conversation to ``streamGenerateContent?alt=sse``
and turns the line-oriented response into AnalysisChunk values as they arrive.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from media_client.analysis.prompts import FOLLOW_UP_SYSTEM_PROMPT, MODEL_ACKNOWLEDGEMENT
from media_client.config import ClientConfig
from media_client.credentials import CredentialProvider, auth_headers, require_credential
from media_client.models import AnalysisChunk, ConversationTurn, RemoteFileReference, Role
from media_client.retry.executor import RetryExecutor
from media_client.retry.policy import CONSERVATIVE_POLICY, RetryPolicy
from media_client.transport import send, transport_error

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


def extract_text(payload: Any) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` or None if absent."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


async def parse_event_stream(
    lines: AsyncIterable[str],
    executor: RetryExecutor | None = None,
) -> AsyncIterator[AnalysisChunk]:
    """Parse SSE lines into analysis chunks, in arrival order.

    Lines without the ``data:`` prefix (comments, keep-alives, event names)
    are ignored. Data lines that are not valid JSON or carry no text are
    skipped, so one corrupt event does not abort the stream.

    Args:
        lines: Decoded response lines, without line terminators.
        executor: Raced against every awaited line, so cancel() is observed
            even while the server is silent.

    Raises:
        OperationCancelledError: If the executor is cancelled mid-stream.
    """
    index = 0
    iterator = aiter(lines)
    while True:
        if executor is not None:
            line = await executor.run_until_cancelled(anext(iterator, None))
        else:
            line = await anext(iterator, None)
        if line is None:
            break
        if not line.startswith(DATA_PREFIX):
            continue
        data = line[len(DATA_PREFIX):]
        if data.startswith(" "):
            data = data[1:]
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed SSE data line: %.80s", data)
            continue
        text = extract_text(payload)
        if text is None:
            continue
        yield AnalysisChunk(text=text, index=index)
        index += 1


def file_content(reference: RemoteFileReference, default_mime_type: str) -> dict[str, Any]:
    return {
        "fileData": {
            "mimeType": reference.mime_type or default_mime_type,
            "fileUri": reference.uri,
        }
    }


class StreamingAnalysisClient:
    """Issues streamed analysis requests about an uploaded file.

    Args:
        client: Shared httpx client.
        credentials: Credential accessor, consulted once per request attempt.
        config: Endpoint and generation configuration.
        policy: Retry policy for opening the connection. Kept conservative
            so a failing stream fails fast.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        config: ClientConfig | None = None,
        policy: RetryPolicy = CONSERVATIVE_POLICY,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._config = config or ClientConfig()
        self._policy = policy

    def build_contents(
        self,
        reference: RemoteFileReference,
        history: Sequence[ConversationTurn],
        text: str,
    ) -> list[dict[str, Any]]:
        """Serialize the file reference, prior turns (oldest first) and new turn.

        Without history the file and the text form a single user turn. With
        history the file is introduced alongside the follow-up instructions,
        acknowledged by the model, and followed by the prior turns and the
        new message.
        """
        video = file_content(reference, self._config.default_mime_type)
        if not history:
            return [{"role": Role.USER.value, "parts": [video, {"text": text}]}]

        contents = [
            {"role": Role.USER.value, "parts": [video, {"text": FOLLOW_UP_SYSTEM_PROMPT}]},
            {"role": Role.MODEL.value, "parts": [{"text": MODEL_ACKNOWLEDGEMENT}]},
        ]
        contents.extend(turn.to_content() for turn in history)
        contents.append({"role": Role.USER.value, "parts": [{"text": text}]})
        return contents

    def build_body(
        self,
        reference: RemoteFileReference,
        history: Sequence[ConversationTurn],
        text: str,
    ) -> dict[str, Any]:
        return {
            "contents": self.build_contents(reference, history, text),
            "generationConfig": dict(self._config.generation_config),
        }

    async def stream(
        self,
        reference: RemoteFileReference,
        history: Sequence[ConversationTurn],
        text: str,
        *,
        executor: RetryExecutor | None = None,
    ) -> AsyncIterator[AnalysisChunk]:
        """Stream the model's answer as AnalysisChunk values.

        Nothing is sent until the first chunk is requested. Each call opens
        a new connection; the returned iterator is single-pass.

        Args:
            reference: The uploaded, ACTIVE file.
            history: Prior conversation turns, oldest first.
            text: The new user turn.
            executor: Executor whose cancel() stops the stream, even mid-wait.

        Raises:
            AuthNotConfiguredError: No credential configured.
            OperationCancelledError: The executor was cancelled.
            TransportError: The connection dropped while streaming.
            MediaClientError: The connection could not be opened.
        """
        require_credential(self._credentials)
        executor = executor or RetryExecutor(name="analysis stream")
        body = self.build_body(reference, history, text)

        async def open_stream() -> httpx.Response:
            request = self._client.build_request(
                "POST",
                self._config.stream_url,
                headers=auth_headers(self._credentials),
                json=body,
            )
            return await send(self._client, request, stream=True)

        response = await executor.execute(open_stream, policy=self._policy)
        count = 0
        try:
            async with aclosing(parse_event_stream(response.aiter_lines(), executor)) as chunks:
                async for chunk in chunks:
                    count += 1
                    yield chunk
        except httpx.TransportError as exc:
            raise transport_error(
                exc, f"Analysis stream interrupted after {count} chunks", file_uri=reference.uri
            ) from exc
        finally:
            await response.aclose()
            logger.debug(
                "Analysis stream for %s closed after %d chunks",
                reference.uri,
                count,
                extra={"file_uri": reference.uri, "phase": "stream"},
            )
