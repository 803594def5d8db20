"""HTTP helpers shared by the upload, polling, and streaming clients.

Translates httpx transport exceptions and non-2xx responses into the
MediaClientError hierarchy so the retry executor can classify them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from media_client.retry.decision import (
    is_transient_transport_error,
    parse_retry_after,
    parse_retry_info,
)
from media_client.utils.errors import (
    MalformedResponseError,
    RateLimitedError,
    ServerError,
    TransportError,
)

logger = logging.getLogger(__name__)

_MAX_ERROR_BODY_CHARS = 500


async def send(
    client: httpx.AsyncClient,
    request: httpx.Request,
    stream: bool = False,
) -> httpx.Response:
    """Send a request and raise unless the response is 2xx.

    Args:
        client: Shared httpx client.
        request: Fully built request.
        stream: Leave the response body unread. The caller must close it.

    Returns:
        The successful response.

    Raises:
        TransportError: If the request failed below HTTP.
        RateLimitedError: On HTTP 429.
        ServerError: On any other non-2xx status.
    """
    try:
        response = await client.send(request, stream=stream)
    except httpx.TransportError as exc:
        raise transport_error(
            exc, f"{request.method} {request.url.host}{request.url.path} failed"
        ) from exc

    if not response.is_success:
        try:
            await raise_for_status(response)
        finally:
            if stream:
                await response.aclose()
    return response


def transport_error(
    exc: httpx.TransportError, description: str, file_uri: str | None = None
) -> TransportError:
    """Wrap an httpx transport failure, keeping its transient/permanent nature."""
    return TransportError(
        f"{description}: {type(exc).__name__}: {exc}",
        transient=is_transient_transport_error(exc) is not False,
        file_uri=file_uri,
    )


async def raise_for_status(response: httpx.Response) -> None:
    """Raise RateLimitedError or ServerError for a non-2xx response."""
    if response.is_success:
        return

    await response.aread()
    status = response.status_code
    body = _json_or_none(response)
    retry_after = parse_retry_after(response.headers.get("retry-after"))
    if retry_after is None:
        retry_after = parse_retry_info(body)

    detail = response.text[:_MAX_ERROR_BODY_CHARS]
    if status == 429:
        raise RateLimitedError(
            f"Rate limited (HTTP 429): {detail}", retry_after=retry_after
        )
    raise ServerError(
        f"Request failed with HTTP {status}: {detail}",
        status_code=status,
        retry_after=retry_after,
    )


def json_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body.

    Raises:
        MalformedResponseError: If the body is not a JSON object.
    """
    body = _json_or_none(response)
    if not isinstance(body, dict):
        raise MalformedResponseError(
            f"Expected a JSON object from {response.request.url.path}"
        )
    return body


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
