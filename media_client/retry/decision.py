"""Retry decisions and failure classification.

A failure is mapped to one of three outcomes: retry with the policy delay,
do not retry, or retry after an explicit delay. Failures that know their own
outcome expose a ``retry_decision`` attribute and are trusted verbatim;
everything else goes through transport and HTTP status rules.
"""

from __future__ import annotations

import re
import socket
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Protocol, runtime_checkable

import httpx


@dataclass(frozen=True)
class Retry:
    """Retry using the policy-computed delay."""


@dataclass(frozen=True)
class DoNotRetry:
    """Fail immediately."""


@dataclass(frozen=True)
class RetryAfter:
    """Retry after an explicit delay in seconds (e.g. a rate-limit hint)."""

    delay: float


RetryDecision = Retry | DoNotRetry | RetryAfter

RETRY = Retry()
DO_NOT_RETRY = DoNotRetry()

FailureClassifier = Callable[[Exception, int], RetryDecision]


@runtime_checkable
class SelfClassifying(Protocol):
    """A failure that declares its own retry decision."""

    @property
    def retry_decision(self) -> RetryDecision: ...


_TRANSIENT_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
    TimeoutError,
    ConnectionError,
    socket.gaierror,
)

_PERMANENT_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.InvalidURL,
    httpx.UnsupportedProtocol,
    FileNotFoundError,
    IsADirectoryError,
    PermissionError,
)

# 408 and 429 are the only retryable 4xx codes
_NON_RETRYABLE_CLIENT_CODES = frozenset({400, 401, 403, 404, 405, 406, 407, 409, 410})

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)s\s*$")


def is_transient_transport_error(exc: BaseException) -> bool | None:
    """Classify a transport-level failure.

    Returns:
        True for transient conditions, False for permanent ones, None when
        the exception is not a recognised transport failure.
    """
    if isinstance(exc, _PERMANENT_TRANSPORT_ERRORS):
        return False
    if isinstance(exc, _TRANSIENT_TRANSPORT_ERRORS):
        return True
    if isinstance(exc, httpx.TransportError):
        return True
    return None


def classify_status_code(
    status_code: int, retry_after: float | None = None
) -> RetryDecision:
    """Map an HTTP status code to a retry decision.

    Args:
        status_code: HTTP status code of the response.
        retry_after: Server-supplied retry delay hint in seconds, if any.
            Only honored for 429 responses.
    """
    if 200 <= status_code < 300:
        return DO_NOT_RETRY
    if status_code == 429:
        if retry_after is not None:
            return RetryAfter(retry_after)
        return RETRY
    if status_code == 408:
        return RETRY
    if status_code in _NON_RETRYABLE_CLIENT_CODES:
        return DO_NOT_RETRY
    if 500 <= status_code < 600:
        return RETRY
    return DO_NOT_RETRY


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header value into seconds.

    Accepts delta-seconds ("120") or an HTTP-date. Dates in the past yield 0.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


def parse_retry_info(body: object) -> float | None:
    """Extract ``retryDelay`` from a Google API error body.

    Gemini rate-limit responses carry a ``google.rpc.RetryInfo`` detail:
    ``{"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "60s"}]}}``.
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    for detail in error.get("details") or []:
        if not isinstance(detail, dict):
            continue
        match = _DURATION_PATTERN.match(str(detail.get("retryDelay", "")))
        if match:
            return float(match.group(1))
    return None


def default_classifier(exc: BaseException) -> RetryDecision:
    """Classify a failure using the default precedence rules.

    1. Self-classifying failures decide for themselves.
    2. Transport failures: transient conditions retry, permanent ones do not.
    3. HTTP status codes per ``classify_status_code``.
    4. Anything else is not retried.
    """
    if isinstance(exc, SelfClassifying):
        return exc.retry_decision

    transient = is_transient_transport_error(exc)
    if transient is not None:
        return RETRY if transient else DO_NOT_RETRY

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return classify_status_code(
            response.status_code,
            parse_retry_after(response.headers.get("retry-after")),
        )

    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return classify_status_code(status_code, getattr(exc, "retry_after", None))

    return DO_NOT_RETRY
