"""Tests for failure classification and retry-hint parsing."""

import socket
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest

from media_client.retry.decision import (
    DO_NOT_RETRY,
    RETRY,
    RetryAfter,
    SelfClassifying,
    classify_status_code,
    default_classifier,
    is_transient_transport_error,
    parse_retry_after,
    parse_retry_info,
)
from media_client.utils.errors import StillProcessingError, TransportError


class TestClassifyStatusCode:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 599, 408])
    def test_retryable(self, status: int) -> None:
        assert classify_status_code(status) == RETRY

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 405, 406, 407, 409, 410, 418, 422])
    def test_not_retryable(self, status: int) -> None:
        assert classify_status_code(status) == DO_NOT_RETRY

    def test_success_is_not_retried(self) -> None:
        assert classify_status_code(200) == DO_NOT_RETRY

    def test_rate_limit_with_hint(self) -> None:
        assert classify_status_code(429, retry_after=60.0) == RetryAfter(60.0)

    def test_rate_limit_without_hint(self) -> None:
        assert classify_status_code(429) == RETRY

    def test_hint_ignored_for_other_codes(self) -> None:
        assert classify_status_code(503, retry_after=60.0) == RETRY


class TestTransportClassification:
    """Tests for transient vs permanent transport failures."""

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ConnectTimeout("slow"),
            httpx.ReadTimeout("slow"),
            httpx.ConnectError("refused"),
            httpx.ReadError("reset"),
            httpx.RemoteProtocolError("eof"),
            TimeoutError(),
            ConnectionResetError(),
            socket.gaierror("dns"),
        ],
    )
    def test_transient(self, exc: Exception) -> None:
        assert is_transient_transport_error(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.UnsupportedProtocol("ftp"),
            httpx.InvalidURL("bad"),
            FileNotFoundError(),
            PermissionError(),
        ],
    )
    def test_permanent(self, exc: Exception) -> None:
        assert is_transient_transport_error(exc) is False

    def test_unrelated_exception_is_unknown(self) -> None:
        assert is_transient_transport_error(ValueError("x")) is None


class TestDefaultClassifier:
    """Tests for the default classification precedence."""

    def test_self_classifying_trusted(self) -> None:
        exc = StillProcessingError("pending")
        assert isinstance(exc, SelfClassifying)
        assert default_classifier(exc) == RetryAfter(2.0)

    def test_self_classification_beats_transport_rules(self) -> None:
        assert default_classifier(TransportError("bad", transient=False)) == DO_NOT_RETRY

    def test_transport_error(self) -> None:
        assert default_classifier(httpx.ConnectError("refused")) == RETRY
        assert default_classifier(httpx.UnsupportedProtocol("x")) == DO_NOT_RETRY

    def test_http_status_error(self) -> None:
        request = httpx.Request("GET", "https://example.test/v1beta/files/a")
        response = httpx.Response(429, headers={"Retry-After": "7"}, request=request)
        exc = httpx.HTTPStatusError("rate limited", request=request, response=response)
        assert default_classifier(exc) == RetryAfter(7.0)

    def test_status_code_attribute(self) -> None:
        class CustomError(Exception):
            status_code = 502

        assert default_classifier(CustomError()) == RETRY

    def test_unknown_not_retried(self) -> None:
        assert default_classifier(KeyError("x")) == DO_NOT_RETRY


class TestRetryHints:
    """Tests for Retry-After and RetryInfo parsing."""

    def test_retry_after_seconds(self) -> None:
        assert parse_retry_after("120") == 120.0
        assert parse_retry_after(" 1.5 ") == 1.5

    def test_retry_after_negative_floors_at_zero(self) -> None:
        assert parse_retry_after("-3") == 0.0

    def test_retry_after_http_date(self) -> None:
        when = datetime.now(UTC) + timedelta(seconds=90)
        delay = parse_retry_after(format_datetime(when, usegmt=True))
        assert delay is not None
        assert 80.0 <= delay <= 91.0

    def test_retry_after_past_date(self) -> None:
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0

    @pytest.mark.parametrize("value", [None, "", "soon"])
    def test_retry_after_unparseable(self, value) -> None:
        assert parse_retry_after(value) is None

    def test_retry_info_from_error_body(self) -> None:
        body = {
            "error": {
                "code": 429,
                "status": "RESOURCE_EXHAUSTED",
                "details": [
                    {"@type": "type.googleapis.com/google.rpc.QuotaFailure"},
                    {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "60s"},
                ],
            }
        }
        assert parse_retry_info(body) == 60.0

    @pytest.mark.parametrize(
        "body",
        [None, [], {"error": "quota"}, {"error": {"details": [{"retryDelay": "soon"}]}}],
    )
    def test_retry_info_absent(self, body) -> None:
        assert parse_retry_info(body) is None
