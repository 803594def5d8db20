"""Tests for project scaffold: imports, logger, and custom exceptions."""

import io
import json
import logging

import pytest

from media_client.observability.logger import StructuredJsonFormatter, setup_logging
from media_client.retry.decision import DO_NOT_RETRY, RETRY, RetryAfter
from media_client.utils.errors import (
    AuthNotConfiguredError,
    FileTooLargeError,
    MalformedResponseError,
    MediaClientError,
    OperationCancelledError,
    ProcessingFailedError,
    RateLimitedError,
    ServerError,
    StillProcessingError,
    TransportError,
    UploadError,
)


class TestModuleImports:
    """Verify all package modules are importable."""

    def test_top_level_import(self) -> None:
        import media_client

        assert media_client.MediaAnalysisService is not None

    def test_subpackage_imports(self) -> None:
        import media_client.analysis
        import media_client.observability.metrics
        import media_client.retry.executor
        import media_client.upload
        import media_client.utils.errors

        assert media_client.analysis.StreamingAnalysisClient is not None
        assert media_client.upload.UploadCoordinator is not None
        assert media_client.retry.executor.RetryExecutor is not None


class TestCustomExceptions:
    """Verify custom exception hierarchy and string representations."""

    def test_all_exceptions_inherit_from_media_client_error(self) -> None:
        exception_classes = [
            AuthNotConfiguredError,
            UploadError,
            FileTooLargeError,
            TransportError,
            ServerError,
            RateLimitedError,
            StillProcessingError,
            ProcessingFailedError,
            MalformedResponseError,
            OperationCancelledError,
        ]
        for cls in exception_classes:
            assert issubclass(cls, MediaClientError), (
                f"{cls.__name__} should inherit from MediaClientError"
            )

    def test_str_includes_file_uri(self) -> None:
        exc = ProcessingFailedError("File processing failed", file_uri="files/abc")
        assert str(exc) == "[file=files/abc] File processing failed"

    def test_str_without_file_uri(self) -> None:
        exc = UploadError("File does not exist", path="/tmp/missing.mp4")
        assert str(exc) == "File does not exist"
        assert exc.path == "/tmp/missing.mp4"

    def test_file_too_large_message(self) -> None:
        exc = FileTooLargeError(150 * 1024 * 1024, 100 * 1024 * 1024)
        assert "157286400" in str(exc)
        assert "104857600" in str(exc)
        assert exc.user_message == "The video is too large (150.0MB). The maximum is 100MB."

    def test_rate_limited_is_a_server_error_with_429(self) -> None:
        exc = RateLimitedError("slow down", retry_after=60.0)
        assert isinstance(exc, ServerError)
        assert exc.status_code == 429
        assert exc.retry_after == 60.0

    def test_auth_rejected_user_message(self) -> None:
        assert "rejected" in ServerError("nope", status_code=401).user_message
        assert "rejected" in ServerError("nope", status_code=403).user_message
        assert "HTTP 500" in ServerError("boom", status_code=500).user_message

    def test_only_cancellation_is_silent(self) -> None:
        assert OperationCancelledError("stop").silent is True
        assert AuthNotConfiguredError("no key").silent is False
        assert TransportError("down").silent is False


class TestRetryDecisions:
    """Each error type declares how the retry executor should treat it."""

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (AuthNotConfiguredError("no key"), DO_NOT_RETRY),
            (UploadError("missing"), DO_NOT_RETRY),
            (FileTooLargeError(2, 1), DO_NOT_RETRY),
            (TransportError("reset"), RETRY),
            (TransportError("bad url", transient=False), DO_NOT_RETRY),
            (ServerError("boom", status_code=503), RETRY),
            (ServerError("timeout", status_code=408), RETRY),
            (ServerError("denied", status_code=401), DO_NOT_RETRY),
            (ServerError("denied", status_code=403), DO_NOT_RETRY),
            (RateLimitedError("slow"), RETRY),
            (RateLimitedError("slow", retry_after=60.0), RetryAfter(60.0)),
            (StillProcessingError("pending"), RetryAfter(2.0)),
            (ProcessingFailedError("failed"), DO_NOT_RETRY),
            (MalformedResponseError("no url"), RETRY),
            (OperationCancelledError("stop"), DO_NOT_RETRY),
        ],
    )
    def test_retry_decision(self, exc: MediaClientError, expected) -> None:
        assert exc.retry_decision == expected


class TestStructuredJsonFormatter:
    """Verify structured JSON log output."""

    def _format(self, **extra) -> dict:
        record = logging.LogRecord(
            name="media_client.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Retry %d/%d",
            args=(1, 2),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return json.loads(StructuredJsonFormatter().format(record))

    def test_outputs_required_fields(self) -> None:
        entry = self._format()
        assert entry["severity"] == "WARNING"
        assert entry["message"] == "Retry 1/2"
        assert entry["logger"] == "media_client.test"
        assert entry["timestamp"].endswith("Z")

    def test_includes_context_extras(self) -> None:
        entry = self._format(file_uri="files/abc", phase="transfer", attempt=2)
        assert entry["file_uri"] == "files/abc"
        assert entry["phase"] == "transfer"
        assert entry["attempt"] == 2

    def test_omits_unset_extras(self) -> None:
        entry = self._format()
        assert "file_uri" not in entry
        assert "error" not in entry

    def test_setup_logging_writes_json(self) -> None:
        stream = io.StringIO()
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        try:
            setup_logging(logging.INFO, stream=stream)
            logging.getLogger("media_client.scaffold").info("hello")
        finally:
            for handler in list(root.handlers):
                if handler not in original_handlers:
                    root.removeHandler(handler)
            root.setLevel(original_level)

        line = stream.getvalue().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello"

    def test_setup_logging_twice_adds_one_handler(self) -> None:
        stream = io.StringIO()
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        try:
            setup_logging(logging.INFO, stream=stream)
            setup_logging(logging.DEBUG, stream=stream)
            added = [h for h in root.handlers if h not in original_handlers]
            level_after = root.level
            logging.getLogger("media_client.scaffold").info("once")
        finally:
            for handler in list(root.handlers):
                if handler not in original_handlers:
                    root.removeHandler(handler)
            root.setLevel(original_level)

        assert len(added) == 1
        assert isinstance(added[0].formatter, StructuredJsonFormatter)
        assert level_after == logging.DEBUG
        lines = stream.getvalue().strip().splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["once"]
