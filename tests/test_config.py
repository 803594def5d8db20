"""Tests for ClientConfig defaults, environment overrides, and URLs."""

import pytest

from media_client.config import (
    DEFAULT_BASE_URL,
    MAX_UPLOAD_SIZE_BYTES,
    ClientConfig,
)

ENV_VARS = (
    "GEMINI_BASE_URL",
    "GEMINI_API_VERSION",
    "GEMINI_MODEL",
    "MEDIA_MAX_UPLOAD_BYTES",
    "MEDIA_LARGE_FILE_WARNING_BYTES",
    "MEDIA_REQUEST_TIMEOUT_SECONDS",
    "MEDIA_UPLOAD_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestClientConfig:
    """Tests for defaults and validation."""

    def test_defaults(self) -> None:
        config = ClientConfig()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.max_upload_bytes == 100 * 1024 * 1024
        assert config.large_file_warning_bytes == 50 * 1024 * 1024
        assert config.request_timeout_seconds == 60.0
        assert config.upload_timeout_seconds == 300.0
        assert config.default_mime_type == "video/mp4"
        assert config.generation_config == {"mediaResolution": "MEDIA_RESOLUTION_MEDIUM"}

    def test_urls(self) -> None:
        config = ClientConfig(base_url="https://api.test/", model="gemini-test")
        assert config.upload_start_url == "https://api.test/upload/v1beta/files"
        assert config.file_status_url("abc") == "https://api.test/v1beta/files/abc"
        assert (
            config.stream_url
            == "https://api.test/v1beta/models/gemini-test:streamGenerateContent?alt=sse"
        )

    def test_rejects_non_positive_limits(self) -> None:
        with pytest.raises(ValueError, match="max_upload_bytes"):
            ClientConfig(max_upload_bytes=0)
        with pytest.raises(ValueError, match="upload_chunk_size"):
            ClientConfig(upload_chunk_size=0)


class TestFromEnv:
    """Tests for environment-driven configuration."""

    def test_no_env_uses_defaults(self) -> None:
        assert ClientConfig.from_env() == ClientConfig()

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("GEMINI_BASE_URL", "http://localhost:8080")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-local")
        monkeypatch.setenv("MEDIA_MAX_UPLOAD_BYTES", "1024")
        monkeypatch.setenv("MEDIA_UPLOAD_TIMEOUT_SECONDS", "12.5")

        config = ClientConfig.from_env()

        assert config.base_url == "http://localhost:8080"
        assert config.model == "gemini-local"
        assert config.max_upload_bytes == 1024
        assert config.upload_timeout_seconds == 12.5

    def test_explicit_overrides_win(self, monkeypatch) -> None:
        monkeypatch.setenv("GEMINI_MODEL", "gemini-env")
        config = ClientConfig.from_env(model="gemini-arg", api_version=None)

        assert config.model == "gemini-arg"
        assert config.api_version == "v1beta"

    def test_invalid_integer(self, monkeypatch) -> None:
        monkeypatch.setenv("MEDIA_MAX_UPLOAD_BYTES", "lots")
        with pytest.raises(ValueError, match="MEDIA_MAX_UPLOAD_BYTES must be an integer"):
            ClientConfig.from_env()

    def test_empty_value_falls_back(self, monkeypatch) -> None:
        monkeypatch.setenv("MEDIA_MAX_UPLOAD_BYTES", "")
        assert ClientConfig.from_env().max_upload_bytes == MAX_UPLOAD_SIZE_BYTES
