"""Credential accessors.

The client never stores credentials. It calls a synchronous provider that
returns the current API key (empty string when not configured) once per
request attempt.
"""

from __future__ import annotations

import os
from collections.abc import Callable

from media_client.utils.errors import AuthNotConfiguredError

CredentialProvider = Callable[[], str]

API_KEY_ENV_VAR = "GEMINI_API_KEY"
API_KEY_HEADER = "x-goog-api-key"


def static_credentials(api_key: str) -> CredentialProvider:
    """Provider that always returns the given key."""

    def provider() -> str:
        return api_key

    return provider


def env_credentials(var: str = API_KEY_ENV_VAR) -> CredentialProvider:
    """Provider that reads the key from an environment variable on every call."""

    def provider() -> str:
        return os.environ.get(var, "")

    return provider


def require_credential(provider: CredentialProvider) -> str:
    """Return the current credential or raise AuthNotConfiguredError."""
    api_key = provider()
    if not api_key or not api_key.strip():
        raise AuthNotConfiguredError("API key is not configured")
    return api_key.strip()


def auth_headers(provider: CredentialProvider) -> dict[str, str]:
    """Build the credential header for one request attempt."""
    return {API_KEY_HEADER: require_credential(provider)}


def is_valid_key_format(api_key: str) -> bool:
    """Basic offline format check for Google API keys.

    Keys start with "AIza" and are 30-50 characters long. Passing this check
    does not mean the key is accepted by the server.
    """
    if not api_key:
        return False
    return api_key.startswith("AIza") and 30 <= len(api_key) <= 50
