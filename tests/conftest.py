"""Shared fixtures for the B2B form relay test suite."""

from unittest.mock import AsyncMock

import pytest

from formrelay.config.settings import get_settings
from formrelay.helpdesk.client import HelpdeskClient
from formrelay.helpdesk.models import HelpdeskConfig, UploadedAttachment

BOUNDARY = "----FormBoundary7MA4YWxkTrZu0gW"

SETTINGS_ENV_VARS = [
    "HELPDESK_SUBDOMAIN",
    "HELPDESK_USERNAME",
    "HELPDESK_API_KEY",
    "HELPDESK_EMAIL",
    "HELPDESK_DOMAIN",
    "HELPDESK_TIMEOUT_SECONDS",
    "CLEANUP_ORPHANED_ATTACHMENTS",
    "LOG_LEVEL",
    "AUDIT_LOG_FILE",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep the host environment's settings out of every test."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(HELPDESK_SUBDOMAIN="acme", LOG_LEVEL="DEBUG")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


@pytest.fixture
def helpdesk_secrets(override_settings):
    """Set the four required helpdesk secrets."""
    override_settings(
        HELPDESK_SUBDOMAIN="acme",
        HELPDESK_USERNAME="agent@acme.test",
        HELPDESK_API_KEY="secret-key",
        HELPDESK_EMAIL="support@acme.test",
    )


@pytest.fixture
def helpdesk_config() -> HelpdeskConfig:
    return HelpdeskConfig(
        subdomain="acme",
        username="agent@acme.test",
        api_key="secret-key",
        reply_to_email="support@acme.test",
    )


@pytest.fixture
def uploaded_attachment() -> UploadedAttachment:
    return UploadedAttachment(
        url="https://uploads.example-helpdesk.com/acme/price-list.pdf",
        name="price-list.pdf",
        size=11,
        content_type="application/pdf",
    )


@pytest.fixture
def mock_helpdesk_client() -> AsyncMock:
    """A HelpdeskClient double whose coroutines can be configured per test."""
    return AsyncMock(spec=HelpdeskClient)


# --- multipart body builders ---

def field_part(name: str, value: str) -> bytes:
    return (
        f'Content-Disposition: form-data; name="{name}"\r\n'
        "\r\n"
    ).encode() + value.encode()


def file_part(filename: str, data: bytes, content_type: str | None = None, name: str = "file") -> bytes:
    headers = f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
    if content_type:
        headers += f"Content-Type: {content_type}\r\n"
    return (headers + "\r\n").encode() + data


def multipart_body(*parts: bytes, boundary: str = BOUNDARY) -> bytes:
    """Join raw parts (headers + blank line + payload) into a multipart body."""
    delimiter = b"--" + boundary.encode()
    body = b""
    for part in parts:
        body += delimiter + b"\r\n" + part + b"\r\n"
    return body + delimiter + b"--\r\n"


def content_type_for(boundary: str = BOUNDARY) -> str:
    return f"multipart/form-data; boundary={boundary}"
