"""
Pytest fixtures and configuration for crashpost tests.

Provides canned HTTP responses, a mocked transport session, a mocked
object-storage factory and temporary crash files.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest
import requests

from crashpost.client import CrashPostClient
from crashpost.config import Config
from crashpost.transport import HttpClientFactory

FAKE_UPLOAD_URL = "https://fake.url.com"


def build_response(
    status_code: int = 200,
    body: str | dict[str, Any] = "",
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """Build a real requests.Response with the given status, body and headers."""
    if isinstance(body, dict):
        body = json.dumps(body)
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


# HTTP Fixtures
@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Factory for canned requests.Response objects."""
    return build_response


@pytest.fixture
def mock_session():
    """Session mock answering the upload-URL request, then the commit."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.side_effect = [
        build_response(200, {"url": FAKE_UPLOAD_URL}),
        build_response(200, {"crashId": 42}),
    ]
    return session


@pytest.fixture
def http_client_factory(mock_session):
    """HttpClientFactory backed by the mocked session."""
    return HttpClientFactory(session=mock_session)


@pytest.fixture
def storage_client():
    """Object-storage client mock whose uploads succeed with an ETag."""
    client = MagicMock()
    client.upload_file_bytes_to_presigned_url.return_value = build_response(
        200, headers={"ETag": '"d41d8cd98f00b204e9800998ecf8427e"'}
    )
    return client


@pytest.fixture
def storage_client_factory(storage_client):
    """Factory mock handing out storage_client as a context manager."""
    factory = MagicMock()
    factory.create.return_value.__enter__.return_value = storage_client
    factory.create.return_value.__exit__.return_value = False
    return factory


@pytest.fixture
def crash_post_client(http_client_factory, storage_client_factory):
    """CrashPostClient wired to the mocked transport and storage."""
    return CrashPostClient(http_client_factory, storage_client_factory)


# File Fixtures
@pytest.fixture
def minidump_file(tmp_path) -> Path:
    """Zero-byte minidump file."""
    path = tmp_path / "minidump.dmp"
    path.touch()
    return path


@pytest.fixture
def attachment_file(tmp_path) -> Path:
    """Readable text attachment."""
    path = tmp_path / "log.txt"
    path.write_text("application log line\n")
    return path


@pytest.fixture
def locked_file(tmp_path):
    """
    File that exists but cannot be opened, as when another process holds a lock.

    Opening it through Path.open raises PermissionError for the duration of
    the test; every other path opens normally.
    """
    path = tmp_path / "lockedFile.txt"
    path.write_text("This file is locked")
    real_open = Path.open

    def guarded_open(self, *args, **kwargs):
        if self == path:
            raise PermissionError(13, "The process cannot access the file", str(self))
        return real_open(self, *args, **kwargs)

    with patch.object(Path, "open", autospec=True, side_effect=guarded_open):
        yield path


# Config Fixtures
@pytest.fixture
def sample_config():
    """Sample configuration for testing."""
    return Config(
        database="fred",
        application="TestApp",
        version="1.0.0",
        service_url="https://{database}.example.com",
        request_timeout=15,
        api_token="test-token-12345",
        user="Test user",
        email="test@test.com",
    )


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file."""
    config_file = tmp_path / "test_config.yaml"
    config_content = """
database: fred
application: TestApp
version: 1.0.0
service:
  url: "https://{database}.example.com"
  timeout: 20
auth:
  token: "test-token-123"
metadata:
  description: "Nightly build"
  attachments:
    - /var/log/testapp.log
logging:
  level: DEBUG
"""

    config_file.write_text(config_content)
    return config_file


# Pytest Configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
