"""
Unit tests for ObjectStorageClient and its factory.
"""

from __future__ import annotations

import io
import unittest
from unittest.mock import MagicMock

import pytest
import requests

from crashpost.storage import ObjectStorageClient, ObjectStorageClientFactory
from crashpost.transport import HttpClient, HttpClientFactory

PRESIGNED_URL = "https://bucket.s3.amazonaws.com/crash.zip?X-Amz-Signature=abc"


class TestObjectStorageClient(unittest.TestCase):
    """Test presigned URL uploads."""

    def setUp(self):
        self.session = MagicMock()
        self.client = ObjectStorageClient(HttpClient(self.session))

    def test_upload_bytes_puts_with_octet_stream_accept(self):
        self.client.upload_file_bytes_to_presigned_url(PRESIGNED_URL, b"crash bytes")

        self.session.request.assert_called_once_with(
            "PUT",
            PRESIGNED_URL,
            headers={"Accept": "application/octet-stream"},
            data=b"crash bytes",
        )

    def test_upload_stream_leaves_stream_open(self):
        stream = io.BytesIO(b"crash bytes")

        self.client.upload_file_stream_to_presigned_url(PRESIGNED_URL, stream)

        method, url = self.session.request.call_args.args
        assert (method, url) == ("PUT", PRESIGNED_URL)
        assert self.session.request.call_args.kwargs["data"] is stream
        assert not stream.closed

    def test_non_2xx_response_returned_unchanged(self):
        response = MagicMock(status_code=403, ok=False)
        self.session.request.return_value = response

        result = self.client.upload_file_bytes_to_presigned_url(PRESIGNED_URL, b"")

        assert result is response

    def test_transport_error_propagates_without_retry(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(requests.exceptions.ConnectionError):
            self.client.upload_file_bytes_to_presigned_url(PRESIGNED_URL, b"")

        assert self.session.request.call_count == 1

    def test_default_session_headers_untouched(self):
        self.session.headers = {"User-Agent": "crashpost/test"}

        self.client.upload_file_bytes_to_presigned_url(PRESIGNED_URL, b"")
        self.client.upload_file_bytes_to_presigned_url(PRESIGNED_URL, b"")

        assert self.session.headers == {"User-Agent": "crashpost/test"}


class TestObjectStorageClientFactory:
    """Test ObjectStorageClientFactory."""

    def test_create_uses_http_client_factory(self):
        http_client_factory = MagicMock()

        client = ObjectStorageClientFactory(http_client_factory).create()

        assert isinstance(client, ObjectStorageClient)
        assert client.http_client is http_client_factory.create_client.return_value
        http_client_factory.create_client.assert_called_once_with(authenticated=False)

    def test_clients_share_pooled_session(self):
        session = MagicMock()
        factory = ObjectStorageClientFactory(HttpClientFactory(session=session))

        first = factory.create()
        second = factory.create()

        assert first.http_client.session is second.http_client.session is session

    def test_context_manager_keeps_session_open(self):
        session = MagicMock()
        factory = ObjectStorageClientFactory(HttpClientFactory(session=session))

        with factory.create() as client:
            assert isinstance(client, ObjectStorageClient)

        session.close.assert_not_called()
