"""
Object storage uploads to presigned URLs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO

import requests

if TYPE_CHECKING:
    from crashpost.transport import HttpClient, HttpClientFactory

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


class ObjectStorageClient:
    """
    Uploads raw bytes or a file stream to a presigned URL with a PUT.

    Non-2xx responses are returned unchanged and transport errors propagate.
    There is no retry; that policy belongs to the caller.
    """

    def __init__(self, http_client: HttpClient):
        self.http_client = http_client

    def upload_file_bytes_to_presigned_url(self, url: str, data: bytes) -> requests.Response:
        logger.debug(f"Uploading {len(data)} bytes to presigned URL")
        return self.http_client.put(url, data=data, headers={"Accept": OCTET_STREAM})

    def upload_file_stream_to_presigned_url(self, url: str, stream: BinaryIO) -> requests.Response:
        """Upload a file stream. The stream is left open for the caller to close."""
        return self.http_client.put(url, data=stream, headers={"Accept": OCTET_STREAM})

    def close(self) -> None:
        """Release the client. The shared session stays open."""
        self.http_client = None

    def __enter__(self) -> ObjectStorageClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ObjectStorageClientFactory:
    """Creates ObjectStorageClient instances from an HttpClientFactory."""

    def __init__(self, http_client_factory: HttpClientFactory):
        self.http_client_factory = http_client_factory

    def create(self) -> ObjectStorageClient:
        return ObjectStorageClient(self.http_client_factory.create_client(authenticated=False))
