"""
Crash post client for crashpost.

Drives the three-step submission: request a presigned upload URL, upload
the crash archive to it, then commit the upload so the service creates
the crash record.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import requests

from crashpost.archive import AttachmentSkippedCallback, CrashArchive, build_crash_archive
from crashpost.config import DEFAULT_SERVICE_URL
from crashpost.options import (
    CRASH_TYPE_PYTHON,
    CRASH_TYPE_WINDOWS_NATIVE,
    ExceptionPostOptions,
    MinidumpPostOptions,
    PostOptions,
)
from crashpost.results import CrashPostError, PostResult

if TYPE_CHECKING:
    from crashpost.storage import ObjectStorageClientFactory
    from crashpost.transport import HttpClientFactory

logger = logging.getLogger(__name__)

STACK_TRACE_FILENAME = "Callstack.txt"

__all__ = ["CrashPostClient", "CrashPostError", "STACK_TRACE_FILENAME"]


class CrashPostClient:
    """
    Submits exceptions and crash files to the crash service.

    HTTP outcomes are returned as PostResult values, never raised. Only
    caller mistakes (missing dependencies, empty identifiers, a missing
    crash file) raise.
    """

    def __init__(
        self,
        http_client_factory: HttpClientFactory,
        storage_client_factory: ObjectStorageClientFactory,
        service_url: str = DEFAULT_SERVICE_URL,
        on_attachment_skipped: Optional[AttachmentSkippedCallback] = None,
    ):
        if http_client_factory is None:
            raise ValueError("http_client_factory is required")
        if storage_client_factory is None:
            raise ValueError("storage_client_factory is required")

        self.http_client = http_client_factory.create_client()
        self.storage_client_factory = storage_client_factory
        self.service_url = service_url
        self.on_attachment_skipped = on_attachment_skipped

    def post_exception(
        self,
        database: str,
        application: str,
        version: str,
        stack_trace: str,
        options: PostOptions | None = None,
    ) -> PostResult:
        """
        Post a stack trace.

        Args:
            database: Crash database name.
            application: Application name.
            version: Application version.
            stack_trace: Stack trace text, may be empty.
            options: Optional metadata and attachments.

        Returns:
            The commit result, or the result of the first step that failed.
        """
        _require_identifiers(database, application, version)
        options = options or ExceptionPostOptions()

        entries = {STACK_TRACE_FILENAME: (stack_trace or "").encode("utf-8")}
        return self._post(
            database,
            application,
            version,
            entries,
            options,
            options.crash_type or CRASH_TYPE_PYTHON,
        )

    def post_minidump(
        self,
        database: str,
        application: str,
        version: str,
        minidump_file: str | Path,
        options: PostOptions | None = None,
    ) -> PostResult:
        """Post a minidump file. The file itself must exist; attachments may be unreadable."""
        return self.post_crash_file(
            database,
            application,
            version,
            minidump_file,
            options or MinidumpPostOptions(),
        )

    def post_crash_file(
        self,
        database: str,
        application: str,
        version: str,
        crash_file: str | Path,
        options: PostOptions | None = None,
    ) -> PostResult:
        """
        Post an arbitrary crash file (minidump, core dump, ...).

        The crash type is taken from options.crash_type.

        Raises:
            ValueError: If an identifier is empty.
            FileNotFoundError: If crash_file does not exist.
        """
        _require_identifiers(database, application, version)
        options = options or MinidumpPostOptions()

        crash_file = Path(crash_file)
        if not crash_file.is_file():
            raise FileNotFoundError(f"Crash file not found: {crash_file}")

        with crash_file.open("rb") as f:
            entries = {crash_file.name: f.read()}

        return self._post(
            database,
            application,
            version,
            entries,
            options,
            options.crash_type or CRASH_TYPE_WINDOWS_NATIVE,
        )

    def _post(
        self,
        database: str,
        application: str,
        version: str,
        entries: dict[str, bytes],
        options: PostOptions,
        crash_type: str,
    ) -> PostResult:
        start_time = time.perf_counter()

        archive = build_crash_archive(
            entries,
            options.attachments,
            on_attachment_skipped=self.on_attachment_skipped,
        )
        skipped = archive.skipped

        def elapsed() -> float:
            return (time.perf_counter() - start_time) * 1000

        # Step 1: presigned upload URL
        try:
            response = self._get_crash_upload_url(database, application, version, archive, options)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Crash upload URL request failed: {e}")
            return PostResult.from_exception(e, elapsed(), skipped)

        if not response.ok:
            logger.warning(f"Crash upload URL request returned HTTP {response.status_code}")
            return PostResult.from_response(response, elapsed(), skipped)

        upload_url = _parse_upload_url(response)
        if not upload_url:
            return PostResult(
                success=False,
                status_code=response.status_code,
                body=response.text,
                error="Upload URL response did not contain a 'url' field",
                skipped_attachments=list(skipped),
                duration_ms=elapsed(),
            )

        # Step 2: archive upload
        try:
            with self.storage_client_factory.create() as storage_client:
                upload_response = storage_client.upload_file_bytes_to_presigned_url(
                    upload_url, archive.data
                )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Crash archive upload failed: {e}")
            return PostResult.from_exception(e, elapsed(), skipped)

        if not upload_response.ok:
            logger.warning(f"Crash archive upload returned HTTP {upload_response.status_code}")
            return PostResult.from_response(upload_response, elapsed(), skipped)

        md5 = upload_response.headers.get("ETag", "").strip('"')

        # Step 3: commit
        try:
            commit_response = self._commit_crash_upload(
                database, application, version, crash_type, upload_url, md5, options
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Crash upload commit failed: {e}")
            return PostResult.from_exception(e, elapsed(), skipped)

        result = PostResult.from_response(commit_response, elapsed(), skipped)
        if result.success:
            logger.info(
                f"Crash posted to {database} in {result.duration_ms:.0f}ms "
                f"({archive.size} bytes, {len(skipped)} attachment(s) skipped)"
            )
        else:
            logger.warning(f"Crash upload commit returned HTTP {commit_response.status_code}")
        return result

    def _get_crash_upload_url(
        self,
        database: str,
        application: str,
        version: str,
        archive: CrashArchive,
        options: PostOptions,
    ) -> requests.Response:
        params = {
            "database": database,
            "appName": application,
            "appVersion": version,
            "crashPostSize": str(archive.size),
        }
        params.update(options.to_query_params())
        return self.http_client.get(
            f"{self._base_url(database)}/api/getCrashUploadUrl",
            params=params,
        )

    def _commit_crash_upload(
        self,
        database: str,
        application: str,
        version: str,
        crash_type: str,
        upload_url: str,
        md5: str,
        options: PostOptions,
    ) -> requests.Response:
        form = {
            "database": database,
            "appName": application,
            "appVersion": version,
            "crashType": crash_type,
            "s3Key": upload_url,
            "md5": md5,
        }
        form.update(options.to_form_fields())
        # Multipart form data, one part per field
        files = {name: (None, value) for name, value in form.items()}
        return self.http_client.post(
            f"{self._base_url(database)}/api/commitS3CrashUpload",
            files=files,
        )

    def _base_url(self, database: str) -> str:
        return self.service_url.format(database=database).rstrip("/")


def _require_identifiers(database: str, application: str, version: str) -> None:
    for name, value in (("database", database), ("application", application), ("version", version)):
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name} must be a non-empty string")


def _parse_upload_url(response: requests.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    url = data.get("url") if isinstance(data, dict) else None
    return url if isinstance(url, str) and url else None
