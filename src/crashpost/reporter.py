"""
Application-facing crash reporter.

Holds the database identity and default metadata for an application and
forwards exceptions and crash files to a CrashPostClient.
"""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Optional

from crashpost.client import CrashPostClient
from crashpost.config import Config
from crashpost.options import ExceptionPostOptions, MinidumpPostOptions, PostOptions
from crashpost.results import PostResult
from crashpost.storage import ObjectStorageClientFactory
from crashpost.transport import HttpClientFactory

logger = logging.getLogger(__name__)

ExceptHook = Callable[[type, BaseException, Optional[TracebackType]], Any]


class CrashReporter:
    """
    Reports crashes for one application version.

    Defaults set on the reporter (description, email, app_key, notes, user,
    attachments, attributes) apply to every post unless the per-call
    options override them.
    """

    def __init__(
        self,
        database: str,
        application: str,
        version: str,
        client: CrashPostClient | None = None,
        description: str | None = None,
        email: str | None = None,
        app_key: str | None = None,
        notes: str | None = None,
        user: str | None = None,
        attachments: list[str | Path] | None = None,
        attributes: dict[str, str] | None = None,
    ):
        for name, value in (("database", database), ("application", application), ("version", version)):
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")

        self.database = database
        self.application = application
        self.version = version
        # Only a factory built here is closed by close()
        self._owned_factory: HttpClientFactory | None = None
        if client is None:
            self._owned_factory = HttpClientFactory()
            client = CrashPostClient(self._owned_factory, ObjectStorageClientFactory(self._owned_factory))
        self.client = client

        self.description = description
        self.email = email
        self.app_key = app_key
        self.notes = notes
        self.user = user
        self.attachments: list[Path] = [Path(p) for p in attachments or []]
        self.attributes: dict[str, str] = dict(attributes or {})

        self._previous_excepthook: ExceptHook | None = None

    @classmethod
    def from_config(cls, config: Config) -> CrashReporter:
        """Build a reporter and its HTTP stack from a Config."""
        if not config.database or not config.application or not config.version:
            raise ValueError("database, application and version must be configured")

        http_client_factory = HttpClientFactory(config)
        client = CrashPostClient(
            http_client_factory,
            ObjectStorageClientFactory(http_client_factory),
            service_url=config.service_url,
        )
        reporter = cls(
            config.database,
            config.application,
            config.version,
            client=client,
            description=config.description,
            email=config.email,
            app_key=config.app_key,
            notes=config.notes,
            user=config.user,
            attachments=list(config.attachments),
        )
        reporter._owned_factory = http_client_factory
        return reporter

    def post_exception(
        self,
        exc: BaseException,
        options: PostOptions | None = None,
    ) -> PostResult:
        """Format an exception with its traceback and post it."""
        stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        merged = (options or ExceptionPostOptions()).merged_with(ExceptionPostOptions.create(self))
        return self.client.post_exception(
            self.database, self.application, self.version, stack_trace, merged
        )

    def post_minidump(
        self,
        minidump_file: str | Path,
        options: PostOptions | None = None,
    ) -> PostResult:
        merged = (options or MinidumpPostOptions()).merged_with(MinidumpPostOptions.create(self))
        return self.client.post_minidump(
            self.database, self.application, self.version, minidump_file, merged
        )

    def post_crash_file(
        self,
        crash_file: str | Path,
        options: PostOptions | None = None,
    ) -> PostResult:
        merged = (options or MinidumpPostOptions()).merged_with(MinidumpPostOptions.create(self))
        return self.client.post_crash_file(
            self.database, self.application, self.version, crash_file, merged
        )

    def close(self) -> None:
        """Close the HTTP session this reporter created, if any."""
        if self._owned_factory is not None:
            self._owned_factory.close()
            self._owned_factory = None

    def __enter__(self) -> CrashReporter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def install_excepthook(self) -> None:
        """Report unhandled exceptions, then hand them to the previous hook."""
        if self._previous_excepthook is not None:
            return
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._excepthook

    def uninstall_excepthook(self) -> None:
        if self._previous_excepthook is None:
            return
        if sys.excepthook == self._excepthook:
            sys.excepthook = self._previous_excepthook
        self._previous_excepthook = None

    def _excepthook(
        self,
        exc_type: type,
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            try:
                result = self.post_exception(exc.with_traceback(tb))
                if not result.success:
                    logger.error(f"Failed to report unhandled exception: {result.error}")
            except Exception:
                logger.exception("Error while reporting unhandled exception")

        previous = self._previous_excepthook or sys.__excepthook__
        previous(exc_type, exc, tb)
