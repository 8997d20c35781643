"""
Result model for crash submissions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

import requests


@dataclass
class PostResult:
    """Outcome of a crash submission or one of its steps."""

    success: bool
    status_code: int | None = None
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    skipped_attachments: list[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @classmethod
    def from_response(
        cls,
        response: requests.Response,
        duration_ms: float = 0.0,
        skipped_attachments: Iterable[str] = (),
    ) -> PostResult:
        error = None
        if not response.ok:
            error = f"HTTP {response.status_code}: {response.text[:200]}"
        return cls(
            success=bool(response.ok),
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
            error=error,
            skipped_attachments=list(skipped_attachments),
            duration_ms=duration_ms,
        )

    @classmethod
    def from_exception(
        cls,
        exc: requests.RequestException,
        duration_ms: float = 0.0,
        skipped_attachments: Iterable[str] = (),
    ) -> PostResult:
        if isinstance(exc, requests.exceptions.Timeout):
            error = "Request timed out"
        elif isinstance(exc, requests.exceptions.ConnectionError):
            error = f"Connection error: {exc}"
        else:
            error = f"Request error: {exc}"
        return cls(
            success=False,
            error=error,
            skipped_attachments=list(skipped_attachments),
            duration_ms=duration_ms,
        )

    def json(self) -> Any:
        """Parse the response body as JSON. Raises ValueError if it is not JSON."""
        return json.loads(self.body)

    def raise_for_status(self) -> None:
        """Raise CrashPostError if the submission did not succeed."""
        if not self.success:
            raise CrashPostError(self.error or "Crash submission failed", result=self)


class CrashPostError(Exception):
    """Raised by PostResult.raise_for_status() for a failed submission."""

    def __init__(self, message: str, result: PostResult | None = None):
        super().__init__(message)
        self.result = result
