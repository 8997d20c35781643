"""
Crash archive assembly.

Every submission is uploaded as a single zip holding the primary payload
(stack trace or crash file) followed by the attachments.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

AttachmentSkippedCallback = Callable[[Path, Exception], None]


@dataclass
class CrashArchive:
    """In-memory crash zip plus the attachments that could not be included."""

    data: bytes
    included: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)


def build_crash_archive(
    entries: dict[str, bytes],
    attachments: Iterable[Path] = (),
    on_attachment_skipped: Optional[AttachmentSkippedCallback] = None,
) -> CrashArchive:
    """
    Zip the primary entries and attachments into memory.

    Args:
        entries: Archive name -> content for the primary payload.
        attachments: Attachment files, added in order under their base name.
        on_attachment_skipped: Called with the path and error for every
            attachment that could not be opened or read.

    Returns:
        The finished CrashArchive.
    """
    buffer = io.BytesIO()
    included: list[str] = []
    skipped: list[str] = []

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
            included.append(name)

        for path in attachments:
            try:
                with path.open("rb") as f:
                    content = f.read()
            except (OSError, ValueError) as e:
                # ValueError covers paths the OS rejects outright, e.g. embedded NUL
                logger.warning(f"Skipping attachment {path!r}: {e}")
                skipped.append(str(path))
                if on_attachment_skipped is not None:
                    _notify_skipped(on_attachment_skipped, path, e)
                continue

            name = _unique_name(path.name, included)
            zf.writestr(name, content)
            included.append(name)

    return CrashArchive(data=buffer.getvalue(), included=included, skipped=skipped)


def _notify_skipped(callback: AttachmentSkippedCallback, path: Path, error: Exception) -> None:
    try:
        callback(path, error)
    except Exception:
        logger.exception(f"on_attachment_skipped callback failed for {path!r}")


def _unique_name(name: str, taken: list[str]) -> str:
    if name not in taken:
        return name
    stem, dot, suffix = name.rpartition(".")
    if not dot:
        stem, suffix = name, ""
    counter = 1
    while True:
        candidate = f"{stem}-{counter}{dot}{suffix}"
        if candidate not in taken:
            return candidate
        counter += 1
