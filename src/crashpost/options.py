"""
Post options for crash submissions.

Translates optional crash metadata into the flat key/value fields the
crash service expects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from crashpost.reporter import CrashReporter

CRASH_TYPE_PYTHON = "Python"
CRASH_TYPE_WINDOWS_NATIVE = "Windows.Native"

# Service field name for each metadata attribute
METADATA_FIELDS = {
    "description": "description",
    "email": "email",
    "app_key": "appKey",
    "notes": "notes",
    "user": "user",
}


def get_string_value_or_default(value: str | None, default: str | None) -> str | None:
    """Return value unless it is None or empty, otherwise default."""
    return value if value else default


@dataclass(frozen=True)
class PostOptions:
    """Optional metadata and attachments for a single crash submission."""

    description: str | None = None
    email: str | None = None
    app_key: str | None = None
    notes: str | None = None
    user: str | None = None
    attachments: tuple[Path, ...] = ()
    attributes: dict[str, str] = field(default_factory=dict)
    crash_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attachments", tuple(Path(p) for p in self.attachments))
        object.__setattr__(self, "attributes", dict(self.attributes))

    def to_query_params(self) -> dict[str, str]:
        """Metadata as query parameters, with empty strings for unset fields."""
        return {
            key: getattr(self, attr) or "" for attr, key in METADATA_FIELDS.items()
        }

    def to_form_fields(self) -> dict[str, str]:
        """Metadata as commit form fields; attributes are sent as JSON when set."""
        form = self.to_query_params()
        if self.attributes:
            form["attributes"] = json.dumps(self.attributes)
        return form

    def merged_with(self, defaults: PostOptions) -> PostOptions:
        """
        Resolve these options against a set of defaults.

        Non-empty values here win. Attachments are concatenated defaults
        first without duplicates, and attributes are merged with these
        options taking precedence.
        """
        values: dict[str, Any] = {
            attr: get_string_value_or_default(getattr(self, attr), getattr(defaults, attr))
            for attr in METADATA_FIELDS
        }
        values["attachments"] = _unique_paths(defaults.attachments + self.attachments)
        values["attributes"] = {**defaults.attributes, **self.attributes}
        values["crash_type"] = get_string_value_or_default(self.crash_type, defaults.crash_type)
        return replace(self, **values)

    @classmethod
    def create(cls, reporter: CrashReporter) -> PostOptions:
        """Build options from a reporter's default metadata and attachments."""
        values = {attr: getattr(reporter, attr) for attr in METADATA_FIELDS}
        return cls(
            attachments=tuple(reporter.attachments),
            attributes=dict(reporter.attributes),
            **values,
        )


@dataclass(frozen=True)
class ExceptionPostOptions(PostOptions):
    """Options for stack trace submissions."""

    crash_type: str | None = CRASH_TYPE_PYTHON


@dataclass(frozen=True)
class MinidumpPostOptions(PostOptions):
    """Options for minidump and other crash file submissions."""

    crash_type: str | None = CRASH_TYPE_WINDOWS_NATIVE


def _unique_paths(paths: Iterable[Path]) -> tuple[Path, ...]:
    seen: set[Path] = set()
    unique = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return tuple(unique)
