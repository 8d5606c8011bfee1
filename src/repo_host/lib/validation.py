"""Path segment validation for values that end up in filesystem joins.

``user`` and ``name`` must match a strict allow-list.  Paths served from a
repository directory may contain dots inside segment names (``packed-refs``,
``pack-<sha>.idx``) but never ``.`` or ``..`` segments.
"""

from __future__ import annotations

import re

from repo_host.lib.errors import InvalidSegmentError

__all__ = ["split_relative_path", "validate_segment"]

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_FILE_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_segment(value: str, *, field: str) -> str:
    """Return *value* unchanged if it is a safe path segment.

    Args:
        value: Raw segment, typically a URL path parameter or JSON field.
        field: Name used in the error message.

    Raises:
        InvalidSegmentError: If *value* is empty or contains anything other
            than ASCII letters, digits, hyphen, or underscore.
    """
    if not isinstance(value, str) or not _SEGMENT_PATTERN.match(value):
        raise InvalidSegmentError(
            f"{field} must be non-empty and contain only letters, digits, '-' or '_'"
        )
    return value


def split_relative_path(path: str, *, field: str = "path") -> list[str]:
    """Split a slash-separated relative path into validated segments.

    Raises:
        InvalidSegmentError: If the path is empty, absolute, or contains an
            empty, ``.`` or ``..`` segment, or a character outside
            ``[A-Za-z0-9._-]``.
    """
    if not path or path.startswith("/"):
        raise InvalidSegmentError(f"{field} must be a non-empty relative path")
    parts = path.split("/")
    for part in parts:
        if part in {"", ".", ".."} or not _FILE_SEGMENT_PATTERN.match(part):
            raise InvalidSegmentError(f"{field} contains an invalid segment: {part!r}")
    return parts
