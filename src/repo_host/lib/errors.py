"""Error taxonomy shared by the git layer and the HTTP surface.

Failures fall into two classes at the HTTP boundary:

- ``NotFoundError`` (missing branch, path, file, or wrong-kind object).  The
  ``reason`` is kept for logging and never sent to clients.
- ``StoreError`` for anything that goes wrong opening or reading the object
  database.  Its message is surfaced to clients as a server fault.
"""

from __future__ import annotations

__all__ = [
    "InvalidSegmentError",
    "MaterializationCancelled",
    "NotABlobError",
    "NotFoundError",
    "RepoHostError",
    "RepositoryExistsError",
    "StoreError",
]


class RepoHostError(Exception):
    """Base class for all repo-host errors."""


class NotFoundError(RepoHostError):
    """A requested repository object does not exist."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotABlobError(NotFoundError):
    """A path resolved to a tree entry that is not a blob."""


class StoreError(RepoHostError):
    """The object store failed while opening or reading a repository."""


class MaterializationCancelled(StoreError):
    """A tree walk was abandoned because its caller asked it to stop."""


class RepositoryExistsError(RepoHostError):
    """A repository already exists at the provisioning path."""


class InvalidSegmentError(RepoHostError, ValueError):
    """A user-supplied path segment failed the allow-list check."""
