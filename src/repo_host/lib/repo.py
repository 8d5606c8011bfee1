"""On-disk repository layout: path mapping, provisioning, and static reads."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

import pygit2

from repo_host.lib.errors import NotFoundError, RepositoryExistsError, StoreError
from repo_host.lib.validation import split_relative_path, validate_segment

__all__ = ["RepoRef", "create_repository", "read_repo_file"]

logger = logging.getLogger(__name__)

REPO_SUFFIX = ".git"


@dataclass(frozen=True)
class RepoRef:
    """A ``(user, name)`` pair identifying one bare repository."""

    user: str
    name: str

    def __post_init__(self) -> None:
        validate_segment(self.user, field="user")
        validate_segment(self.name, field="name")

    def path(self, root: Path) -> Path:
        """Return ``<root>/<user>/<name>.git``."""
        return root / self.user / f"{self.name}{REPO_SUFFIX}"


def create_repository(
    ref: RepoRef, root: Path, *, initial_head: str = "main"
) -> Path:
    """Initialize a new bare repository for *ref* under *root*.

    The repository directory is claimed with a single ``mkdir`` so that of
    several concurrent creates for the same pair exactly one succeeds.

    Args:
        ref: Repository identity.
        root: Directory holding all repositories.
        initial_head: Branch name ``HEAD`` points at in the new repository.

    Returns:
        Path of the new repository.

    Raises:
        RepositoryExistsError: If anything already exists at the path.
        StoreError: If git initialization fails.
    """
    path = ref.path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.mkdir()
    except FileExistsError as exc:
        raise RepositoryExistsError(f"repository {ref.user}/{ref.name} exists") from exc

    try:
        pygit2.init_repository(str(path), bare=True, initial_head=initial_head)
    except (pygit2.GitError, ValueError) as exc:
        shutil.rmtree(path, ignore_errors=True)
        raise StoreError(f"failed to initialize {ref.user}/{ref.name}: {exc}") from exc
    logger.info("Created bare repository %s", path)
    return path


def read_repo_file(ref: RepoRef, root: Path, rel_path: str) -> bytes:
    """Read the literal file *rel_path* inside the repository directory.

    Raises:
        InvalidSegmentError: If *rel_path* contains unsafe segments.
        NotFoundError: If the file is missing or is not a regular file.
    """
    repo_dir = ref.path(root)
    target = repo_dir.joinpath(*split_relative_path(rel_path))
    resolved = target.resolve()
    if not resolved.is_relative_to(repo_dir.resolve()):
        raise NotFoundError(f"{rel_path} escapes the repository directory")
    try:
        return resolved.read_bytes()
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
        raise NotFoundError(f"no file {rel_path} in {ref.user}/{ref.name}") from exc
