"""Read access to bare repositories: HEAD, branches, and blobs.

Every pygit2 failure is translated into the ``repo_host.lib.errors``
taxonomy here so callers never see library exceptions.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pygit2
from pygit2.enums import ObjectType, RepositoryOpenFlag

from repo_host.lib.errors import NotABlobError, NotFoundError, StoreError

__all__ = [
    "head_commit",
    "head_commit_and_tree",
    "head_tree",
    "list_branches",
    "open_repository",
    "read_blob",
    "resolve_branch",
]

logger = logging.getLogger(__name__)


def open_repository(path: Path) -> pygit2.Repository:
    """Open the bare repository at *path*.

    Raises:
        NotFoundError: If *path* is not a directory.
        StoreError: If the directory is not a readable git repository.
    """
    # A missing directory means no such user/name pair, not a broken store.
    if not path.is_dir():
        raise NotFoundError(f"no repository at {path}")
    try:
        return pygit2.Repository(str(path), flags=RepositoryOpenFlag.NO_SEARCH)
    except (pygit2.GitError, KeyError) as exc:
        raise StoreError(f"cannot open repository: {exc}") from exc


def head_commit(repo: pygit2.Repository) -> pygit2.Commit:
    """Peel ``HEAD`` to the commit it points at."""
    try:
        if repo.head_is_unborn:
            raise StoreError("HEAD does not point at a commit")
        return repo.head.peel(pygit2.Commit)
    except (pygit2.GitError, KeyError, ValueError) as exc:
        raise StoreError(f"cannot resolve HEAD: {exc}") from exc


def head_commit_and_tree(
    repo: pygit2.Repository,
) -> tuple[pygit2.Commit, pygit2.Tree]:
    """Peel ``HEAD`` to its commit and that commit's root tree."""
    commit = head_commit(repo)
    try:
        return commit, commit.tree
    except (pygit2.GitError, KeyError) as exc:
        raise StoreError(f"cannot read HEAD tree: {exc}") from exc


def head_tree(repo: pygit2.Repository) -> pygit2.Tree:
    """Peel ``HEAD`` to its root tree."""
    return head_commit_and_tree(repo)[1]


def list_branches(repo: pygit2.Repository) -> list[str]:
    """Return local branch short names in the store's iteration order."""
    try:
        return list(repo.branches.local)
    except pygit2.GitError as exc:
        raise StoreError(f"cannot list branches: {exc}") from exc


def resolve_branch(repo: pygit2.Repository, name: str) -> pygit2.Commit:
    """Look up local branch *name* and peel it to its tip commit.

    Raises:
        NotFoundError: If the branch does not exist, the name is not a valid
            ref name, or the branch cannot be peeled to a commit.
    """
    try:
        branch = repo.lookup_branch(name)
    except (ValueError, pygit2.GitError) as exc:
        raise NotFoundError(f"invalid branch name {name!r}: {exc}") from exc
    if branch is None:
        raise NotFoundError(f"branch {name!r} not found")
    try:
        return branch.peel(pygit2.Commit)
    except (pygit2.GitError, KeyError, ValueError) as exc:
        raise NotFoundError(f"branch {name!r} does not resolve to a commit: {exc}") from exc


def read_blob(repo: pygit2.Repository, branch: str, path: str) -> bytes:
    """Return the raw bytes of the blob at *path* on *branch*.

    Raises:
        NotFoundError: If the branch or the path does not exist.
        NotABlobError: If the path names a tree or a submodule link.
        StoreError: If the branch tree or the blob cannot be read.
    """
    commit = resolve_branch(repo, branch)
    try:
        tree = commit.tree
    except (pygit2.GitError, KeyError) as exc:
        raise StoreError(f"cannot read tree of {branch!r}: {exc}") from exc

    try:
        obj = tree[path.strip("/")]
    except (KeyError, ValueError) as exc:
        raise NotFoundError(f"{path!r} not found on {branch!r}") from exc
    if obj.type != ObjectType.BLOB:
        raise NotABlobError(f"{path!r} on {branch!r} is a {obj.type_str}, not a blob")

    try:
        return obj.data
    except pygit2.GitError as exc:
        raise StoreError(f"cannot read blob {path!r}: {exc}") from exc
