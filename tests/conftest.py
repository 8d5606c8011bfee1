"""Shared fixtures: bare repositories built directly with pygit2."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import pygit2
import pytest
from pygit2.enums import FileMode

from repo_host.lib.repo import RepoRef, create_repository

T0 = 1_700_000_000
SUBMODULE_COMMIT = pygit2.Oid(hex="1" * 40)


def signature(when: int) -> pygit2.Signature:
    return pygit2.Signature("Alice", "alice@example.com", when, 0)


def _write_nested(repo: pygit2.Repository, node: Mapping[str, Any]) -> pygit2.Oid:
    builder = repo.TreeBuilder()
    for name, value in node.items():
        if isinstance(value, dict):
            builder.insert(name, _write_nested(repo, value), FileMode.TREE)
        elif isinstance(value, pygit2.Oid):
            builder.insert(name, value, FileMode.COMMIT)
        else:
            builder.insert(name, repo.create_blob(value), FileMode.BLOB)
    return builder.write()


def write_tree(
    repo: pygit2.Repository, files: Mapping[str, bytes | pygit2.Oid]
) -> pygit2.Oid:
    """Write a tree holding *files* (slash-separated paths) and return its id.

    An ``Oid`` value is written as a submodule link to that commit.
    """
    nested: dict[str, Any] = {}
    for path, content in files.items():
        parts = path.split("/")
        node = nested
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = content
    return _write_nested(repo, nested)


def commit_files(
    repo: pygit2.Repository,
    files: Mapping[str, bytes | pygit2.Oid],
    message: str,
    *,
    ref: str = "refs/heads/main",
    parents: Iterable[pygit2.Oid] = (),
    when: int = T0,
) -> pygit2.Oid:
    """Commit a full snapshot of *files* onto *ref*."""
    sig = signature(when)
    return repo.create_commit(ref, sig, sig, message, write_tree(repo, files), list(parents))


@pytest.fixture()
def repos_root(tmp_path: Path) -> Path:
    root = tmp_path / "repos"
    root.mkdir()
    return root


@pytest.fixture()
def bare_repo(repos_root: Path) -> pygit2.Repository:
    """An empty bare repository for alice/proj whose HEAD is ``main``."""
    path = create_repository(RepoRef("alice", "proj"), repos_root, initial_head="main")
    return pygit2.Repository(str(path))
