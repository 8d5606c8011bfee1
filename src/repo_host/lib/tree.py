"""Tree materialization: turn a git tree into a nested node graph.

Directories mirror the tree's entries in their native order.  Every file node
carries the id, message, and committer time of the commit blame attributes it
to.  Two attribution strategies exist:

- ``first-hunk`` uses the commit behind the file's first blame hunk, i.e.
  the commit that last touched line 1.
- ``latest-hunk`` uses the newest commit across all hunks.

Files with no lines produce no hunks; those are attributed by walking history
for the most recent commit that changed the path.

Any object-store failure aborts the whole walk; no partial tree is returned.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pygit2
from pygit2.enums import ObjectType, SortMode

from repo_host.lib.errors import MaterializationCancelled, StoreError
from repo_host.lib.git_store import head_commit, head_commit_and_tree

__all__ = [
    "BlameStrategy",
    "DirectoryNode",
    "FileNode",
    "Node",
    "Provenance",
    "materialize_head",
    "materialize_tree",
    "resolve_provenance",
]

logger = logging.getLogger(__name__)

ROOT_NAME = "root"


class BlameStrategy(str, enum.Enum):
    """How a file's last-modification commit is picked from its blame."""

    FIRST_HUNK = "first-hunk"
    LATEST_HUNK = "latest-hunk"


@dataclass(frozen=True)
class Provenance:
    """Commit metadata attributed to a file."""

    commit: str
    message: str
    modified: int

    @classmethod
    def from_commit(cls, commit: pygit2.Commit) -> Provenance:
        return cls(
            commit=str(commit.id),
            message=commit.message,
            modified=commit.commit_time,
        )


@dataclass(frozen=True)
class FileNode:
    """A leaf entry annotated with its provenance."""

    name: str
    commit: str
    message: str
    modified: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "file",
            "name": self.name,
            "commit": self.commit,
            "message": self.message,
            "modified": self.modified,
        }


@dataclass(frozen=True)
class DirectoryNode:
    """A directory entry whose children are fully materialized."""

    name: str
    children: tuple[Node, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "directory",
            "name": self.name,
            "childs": [child.to_dict() for child in self.children],
        }


Node = FileNode | DirectoryNode


def _join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


def _lookup_commit(repo: pygit2.Repository, oid: pygit2.Oid) -> pygit2.Commit:
    try:
        commit = repo[oid]
    except (KeyError, ValueError) as exc:
        raise StoreError(f"commit {oid} is missing") from exc
    if not isinstance(commit, pygit2.Commit):
        raise StoreError(f"object {oid} is not a commit")
    return commit


def _entry_id(tree: pygit2.Tree, path: str) -> pygit2.Oid | None:
    try:
        return tree[path].id
    except KeyError:
        return None


def _last_commit_touching(
    repo: pygit2.Repository, newest: pygit2.Oid, path: str
) -> pygit2.Commit:
    """Walk history from *newest* for the last commit that changed *path*."""
    walker = repo.walk(newest, SortMode.TOPOLOGICAL | SortMode.TIME)
    for commit in walker:
        current = _entry_id(commit.tree, path)
        if current is None:
            continue
        if not commit.parents:
            return commit
        if all(_entry_id(parent.tree, path) != current for parent in commit.parents):
            return commit
    raise StoreError(f"no commit in history touches {path}")


def resolve_provenance(
    repo: pygit2.Repository,
    path: str,
    *,
    newest_commit: pygit2.Oid | None = None,
    strategy: BlameStrategy = BlameStrategy.FIRST_HUNK,
) -> Provenance:
    """Attribute *path* to a commit using blame.

    Args:
        repo: Open repository.
        path: Slash-separated path of the file inside the tree.
        newest_commit: Commit the blame starts from; ``HEAD`` when omitted.
        strategy: Which hunk's final commit to report.

    Raises:
        StoreError: If blame fails or an attributed commit is unreadable.
    """
    try:
        if newest_commit is None:
            blame = repo.blame(path)
        else:
            blame = repo.blame(path, newest_commit=newest_commit)
        hunks = list(blame)
    except (pygit2.GitError, KeyError, ValueError) as exc:
        raise StoreError(f"blame failed for {path}: {exc}") from exc

    if not hunks:
        start = newest_commit if newest_commit is not None else head_commit(repo).id
        try:
            commit = _last_commit_touching(repo, start, path)
        except (pygit2.GitError, KeyError) as exc:
            raise StoreError(f"history walk failed for {path}: {exc}") from exc
        logger.debug("No blame hunks for %s; attributed via history to %s", path, commit.id)
        return Provenance.from_commit(commit)

    if strategy is BlameStrategy.FIRST_HUNK:
        return Provenance.from_commit(_lookup_commit(repo, hunks[0].final_commit_id))

    # max() keeps the earliest hunk on ties
    commits = [_lookup_commit(repo, hunk.final_commit_id) for hunk in hunks]
    return Provenance.from_commit(max(commits, key=lambda c: c.commit_time))


def materialize_tree(
    repo: pygit2.Repository,
    tree: pygit2.Tree,
    *,
    newest_commit: pygit2.Oid | None = None,
    strategy: BlameStrategy = BlameStrategy.FIRST_HUNK,
    name: str = ROOT_NAME,
    prefix: str = "",
    should_stop: Callable[[], bool] | None = None,
) -> DirectoryNode:
    """Recursively convert *tree* into a :class:`DirectoryNode`.

    Args:
        repo: Open repository owning *tree*.
        tree: Tree object to walk.
        newest_commit: Commit *tree* belongs to; blame starts there.
        strategy: Attribution strategy for file nodes.
        name: Name of the returned directory node.
        prefix: Path of *tree* relative to the repository root.
        should_stop: Polled once per entry; a true result abandons the walk.

    Raises:
        StoreError: On any object-store failure.
        MaterializationCancelled: If *should_stop* returned true.
    """
    children: list[Node] = []
    for entry in tree:
        if should_stop is not None and should_stop():
            raise MaterializationCancelled(f"walk of {prefix or '/'} cancelled")
        if not entry.name:
            raise StoreError(f"unnamed or undecodable entry {entry.id} under {prefix or '/'}")
        path = _join(prefix, entry.name)

        if entry.type == ObjectType.TREE:
            try:
                subtree = repo[entry.id]
            except (KeyError, ValueError) as exc:
                raise StoreError(f"tree {path} is unreadable") from exc
            children.append(
                materialize_tree(
                    repo,
                    subtree,
                    newest_commit=newest_commit,
                    strategy=strategy,
                    name=entry.name,
                    prefix=path,
                    should_stop=should_stop,
                )
            )
            continue

        provenance = resolve_provenance(
            repo, path, newest_commit=newest_commit, strategy=strategy
        )
        children.append(
            FileNode(
                name=entry.name,
                commit=provenance.commit,
                message=provenance.message,
                modified=provenance.modified,
            )
        )
    return DirectoryNode(name=name, children=tuple(children))


def materialize_head(
    repo: pygit2.Repository,
    *,
    strategy: BlameStrategy = BlameStrategy.FIRST_HUNK,
    should_stop: Callable[[], bool] | None = None,
) -> DirectoryNode:
    """Materialize the tree ``HEAD`` points at under a synthetic ``root``."""
    commit, tree = head_commit_and_tree(repo)
    logger.debug("Materializing %s at %s", repo.path, commit.id)
    return materialize_tree(
        repo,
        tree,
        newest_commit=commit.id,
        strategy=strategy,
        should_stop=should_stop,
    )
