"""Git-backed baseline: "what changed since HEAD" for a workspace.

Reads the repository status through pygit2 and turns it into the payload
of FileChangeTracker.set_baseline():
- untracked / added paths       -> created markers
- deleted paths                 -> HEAD content in the baseline + deleted marker
- modified / type-changed /
  conflicted paths              -> HEAD content in the baseline

Renames are not detected here: git status reports them as a deletion plus
an untracked or added path, which the classifier's rename inference pairs
up again. Paths outside the workspace or failing the trackability
predicate are skipped.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import pygit2
import structlog
from pygit2.enums import FileStatus

from changeplane.config.models import DEFAULT_MAX_FILE_BYTES
from changeplane.git.errors import NotARepositoryError
from changeplane.tracking.policy import is_trackable_path, normalize_path, path_key

if TYPE_CHECKING:
    from changeplane.tracking.tracker import FileChangeTracker

logger = structlog.get_logger()

_CREATED_FLAGS = FileStatus.WT_NEW | FileStatus.INDEX_NEW
_DELETED_FLAGS = FileStatus.WT_DELETED | FileStatus.INDEX_DELETED
_MODIFIED_FLAGS = (
    FileStatus.WT_MODIFIED
    | FileStatus.INDEX_MODIFIED
    | FileStatus.WT_TYPECHANGE
    | FileStatus.INDEX_TYPECHANGE
    | FileStatus.CONFLICTED
)

BaselineSource = Literal["git", "snapshot", "none"]


@dataclass(frozen=True)
class GitBaseline:
    """set_baseline() payload derived from git status."""

    workspace: Path
    contents: dict[Path, str] = field(default_factory=dict)
    created: frozenset[Path] = frozenset()
    deleted: frozenset[Path] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.contents or self.created or self.deleted)


def find_repository_root(start: str | os.PathLike[str]) -> Path | None:
    """Working-tree root of the repository containing start, or None."""
    try:
        git_dir = pygit2.discover_repository(os.fspath(start))
    except pygit2.GitError:
        return None
    if git_dir is None:
        return None
    workdir = pygit2.Repository(git_dir).workdir
    return normalize_path(workdir) if workdir else None


def _open(repo_root: Path) -> pygit2.Repository:
    try:
        return pygit2.Repository(str(repo_root))
    except pygit2.GitError as e:
        raise NotARepositoryError(str(repo_root)) from e


def is_repository_clean(repo_root: str | os.PathLike[str]) -> bool:
    """True when git status reports nothing (ignored files excluded).

    Unreadable or missing repositories count as not clean.
    """
    try:
        return not _open(Path(repo_root)).status()
    except (NotARepositoryError, pygit2.GitError) as e:
        logger.debug("git_status_failed", repo_root=str(repo_root), error=str(e))
        return False


def _is_under(path: Path, directory: Path) -> bool:
    key = path_key(path)
    dir_key = path_key(directory)
    return key == dir_key or key.startswith(dir_key.rstrip(os.sep) + os.sep)


def _read_head(
    repo: pygit2.Repository,
    head_tree: pygit2.Tree | None,
    rel_path: str,
    max_bytes: int,
) -> str | None:
    if head_tree is None:
        return None
    try:
        entry = head_tree[rel_path]
    except KeyError:
        return None
    blob = repo[entry.id]
    if not isinstance(blob, pygit2.Blob) or blob.size > max_bytes:
        return None
    return blob.data.decode("utf-8-sig", errors="replace")


def load_git_baseline(
    workspace: str | os.PathLike[str],
    repo_root: str | os.PathLike[str] | None = None,
    *,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> GitBaseline | None:
    """Build a baseline for workspace from HEAD and the working-tree status.

    Args:
        workspace: Directory whose changes are tracked (may be a subdirectory
                   of the repository).
        repo_root: Repository working tree. Discovered from workspace if None.
        max_bytes: HEAD blobs larger than this are left out.

    Returns:
        The baseline, or None when nothing under workspace is dirty.

    Raises:
        NotARepositoryError: workspace is not inside a git repository.
    """
    workspace_path = normalize_path(workspace)
    root = normalize_path(repo_root) if repo_root else find_repository_root(workspace_path)
    if root is None:
        raise NotARepositoryError(str(workspace_path))

    repo = _open(root)
    head_tree = None if repo.head_is_unborn else repo.head.peel(pygit2.Tree)

    contents: dict[Path, str] = {}
    created: set[Path] = set()
    deleted: set[Path] = set()

    for rel_path, flags in sorted(repo.status().items()):
        full_path = normalize_path(root / rel_path)
        if not _is_under(full_path, workspace_path) or not is_trackable_path(full_path):
            continue

        if flags & _CREATED_FLAGS:
            created.add(full_path)
            continue

        if flags & _DELETED_FLAGS:
            original = _read_head(repo, head_tree, rel_path, max_bytes)
            if original is not None:
                contents[full_path] = original
            deleted.add(full_path)
            continue

        if flags & _MODIFIED_FLAGS:
            original = _read_head(repo, head_tree, rel_path, max_bytes)
            if original is not None:
                contents[full_path] = original

    baseline = GitBaseline(
        workspace=workspace_path,
        contents=contents,
        created=frozenset(created),
        deleted=frozenset(deleted),
    )
    if baseline.is_empty:
        return None

    logger.info(
        "git_baseline_loaded",
        workspace=str(workspace_path),
        baseline_files=len(contents),
        created=len(created),
        deleted=len(deleted),
    )
    return baseline


def apply_baseline(
    tracker: FileChangeTracker,
    workspace: str | os.PathLike[str],
    *,
    use_git: bool = True,
) -> BaselineSource:
    """Reset the tracker's baseline for workspace.

    Prefers the git baseline when use_git is set and the workspace has
    uncommitted changes; otherwise takes a fresh snapshot of the disk.
    """
    if use_git:
        try:
            baseline = load_git_baseline(workspace, max_bytes=tracker.config.max_file_bytes)
        except (NotARepositoryError, pygit2.GitError) as e:
            logger.debug("git_baseline_unavailable", workspace=os.fspath(workspace), error=str(e))
            baseline = None
        if baseline is not None:
            tracker.set_baseline(
                baseline.workspace,
                baseline.contents,
                baseline.created,
                baseline.deleted,
            )
            return "git"

    if not Path(workspace).is_dir():
        return "none"
    tracker.take_snapshot(workspace)
    return "snapshot"
