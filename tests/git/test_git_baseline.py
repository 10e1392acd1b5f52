"""Tests for git-backed baselines."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pygit2
import pytest

from changeplane.config.models import TrackerConfig
from changeplane.diff.models import ChangeKind
from changeplane.git import (
    NotARepositoryError,
    apply_baseline,
    find_repository_root,
    is_repository_clean,
    load_git_baseline,
)
from changeplane.tracking.tracker import FileChangeTracker


@pytest.fixture
def tracker() -> Iterator[FileChangeTracker]:
    tracker = FileChangeTracker(TrackerConfig(debounce_sec=0.05))
    yield tracker
    tracker.close()


class TestRepositoryDiscovery:
    def test_finds_root_from_subdirectory(self, repo_root: Path) -> None:
        assert find_repository_root(repo_root / "src") == repo_root

    def test_none_outside_repository(self, tmp_path: Path) -> None:
        outside = tmp_path / "plain"
        outside.mkdir()

        assert find_repository_root(outside) is None

    def test_clean_after_commit(self, repo_root: Path) -> None:
        assert is_repository_clean(repo_root)

    def test_dirty_after_edit(self, repo_root: Path) -> None:
        (repo_root / "README.md").write_text("# Edited\n")

        assert not is_repository_clean(repo_root)

    def test_missing_repository_is_not_clean(self, tmp_path: Path) -> None:
        assert not is_repository_clean(tmp_path / "nothing")


class TestLoadGitBaseline:
    """Tests for load_git_baseline."""

    def test_clean_repository_yields_none(self, repo_root: Path) -> None:
        assert load_git_baseline(repo_root) is None

    def test_not_a_repository(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()

        with pytest.raises(NotARepositoryError):
            load_git_baseline(plain)

    def test_modified_file_baseline_is_head_content(self, repo_root: Path) -> None:
        (repo_root / "src" / "app.py").write_text("def main():\n    return 2\n")

        baseline = load_git_baseline(repo_root)

        assert baseline is not None
        assert baseline.contents == {repo_root / "src" / "app.py": "def main():\n    return 1\n"}
        assert baseline.created == frozenset()
        assert baseline.deleted == frozenset()

    def test_untracked_file_is_created(self, repo_root: Path) -> None:
        (repo_root / "src" / "new.py").write_text("NEW = 1\n")

        baseline = load_git_baseline(repo_root)

        assert baseline is not None
        assert baseline.created == frozenset({repo_root / "src" / "new.py"})

    def test_deleted_file_keeps_head_content(self, repo_root: Path) -> None:
        (repo_root / "README.md").unlink()

        baseline = load_git_baseline(repo_root)

        assert baseline is not None
        assert baseline.deleted == frozenset({repo_root / "README.md"})
        assert baseline.contents[repo_root / "README.md"] == "# Test Repo\n"

    def test_untrackable_paths_skipped(self, repo_root: Path) -> None:
        (repo_root / "logo.png").write_bytes(b"\x89PNG changed")

        assert load_git_baseline(repo_root) is None

    def test_scoped_to_workspace(self, repo_root: Path) -> None:
        (repo_root / "README.md").write_text("# Edited\n")
        (repo_root / "src" / "util.py").write_text("VALUE = 2\n")

        baseline = load_git_baseline(repo_root / "src")

        assert baseline is not None
        assert set(baseline.contents) == {repo_root / "src" / "util.py"}

    def test_oversized_head_blob_skipped(self, repo_root: Path) -> None:
        (repo_root / "src" / "app.py").write_text("changed\n")

        baseline = load_git_baseline(repo_root, max_bytes=5)

        assert baseline is None


class TestApplyBaseline:
    """Tests for apply_baseline."""

    def test_git_baseline_drives_classification(
        self, repo_root: Path, tracker: FileChangeTracker
    ) -> None:
        # Given
        (repo_root / "src" / "app.py").write_text("def main():\n    return 2\n")
        (repo_root / "src" / "new.py").write_text("NEW = 1\n")
        (repo_root / "README.md").unlink()

        # When
        source = apply_baseline(tracker, repo_root)

        # Then
        assert source == "git"
        assert [(c.relative_path, c.kind) for c in tracker.get_changed_files()] == [
            ("src/app.py", ChangeKind.MODIFIED),
            ("src/new.py", ChangeKind.CREATED),
            ("README.md", ChangeKind.DELETED),
        ]

    def test_clean_repository_falls_back_to_snapshot(
        self, repo_root: Path, tracker: FileChangeTracker
    ) -> None:
        assert apply_baseline(tracker, repo_root) == "snapshot"
        assert tracker.get_changed_files() == []
        assert repo_root / "README.md" in tracker.baseline()

    def test_plain_directory_uses_snapshot(
        self, tmp_path: Path, tracker: FileChangeTracker
    ) -> None:
        (tmp_path / "a.py").write_text("a\n")

        assert apply_baseline(tracker, tmp_path) == "snapshot"

    def test_git_disabled(self, repo_root: Path, tracker: FileChangeTracker) -> None:
        (repo_root / "README.md").write_text("# Edited\n")

        assert apply_baseline(tracker, repo_root, use_git=False) == "snapshot"
        assert tracker.get_changed_files() == []

    def test_missing_workspace(self, tmp_path: Path, tracker: FileChangeTracker) -> None:
        assert apply_baseline(tracker, tmp_path / "missing", use_git=False) == "none"


class TestStagedChanges:
    def test_staged_new_file_is_created(
        self, temp_repo: pygit2.Repository, repo_root: Path
    ) -> None:
        (repo_root / "staged.py").write_text("S = 1\n")
        temp_repo.index.add("staged.py")
        temp_repo.index.write()

        baseline = load_git_baseline(repo_root)

        assert baseline is not None
        assert repo_root / "staged.py" in baseline.created
