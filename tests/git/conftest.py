"""Test fixtures for git baselines."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


def commit_all(repo: pygit2.Repository, message: str) -> None:
    """Stage every working-tree file and commit it on HEAD."""
    repo.index.add_all()
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    parents = [] if repo.head_is_unborn else [repo.head.target]
    repo.create_commit("HEAD", sig, sig, message, tree, parents)


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with an initial commit."""
    repo_path = tmp_path / "repo"
    (repo_path / "src").mkdir(parents=True)

    repo = pygit2.init_repository(str(repo_path), initial_head="main")

    # Configure user
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "README.md").write_text("# Test Repo\n")
    (repo_path / "src" / "app.py").write_text("def main():\n    return 1\n")
    (repo_path / "src" / "util.py").write_text("VALUE = 1\n")
    (repo_path / "logo.png").write_bytes(b"\x89PNG")
    commit_all(repo, "Initial commit")

    yield repo


@pytest.fixture
def repo_root(temp_repo: pygit2.Repository) -> Path:
    return Path(temp_repo.workdir).resolve()


@pytest.fixture
def commit(temp_repo: pygit2.Repository) -> Callable[[], None]:
    """Commit every working-tree change of temp_repo."""
    return lambda: commit_all(temp_repo, "Update")
