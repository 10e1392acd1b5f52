"""Tests for the chp CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pygit2
import pytest
import structlog
from click.testing import CliRunner

from changeplane.cli import main
from changeplane.cli.main import cli


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Committed repository with one tracked file, isolated from user config."""
    monkeypatch.setattr("changeplane.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "g.yaml")
    root = tmp_path / "repo"
    root.mkdir()
    repo = pygit2.init_repository(str(root), initial_head="main")
    (root / "app.py").write_text("x = 1\n")
    repo.index.add_all()
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("HEAD", sig, sig, "Initial commit", tree, [])
    return Path(repo.workdir).resolve()


class TestChangesCommand:
    """Tests for chp changes."""

    def test_clean_repository(self, runner: CliRunner, repo: Path) -> None:
        result = runner.invoke(cli, ["changes", str(repo)])

        assert result.exit_code == 0, result.output
        assert "No changes." in result.output

    def test_lists_modified_file(self, runner: CliRunner, repo: Path) -> None:
        (repo / "app.py").write_text("x = 2\n")

        result = runner.invoke(cli, ["changes", str(repo)])

        assert result.exit_code == 0, result.output
        assert "1 file changed" in result.output
        assert "app.py" in result.output
        assert "x = 2" in result.output

    def test_json_output(self, runner: CliRunner, repo: Path) -> None:
        (repo / "app.py").write_text("x = 2\n")
        (repo / "new.md").write_text("# New\n")

        result = runner.invoke(cli, ["changes", "--json", "--no-diff", str(repo)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [(d["relative_path"], d["kind"]) for d in data] == [
            ("app.py", "modified"),
            ("new.md", "created"),
        ]
        assert "diff" not in data[0]

    def test_not_a_repository(
        self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("changeplane.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "g.yaml")
        plain = tmp_path / "plain"
        plain.mkdir()

        result = runner.invoke(cli, ["changes", str(plain)])

        assert result.exit_code == 1
        assert "Not a git repository" in result.output

    def test_invalid_config_is_reported(self, runner: CliRunner, repo: Path) -> None:
        (repo / ".changeplane").mkdir()
        (repo / ".changeplane" / "config.yaml").write_text("tracker:\n  context_lines: -1\n")

        result = runner.invoke(cli, ["changes", str(repo)])

        assert result.exit_code == 1
        assert "CONFIG_INVALID_VALUE" in result.output


class _InterruptingEvent:
    def wait(self, timeout: float | None = None) -> bool:
        raise KeyboardInterrupt


class _CommitThenInterruptEvent:
    """First wait commits every change in the repository, the next one interrupts."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.calls = 0

    def wait(self, timeout: float | None = None) -> bool:
        self.calls += 1
        if self.calls > 1:
            raise KeyboardInterrupt
        repo = pygit2.Repository(str(self.root))
        repo.index.add_all()
        repo.index.write()
        tree = repo.index.write_tree()
        sig = pygit2.Signature("Test User", "test@example.com")
        repo.create_commit("HEAD", sig, sig, "Update", tree, [repo.head.target])
        return False


class TestWatchCommand:
    """Tests for chp watch."""

    def test_prints_initial_state_and_stops_on_interrupt(
        self, runner: CliRunner, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(main, "threading", SimpleNamespace(Event=_InterruptingEvent))
        (repo / "app.py").write_text("x = 3\n")

        result = runner.invoke(cli, ["watch", "--debounce", "0.1", str(repo)])

        if "Could not watch" in result.output:
            pytest.skip("file watching unavailable")
        assert result.exit_code == 0, result.output
        assert "baseline: git" in result.output
        assert "1 file changed" in result.output
        assert "Stopped." in result.output

    def test_snapshot_baseline(
        self, runner: CliRunner, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(main, "threading", SimpleNamespace(Event=_InterruptingEvent))
        (repo / "app.py").write_text("x = 3\n")

        result = runner.invoke(cli, ["watch", "--snapshot", str(repo)])

        if "Could not watch" in result.output:
            pytest.skip("file watching unavailable")
        assert result.exit_code == 0, result.output
        assert "baseline: snapshot" in result.output
        assert "No changes." in result.output

    def test_commit_empties_the_change_list(
        self, runner: CliRunner, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGEPLANE__GIT__POLL_SEC", "0")
        monkeypatch.setenv("CHANGEPLANE__GIT__STATUS_THROTTLE_SEC", "0")
        monkeypatch.setattr(
            main,
            "threading",
            SimpleNamespace(Event=lambda: _CommitThenInterruptEvent(repo)),
        )
        (repo / "app.py").write_text("x = 3\n")

        result = runner.invoke(cli, ["watch", "--debounce", "0.1", str(repo)])

        if "Could not watch" in result.output:
            pytest.skip("file watching unavailable")
        assert result.exit_code == 0, result.output
        listed = result.output.index("1 file changed")
        assert "No changes." in result.output[listed:]

    def test_commit_keeps_list_without_auto_reset(
        self, runner: CliRunner, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANGEPLANE__GIT__AUTO_RESET", "false")
        monkeypatch.setenv("CHANGEPLANE__GIT__POLL_SEC", "0")
        monkeypatch.setattr(
            main,
            "threading",
            SimpleNamespace(Event=lambda: _CommitThenInterruptEvent(repo)),
        )
        (repo / "app.py").write_text("x = 3\n")

        result = runner.invoke(cli, ["watch", "--debounce", "0.1", str(repo)])

        if "Could not watch" in result.output:
            pytest.skip("file watching unavailable")
        assert result.exit_code == 0, result.output
        assert "1 file changed" in result.output
        assert "No changes." not in result.output


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "chp" in result.output
