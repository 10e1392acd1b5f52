"""ChangePlane CLI - chp command."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

import click
from rich.console import Console

from changeplane import __version__
from changeplane.cli.render import render_changed_files
from changeplane.config import ChangePlaneConfig, load_config
from changeplane.core.errors import ConfigError
from changeplane.core.logging import configure_logging
from changeplane.diff.models import ChangedFile
from changeplane.git import (
    GitAutoReset,
    NotARepositoryError,
    apply_baseline,
    load_git_baseline,
)
from changeplane.tracking import FileChangeTracker


def _load_config(root: Path, verbose: bool, **overrides: Any) -> ChangePlaneConfig:
    try:
        config = load_config(root, **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    return config


@click.group()
@click.version_option(version=__version__, prog_name="chp")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ChangePlane - what changed in this workspace since a reference point."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command("changes")
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--no-diff", is_flag=True, help="List files without their diffs")
@click.pass_context
def changes_command(ctx: click.Context, path: Path, as_json: bool, no_diff: bool) -> None:
    """Show changes in PATH against the git HEAD baseline.

    PATH is the workspace directory (default: current directory).
    """
    workspace = path.resolve()
    config = _load_config(workspace, ctx.obj.get("verbose", False))

    try:
        baseline = load_git_baseline(workspace, max_bytes=config.tracker.max_file_bytes)
    except NotARepositoryError as e:
        raise click.ClickException(str(e)) from e

    files: list[ChangedFile] = []
    if baseline is not None:
        with FileChangeTracker(config.tracker) as tracker:
            tracker.set_baseline(
                baseline.workspace, baseline.contents, baseline.created, baseline.deleted
            )
            files = tracker.get_changed_files()

    if as_json:
        click.echo(json.dumps([f.to_dict(include_diff=not no_diff) for f in files], indent=2))
        return
    render_changed_files(Console(), files, show_diff=not no_diff)


@cli.command("watch")
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--git/--snapshot",
    "use_git",
    default=True,
    help="Baseline from git HEAD when the workspace is dirty, or always from a disk snapshot",
)
@click.option("--debounce", type=float, default=None, help="Quiet period in seconds")
@click.option("--no-diff", is_flag=True, help="List files without their diffs")
@click.pass_context
def watch_command(
    ctx: click.Context,
    path: Path,
    use_git: bool,
    debounce: float | None,
    no_diff: bool,
) -> None:
    """Watch PATH and reprint the change list whenever files change.

    With the git baseline, committing the listed changes resets the
    baseline so the list empties. Stop with Ctrl+C.
    """
    workspace = path.resolve()
    overrides = {"tracker": {"debounce_sec": debounce}} if debounce is not None else {}
    config = _load_config(workspace, ctx.obj.get("verbose", False), **overrides)
    console = Console(stderr=False)
    idle = threading.Event()

    with FileChangeTracker(config.tracker) as tracker:
        source = apply_baseline(tracker, workspace, use_git=use_git)
        auto_reset: GitAutoReset | None = None
        if use_git and config.git.auto_reset:
            auto_reset = GitAutoReset(
                tracker,
                workspace,
                throttle_sec=config.git.status_throttle_sec,
                poll_sec=config.git.poll_sec,
            )

        def _refresh() -> None:
            if auto_reset is not None:
                auto_reset.check()
            console.rule(f"[cyan]{workspace}[/cyan]")
            render_changed_files(console, tracker.get_changed_files(), show_diff=not no_diff)

        tracker.subscribe(_refresh)
        if not tracker.start_tracking(workspace):
            raise click.ClickException(f"Could not watch '{workspace}'")

        console.print(f"[green]✓[/green] Watching (baseline: {source}) {workspace}")
        _refresh()
        try:
            while not idle.wait(0.5):
                if auto_reset is not None and auto_reset.poll():
                    _refresh()
        except KeyboardInterrupt:
            console.print("[dim]Stopped.[/dim]")


if __name__ == "__main__":
    cli()
