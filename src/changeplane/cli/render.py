"""Rich rendering of changed files for the terminal."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

from changeplane.diff.models import ChangedFile, ChangeKind, DiffLine, DiffLineKind

_KIND_STYLES: dict[ChangeKind, str] = {
    ChangeKind.CREATED: "green",
    ChangeKind.MODIFIED: "yellow",
    ChangeKind.DELETED: "red",
    ChangeKind.RENAMED: "cyan",
}

_LINE_STYLES: dict[DiffLineKind, str] = {
    DiffLineKind.ADDED: "green",
    DiffLineKind.REMOVED: "red",
    DiffLineKind.CONTEXT: "dim",
}


def _number(value: int | None, width: int) -> str:
    return str(value).rjust(width) if value is not None else " " * width


def format_header(changed: ChangedFile) -> Text:
    """One-line summary: name, directory, indicator, +X -Y."""
    text = Text()
    text.append(changed.file_name, style=f"bold {_KIND_STYLES[changed.kind]}")
    if changed.relative_dir:
        text.append(f"  {changed.relative_dir}", style="dim")
    if changed.type_indicator:
        text.append(f" {changed.type_indicator}", style=_KIND_STYLES[changed.kind])
    if changed.old_path is not None:
        text.append(f" (from {changed.old_path.name})", style="dim")
    text.append("  ")
    text.append(f"+{changed.lines_added}", style="green")
    text.append(" ")
    text.append(f"-{changed.lines_removed}", style="red")
    return text


def format_diff_line(line: DiffLine, width: int) -> Text:
    if line.is_gap:
        return Text(f"{' ' * (2 * width + 1)}  {line.text}", style="dim")
    marker = {DiffLineKind.ADDED: "+", DiffLineKind.REMOVED: "-"}.get(line.kind, " ")
    text = Text(
        f"{_number(line.old_line_number, width)} {_number(line.new_line_number, width)} ",
        style="dim",
    )
    text.append(f"{marker} {line.text}", style=_LINE_STYLES[line.kind])
    return text


def render_changed_files(
    console: Console,
    files: list[ChangedFile],
    *,
    show_diff: bool = True,
) -> None:
    if not files:
        console.print("[dim]No changes.[/dim]")
        return

    total_added = sum(f.lines_added for f in files)
    total_removed = sum(f.lines_removed for f in files)
    word = "file" if len(files) == 1 else "files"
    console.print(
        f"[bold]{len(files)} {word} changed[/bold] "
        f"([green]+{total_added}[/green] [red]-{total_removed}[/red])"
    )

    for changed in files:
        console.print(format_header(changed))
        if not show_diff or not changed.diff_lines:
            continue
        numbers = [
            n
            for line in changed.diff_lines
            for n in (line.old_line_number, line.new_line_number)
            if n is not None
        ]
        width = len(str(max(numbers))) if numbers else 1
        for line in changed.diff_lines:
            console.print(format_diff_line(line, width), highlight=False, markup=False)
