"""Data models for changed files and their rendered line diffs.

All records are immutable query results: they are rebuilt on every
FileChangeTracker.get_changed_files() call and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath


class ChangeKind(Enum):
    """Kind of change made to a file since the baseline."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class DiffLineKind(Enum):
    """Kind of a rendered diff line."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single line of diff output.

    old_line_number is None exactly for ADDED lines, new_line_number is None
    exactly for REMOVED lines. The gap placeholder is a CONTEXT line with
    neither number.
    """

    text: str
    kind: DiffLineKind
    old_line_number: int | None = None
    new_line_number: int | None = None

    @property
    def is_gap(self) -> bool:
        return (
            self.kind is DiffLineKind.CONTEXT
            and self.old_line_number is None
            and self.new_line_number is None
        )


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Output of the diff engine for one file."""

    lines: tuple[DiffLine, ...] = ()
    lines_added: int = 0
    lines_removed: int = 0

    @classmethod
    def empty(cls) -> DiffResult:
        return cls()


_TYPE_INDICATORS: dict[ChangeKind, str] = {
    ChangeKind.CREATED: "[new]",
    ChangeKind.DELETED: "[del]",
    ChangeKind.RENAMED: "[ren]",
}


@dataclass(frozen=True, slots=True)
class ChangedFile:
    """A file that differs from the baseline, with its diff.

    original_content is None for created files, modified_content is None for
    deleted files. old_path is set only for renames.
    """

    path: Path
    relative_path: str
    kind: ChangeKind
    original_content: str | None = None
    modified_content: str | None = None
    old_path: Path | None = None
    lines_added: int = 0
    lines_removed: int = 0
    diff_lines: tuple[DiffLine, ...] = field(default_factory=tuple)

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def relative_dir(self) -> str:
        """Directory part of relative_path with a trailing slash, or '' at the root."""
        parent = PurePosixPath(self.relative_path).parent
        return "" if str(parent) == "." else f"{parent}/"

    @property
    def changes_summary(self) -> str:
        return f"+{self.lines_added} -{self.lines_removed}"

    @property
    def type_indicator(self) -> str:
        return _TYPE_INDICATORS.get(self.kind, "")

    def to_dict(self, include_diff: bool = True) -> dict[str, object]:
        """Serialize for JSON output."""
        data: dict[str, object] = {
            "path": str(self.path),
            "relative_path": self.relative_path,
            "kind": self.kind.value,
            "old_path": str(self.old_path) if self.old_path else None,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
        }
        if include_diff:
            data["diff"] = [
                {
                    "kind": line.kind.value,
                    "old": line.old_line_number,
                    "new": line.new_line_number,
                    "text": line.text,
                }
                for line in self.diff_lines
            ]
        return data
