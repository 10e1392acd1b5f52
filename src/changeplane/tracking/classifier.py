"""Change classifier: reconciles the baseline with the live disk state.

For every baseline path:
- still on disk with equal content   -> no record
- still on disk with other content   -> MODIFIED
- gone, and rename inference finds a -> RENAMED (old=baseline path, path=target)
  target among the created markers
- gone otherwise                     -> DELETED

Every created marker without a baseline entry that was not consumed as a
rename target, still exists and is trackable -> CREATED.

Rename inference is a best-effort two-pass heuristic:
1. exact content match against the candidates (a pure rename)
2. otherwise the first remaining candidate (a rename with edits)
It cannot tell apart several simultaneous renames-with-edits; candidates
are enumerated in sorted key order so the outcome is at least
deterministic.

Classification reads the tracker state but never mutates it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from changeplane.config.models import DEFAULT_CONTEXT_LINES, DEFAULT_MAX_FILE_BYTES
from changeplane.diff.engine import compute_diff
from changeplane.diff.models import ChangedFile, ChangeKind
from changeplane.tracking.policy import is_trackable_path, path_key
from changeplane.tracking.snapshot import read_file_content

logger = structlog.get_logger()

ContentReader = Callable[[Path], str | None]


@dataclass
class RenameCandidates:
    """Created-marker paths that may be the target of a rename.

    Built once per classification pass. Content is read lazily and cached
    for the duration of the pass.
    """

    paths: list[Path]
    reader: ContentReader
    _contents: dict[str, str | None] = field(default_factory=dict, init=False)
    _consumed: set[str] = field(default_factory=set, init=False)

    @classmethod
    def build(
        cls,
        created: Iterable[Path],
        baseline_keys: set[str],
        reader: ContentReader,
    ) -> RenameCandidates:
        paths = [
            p
            for p in sorted(created, key=path_key)
            if path_key(p) not in baseline_keys and is_trackable_path(p) and p.is_file()
        ]
        return cls(paths=paths, reader=reader)

    def content(self, path: Path) -> str | None:
        key = path_key(path)
        if key not in self._contents:
            self._contents[key] = self.reader(path)
        return self._contents[key]

    def is_consumed(self, path: Path) -> bool:
        return path_key(path) in self._consumed

    def consume(self, path: Path) -> None:
        self._consumed.add(path_key(path))

    def _remaining(self, exclude: Path) -> list[Path]:
        exclude_key = path_key(exclude)
        return [
            p for p in self.paths if path_key(p) != exclude_key and not self.is_consumed(p)
        ]

    def resolve(self, missing_path: Path, original: str) -> Path | None:
        """Pick the rename target for a missing baseline path, consuming it."""
        remaining = [p for p in self._remaining(missing_path) if self.content(p) is not None]

        # Pass 1: pure rename
        for candidate in remaining:
            if self.content(candidate) == original:
                self.consume(candidate)
                return candidate

        # Pass 2: rename with edits
        if remaining:
            self.consume(remaining[0])
            return remaining[0]

        return None


def relative_display_path(path: Path, root: Path | None) -> str:
    """POSIX path relative to root, or the absolute path when outside it."""
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def _sort_key(changed: ChangedFile) -> tuple[str, str, str]:
    return (changed.file_name.casefold(), changed.relative_path.casefold(), str(changed.path))


@dataclass
class ChangeClassifier:
    """Builds ChangedFile records from a baseline and the created markers."""

    root: Path | None
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    context_lines: int = DEFAULT_CONTEXT_LINES

    def read(self, path: Path) -> str | None:
        return read_file_content(path, self.max_file_bytes)

    def make_record(
        self,
        path: Path,
        kind: ChangeKind,
        original: str | None,
        modified: str | None,
        old_path: Path | None = None,
    ) -> ChangedFile:
        diff = compute_diff(original, modified, self.context_lines)
        return ChangedFile(
            path=path,
            relative_path=relative_display_path(path, self.root),
            kind=kind,
            original_content=original,
            modified_content=modified,
            old_path=old_path,
            lines_added=diff.lines_added,
            lines_removed=diff.lines_removed,
            diff_lines=diff.lines,
        )

    def classify(
        self,
        baseline: Sequence[tuple[Path, str]],
        created: Sequence[Path],
    ) -> list[ChangedFile]:
        """Reconcile a baseline snapshot and created markers against disk."""
        changed: list[ChangedFile] = []
        baseline_keys = {path_key(p) for p, _content in baseline}
        candidates = RenameCandidates.build(created, baseline_keys, self.read)

        for path, original in baseline:
            if not is_trackable_path(path):
                continue
            try:
                record = self._classify_baseline_entry(path, original, candidates)
            except OSError as e:
                logger.warning("file_check_failed", path=str(path), error=str(e))
                continue
            if record is not None:
                changed.append(record)

        for path in sorted(created, key=path_key):
            key = path_key(path)
            if key in baseline_keys or candidates.is_consumed(path):
                continue
            if not is_trackable_path(path) or not path.is_file():
                continue
            current = self.read(path)
            if current is None:
                continue
            changed.append(self.make_record(path, ChangeKind.CREATED, None, current))

        changed.sort(key=_sort_key)
        return changed

    def _classify_baseline_entry(
        self,
        path: Path,
        original: str,
        candidates: RenameCandidates,
    ) -> ChangedFile | None:
        if not path.exists():
            target = candidates.resolve(path, original)
            if target is not None:
                return self.make_record(
                    target,
                    ChangeKind.RENAMED,
                    original,
                    candidates.content(target),
                    old_path=path,
                )
            return self.make_record(path, ChangeKind.DELETED, original, None)

        current = self.read(path)
        if current is None or current == original:
            return None
        return self.make_record(path, ChangeKind.MODIFIED, original, current)
