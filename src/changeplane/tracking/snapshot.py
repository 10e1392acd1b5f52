"""Baseline snapshot store.

The baseline maps each tracked file (case-insensitive key) to its content
at the reference point. It is replaced wholesale by take_snapshot() and
set_baseline(), never merged piecemeal; the only incremental edit is the
rename migration performed on a watched move event.

Reads are I/O bound, so the snapshot fans out over a thread pool sized
to 2x the CPU count. Paths are deduplicated by key before the fan-out, so
each worker owns the key it inserts and, when two names differ only by
case, the first in sorted order wins.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog

from changeplane.config.models import DEFAULT_MAX_FILE_BYTES
from changeplane.tracking.policy import (
    is_trackable_dir,
    is_trackable_path,
    normalize_path,
    path_key,
)

logger = structlog.get_logger()


def default_read_workers() -> int:
    return 2 * (os.cpu_count() or 1)


def read_file_content(path: Path, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> str | None:
    """Read a text file, or return None when it is too large or unreadable.

    UTF-8 with BOM detection, undecodable bytes replaced, newlines preserved.
    """
    try:
        if path.stat().st_size > max_bytes:
            return None
        with path.open(encoding="utf-8-sig", errors="replace", newline="") as f:
            return f.read()
    except OSError as e:
        logger.debug("file_read_skipped", path=str(path), error=str(e))
        return None


def iter_trackable_files(root: Path) -> Iterator[Path]:
    """Recursively yield trackable files under *root*.

    Deny-listed directories are pruned in place, and unreadable
    directories are skipped without aborting the walk.
    """

    def _on_error(error: OSError) -> None:
        logger.debug("directory_skipped", path=error.filename, error=str(error))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [d for d in dirnames if is_trackable_dir(d)]
        for filename in filenames:
            file_path = Path(dirpath) / filename
            if is_trackable_path(file_path):
                yield file_path


def capture_snapshot(
    root: Path,
    *,
    max_bytes: int = DEFAULT_MAX_FILE_BYTES,
    workers: int | None = None,
) -> dict[str, tuple[Path, str]]:
    """Read every trackable file under *root*.

    Returns key -> (path, content). Files above max_bytes or unreadable
    files are silently dropped. Of paths sharing a case-insensitive key only
    the first in sorted order is read.
    """
    files: dict[str, Path] = {}
    for path in sorted(iter_trackable_files(root)):
        files.setdefault(path_key(path), path)
    captured: dict[str, tuple[Path, str]] = {}

    def _read(path: Path) -> None:
        content = read_file_content(path, max_bytes)
        if content is not None:
            captured[path_key(path)] = (path, content)

    if files:
        with ThreadPoolExecutor(
            max_workers=workers or default_read_workers(),
            thread_name_prefix="changeplane-snapshot",
        ) as executor:
            # list() surfaces worker exceptions instead of dropping them
            list(executor.map(_read, files.values()))

    return captured


class SnapshotStore:
    """Thread-safe baseline mapping: path key -> (display path, content)."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Path, str]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        with self._lock:
            return path_key(path) in self._entries

    def replace(self, entries: Mapping[str, tuple[Path, str]]) -> None:
        """Swap in a complete new baseline."""
        new_entries = dict(entries)
        with self._lock:
            self._entries = new_entries

    def replace_contents(self, contents: Mapping[str | os.PathLike[str], str]) -> None:
        """Swap in a baseline given as path -> content."""
        entries: dict[str, tuple[Path, str]] = {}
        for raw_path, content in contents.items():
            path = normalize_path(raw_path)
            entries[path_key(path)] = (path, content)
        self.replace(entries)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def migrate(self, old_path: Path, new_path: Path, keep: bool) -> bool:
        """Move the entry at old_path to new_path (dropped when keep is False).

        Returns True when old_path had an entry.
        """
        with self._lock:
            entry = self._entries.pop(path_key(old_path), None)
            if entry is None:
                return False
            if keep:
                self._entries[path_key(new_path)] = (new_path, entry[1])
            return True

    def items(self) -> list[tuple[Path, str]]:
        """Point-in-time copy of (path, content), ordered by key."""
        with self._lock:
            return [self._entries[k] for k in sorted(self._entries)]

    def as_dict(self) -> dict[Path, str]:
        return dict(self.items())
