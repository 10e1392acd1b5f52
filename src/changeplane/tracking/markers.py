"""Transient created/deleted markers maintained from watch events.

A path is in at most one of the two sets at any time. Both sets share one
lock. When the baseline must be touched in the same step, the marker lock
is taken first.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable
from pathlib import Path

from changeplane.tracking.policy import normalize_path, path_key


class ChangeMarkers:
    """Created/deleted path sets keyed case-insensitively."""

    def __init__(self) -> None:
        self._created: dict[str, Path] = {}
        self._deleted: dict[str, Path] = {}
        self.lock = threading.RLock()

    def mark_created(self, path: Path) -> None:
        key = path_key(path)
        with self.lock:
            self._deleted.pop(key, None)
            self._created[key] = path

    def mark_deleted(self, path: Path) -> None:
        key = path_key(path)
        with self.lock:
            self._created.pop(key, None)
            self._deleted[key] = path

    def unmark(self, *paths: Path) -> None:
        with self.lock:
            for path in paths:
                key = path_key(path)
                self._created.pop(key, None)
                self._deleted.pop(key, None)

    def replace(
        self,
        created: Iterable[str | os.PathLike[str]],
        deleted: Iterable[str | os.PathLike[str]],
    ) -> None:
        """Swap in both sets; a path listed in both ends up deleted."""
        new_created = {path_key(p): normalize_path(p) for p in created}
        new_deleted = {path_key(p): normalize_path(p) for p in deleted}
        for key in new_deleted:
            new_created.pop(key, None)
        with self.lock:
            self._created = new_created
            self._deleted = new_deleted

    def clear(self) -> None:
        with self.lock:
            self._created = {}
            self._deleted = {}

    def is_created(self, path: Path) -> bool:
        with self.lock:
            return path_key(path) in self._created

    def is_deleted(self, path: Path) -> bool:
        with self.lock:
            return path_key(path) in self._deleted

    def created(self) -> list[Path]:
        """Point-in-time copy of the created set, ordered by key."""
        with self.lock:
            return [self._created[k] for k in sorted(self._created)]

    def deleted(self) -> list[Path]:
        with self.lock:
            return [self._deleted[k] for k in sorted(self._deleted)]
