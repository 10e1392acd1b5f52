"""FileChangeTracker: baseline snapshot + live watch + change classification.

Lifecycle: construct -> take_snapshot()/set_baseline() -> start_tracking()
-> get_changed_files() on every "files changed" notification ->
stop_tracking() -> close(). Every instance owns its own state, so any
number of trackers can coexist.

Threading:
- watchdog delivers raw events on its observer thread, concurrently with
  callers of get_changed_files()/take_snapshot()
- created/deleted markers share one lock (ChangeMarkers.lock); the baseline
  has its own (SnapshotStore); when both are needed the marker lock is
  taken first
- the pending set is its own thread-safe set and only drives the
  "should I notify" decision
- notifications are delivered on the debounce timer thread
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import structlog

from changeplane.config.models import TrackerConfig
from changeplane.diff.models import ChangedFile
from changeplane.tracking.classifier import ChangeClassifier
from changeplane.tracking.debounce import DebounceTimer, PendingChanges
from changeplane.tracking.markers import ChangeMarkers
from changeplane.tracking.policy import is_trackable_path, normalize_path
from changeplane.tracking.snapshot import SnapshotStore, capture_snapshot
from changeplane.tracking.watcher import WorkspaceWatcher, summarize_changes_by_type

logger = structlog.get_logger()

FilesChangedCallback = Callable[[], None]


def _valid_root(root: str | os.PathLike[str] | None) -> Path | None:
    if root is None or not os.fspath(root):
        return None
    path = normalize_path(root)
    return path if path.is_dir() else None


class FileChangeTracker:
    """Tracks what changed in a workspace since a baseline snapshot.

    Usage::

        with FileChangeTracker() as tracker:
            tracker.take_snapshot(root)
            tracker.subscribe(lambda: render(tracker.get_changed_files()))
            tracker.start_tracking(root)
            ...
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        on_files_changed: FilesChangedCallback | None = None,
    ) -> None:
        self.config = config or TrackerConfig()
        self._root: Path | None = None
        self._store = SnapshotStore()
        self._markers = ChangeMarkers()
        self._pending = PendingChanges()
        self._timer = DebounceTimer(self._on_debounce_elapsed, self.config.debounce_sec)
        self._watcher: WorkspaceWatcher | None = None
        self._listeners: list[FilesChangedCallback] = []
        self._listeners_lock = threading.Lock()
        self._lifecycle_lock = threading.RLock()
        self._paused = False
        self._closed = False
        if on_files_changed is not None:
            self.subscribe(on_files_changed)

    # =========================================================================
    # State accessors
    # =========================================================================

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def is_tracking(self) -> bool:
        return self._watcher is not None and self._watcher.is_running

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_closed(self) -> bool:
        return self._closed

    def baseline(self) -> dict[Path, str]:
        """Copy of the baseline, path -> content."""
        return self._store.as_dict()

    def created_paths(self) -> list[Path]:
        return self._markers.created()

    def deleted_paths(self) -> list[Path]:
        return self._markers.deleted()

    # =========================================================================
    # Baseline
    # =========================================================================

    def take_snapshot(self, root: str | os.PathLike[str]) -> int:
        """Capture the baseline of every trackable file under root.

        Replaces the previous baseline and clears the markers. Returns the
        number of captured files; an empty or missing root is a no-op.
        """
        path = _valid_root(root)
        if path is None:
            logger.warning("snapshot_skipped", root=os.fspath(root) if root else None)
            return 0

        started = time.monotonic()
        captured = capture_snapshot(
            path,
            max_bytes=self.config.max_file_bytes,
            workers=self.config.read_workers,
        )
        with self._markers.lock:
            self._store.replace(captured)
            self._markers.clear()
            self._root = path

        logger.info(
            "snapshot_taken",
            root=str(path),
            files=len(captured),
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return len(captured)

    def set_baseline(
        self,
        root: str | os.PathLike[str],
        contents: Mapping[str | os.PathLike[str], str] | None,
        created: Iterable[str | os.PathLike[str]] | None = None,
        deleted: Iterable[str | os.PathLike[str]] | None = None,
    ) -> None:
        """Replace baseline and markers with externally supplied state, without a rescan."""
        if not root or not os.fspath(root):
            return
        with self._markers.lock:
            self._store.replace_contents(contents or {})
            self._markers.replace(created or (), deleted or ())
            self._root = normalize_path(root)
        logger.info(
            "baseline_set",
            root=str(self._root),
            files=len(contents or {}),
        )

    def clear(self) -> None:
        """Forget the baseline, markers and pending changes."""
        with self._markers.lock:
            self._store.clear()
            self._markers.clear()
        self._pending.clear()

    def is_trackable_path(self, path: str | os.PathLike[str]) -> bool:
        return is_trackable_path(path)

    # =========================================================================
    # Watch lifecycle
    # =========================================================================

    def start_tracking(self, root: str | os.PathLike[str]) -> bool:
        """Watch root recursively, replacing any previous watch."""
        with self._lifecycle_lock:
            if self._closed:
                return False
            path = _valid_root(root)
            if path is None:
                logger.warning("tracking_skipped", root=os.fspath(root) if root else None)
                return False

            self.stop_tracking()
            watcher = WorkspaceWatcher(path, self)
            if not watcher.start():
                return False
            self._watcher = watcher
            self._root = path
            self._paused = False
            logger.info("tracking_started", root=str(path), debounce_sec=self._timer.delay)
            return True

    def stop_tracking(self) -> None:
        with self._lifecycle_lock:
            watcher, self._watcher = self._watcher, None
            if watcher is not None:
                watcher.stop()
            self._timer.cancel()
            self._pending.clear()
            self._paused = False

    def pause(self) -> None:
        """Stop delivering events and notifications; keep the watch and all state."""
        with self._lifecycle_lock:
            self._paused = True
            if self._watcher is not None:
                self._watcher.pause()
            self._timer.cancel()
        logger.debug("tracking_paused")

    def resume(self) -> None:
        with self._lifecycle_lock:
            if self._closed:
                return
            self._paused = False
            if self._watcher is not None:
                self._watcher.resume()
            if self._pending:
                self._timer.schedule()
        logger.debug("tracking_resumed")

    def close(self) -> None:
        """Dispose: no notification is delivered once this returns."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            self.stop_tracking()
        # Outside the lifecycle lock: an in-flight listener may still need it
        self._timer.cancel(final=True)
        with self._listeners_lock:
            self._listeners.clear()
        logger.debug("tracker_closed")

    def __enter__(self) -> FileChangeTracker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, callback: FilesChangedCallback) -> Callable[[], None]:
        """Register a "files changed" listener. Returns an unsubscribe function."""
        with self._listeners_lock:
            self._listeners.append(callback)

        def _unsubscribe() -> None:
            with self._listeners_lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return _unsubscribe

    def _touch(self, *paths: Path) -> None:
        for path in paths:
            self._pending.add(path)
        if not self._paused and not self._closed:
            self._timer.schedule()

    def _on_debounce_elapsed(self) -> None:
        if self._paused or self._closed:
            return
        paths = self._pending.drain()
        if not paths:
            return

        logger.info("changes_detected", count=len(paths), summary=summarize_changes_by_type(paths))

        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error("files_changed_listener_failed", error=str(e))

    # =========================================================================
    # Raw event reducers (called from the watcher thread or by a host feed)
    # =========================================================================

    def record_changed(self, path: str | os.PathLike[str]) -> None:
        path = normalize_path(path)
        if not is_trackable_path(path):
            return
        self._touch(path)

    def record_created(self, path: str | os.PathLike[str]) -> None:
        path = normalize_path(path)
        if not is_trackable_path(path):
            return
        self._markers.mark_created(path)
        self._touch(path)

    def record_deleted(self, path: str | os.PathLike[str]) -> None:
        path = normalize_path(path)
        if not is_trackable_path(path):
            return
        self._markers.mark_deleted(path)
        self._touch(path)

    def record_renamed(
        self,
        old_path: str | os.PathLike[str],
        new_path: str | os.PathLike[str],
    ) -> None:
        """Apply a rename: the baseline entry follows the file to its new path.

        Marks on both paths are cleared. A trackable new path that ends up
        without a baseline entry is then marked created, so a file first
        written under a temporary name stays visible.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        new_trackable = is_trackable_path(new_path)
        if not is_trackable_path(old_path) and not new_trackable:
            return

        with self._markers.lock:
            migrated = self._store.migrate(old_path, new_path, keep=new_trackable)
            self._markers.unmark(old_path, new_path)
            if new_trackable and new_path not in self._store:
                self._markers.mark_created(new_path)

        if migrated:
            logger.debug("baseline_migrated", old_path=str(old_path), new_path=str(new_path))
        self._touch(old_path, new_path)

    # =========================================================================
    # Query
    # =========================================================================

    def get_changed_files(self) -> list[ChangedFile]:
        """Fresh list of differences from the baseline, ordered by file name."""
        root = self._root
        if root is None:
            return []

        with self._markers.lock:
            created = self._markers.created()
            baseline = self._store.items()

        classifier = ChangeClassifier(
            root=root,
            max_file_bytes=self.config.max_file_bytes,
            context_lines=self.config.context_lines,
        )
        return classifier.classify(baseline, created)
