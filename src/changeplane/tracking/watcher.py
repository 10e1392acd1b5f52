"""Recursive workspace watcher built on watchdog.

Design:
- One recursive watchdog Observer per tracked root
- Raw events are filtered through the trackability predicate and handed to
  an EventSink (the tracker's reducers) on the observer's own thread
- Directory events are ignored; only file paths are tracked
- A failing reducer is logged and swallowed so the observer thread, and
  with it the watch, stays alive
- pause()/resume() gate delivery without unscheduling the watch
"""

from __future__ import annotations

import os
import threading
from collections import Counter
from pathlib import Path
from typing import Protocol

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from changeplane.tracking.policy import is_trackable_path, normalize_path

logger = structlog.get_logger()

OBSERVER_JOIN_TIMEOUT_SEC = 5.0


class EventSink(Protocol):
    """Receiver of filtered raw events."""

    def record_changed(self, path: Path) -> None: ...

    def record_created(self, path: Path) -> None: ...

    def record_deleted(self, path: Path) -> None: ...

    def record_renamed(self, old_path: Path, new_path: Path) -> None: ...


def summarize_changes_by_type(paths: list[Path]) -> str:
    """Summarize file changes by extension with grammatical correctness.

    Returns a human-readable summary like:
    - "1 .py file" (singular)
    - "3 .py files, 1 .md file" (multiple types)
    - "2 .ts files, 1 .py file, 1 .md file, 2 others" (more than 3 types)
    """
    ext_counts: Counter[str] = Counter(p.suffix.lower() or "other" for p in paths)

    parts: list[str] = []
    for ext, count in ext_counts.most_common(3):
        word = "file" if count == 1 else "files"
        parts.append(f"{count} {ext} {word}")

    shown_count = sum(count for _ext, count in ext_counts.most_common(3))
    remaining = len(paths) - shown_count
    if remaining > 0:
        word = "other" if remaining == 1 else "others"
        parts.append(f"{remaining} {word}")

    return ", ".join(parts)


def _event_path(raw: str | bytes) -> Path:
    return normalize_path(os.fsdecode(raw))


class TrackingEventHandler(FileSystemEventHandler):
    """Translates watchdog events into EventSink calls."""

    def __init__(self, sink: EventSink) -> None:
        super().__init__()
        self._sink = sink
        self._enabled = threading.Event()
        self._enabled.set()

    @property
    def enabled(self) -> bool:
        return self._enabled.is_set()

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self._enabled.set()
        else:
            self._enabled.clear()

    def dispatch(self, event: FileSystemEvent) -> None:
        if not self._enabled.is_set() or event.is_directory:
            return
        try:
            super().dispatch(event)
        except Exception as e:
            logger.error(
                "watch_event_failed",
                event_type=event.event_type,
                path=os.fsdecode(event.src_path),
                error=str(e),
            )

    def on_modified(self, event: FileSystemEvent) -> None:
        path = _event_path(event.src_path)
        if is_trackable_path(path):
            logger.debug("path_changed", path=str(path))
            self._sink.record_changed(path)

    def on_created(self, event: FileSystemEvent) -> None:
        path = _event_path(event.src_path)
        if is_trackable_path(path):
            logger.debug("path_created", path=str(path))
            self._sink.record_created(path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = _event_path(event.src_path)
        if is_trackable_path(path):
            logger.debug("path_deleted", path=str(path))
            self._sink.record_deleted(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        old_path = _event_path(event.src_path)
        new_path = _event_path(event.dest_path)
        # The sink re-checks trackability of each side on its own
        if is_trackable_path(old_path) or is_trackable_path(new_path):
            logger.debug("path_renamed", old_path=str(old_path), new_path=str(new_path))
            self._sink.record_renamed(old_path, new_path)


class WorkspaceWatcher:
    """Owns the watchdog Observer for one root.

    Usage::

        watcher = WorkspaceWatcher(root, sink)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, root: Path, sink: EventSink) -> None:
        self.root = root
        self._handler = TrackingEventHandler(sink)
        self._observer: BaseObserver | None = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def is_paused(self) -> bool:
        return not self._handler.enabled

    def start(self) -> bool:
        """Schedule the recursive watch. Returns False when the OS refuses it."""
        if self._observer is not None:
            return True
        observer = Observer()
        try:
            observer.schedule(self._handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            logger.error("watch_start_failed", root=str(self.root), error=str(e))
            return False
        self._observer = observer
        logger.info("file_watcher_started", root=str(self.root))
        return True

    def stop(self) -> None:
        """Unschedule the watch and wait for the observer thread to exit."""
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        # No event reaches the sink once stop() returns
        self._handler.set_enabled(False)
        observer.unschedule_all()
        observer.stop()
        observer.join(timeout=OBSERVER_JOIN_TIMEOUT_SEC)
        logger.info("file_watcher_stopped", root=str(self.root))

    def pause(self) -> None:
        self._handler.set_enabled(False)

    def resume(self) -> None:
        if self._observer is not None:
            self._handler.set_enabled(True)
