"""Debounced change notification.

PendingChanges records which paths were touched since the last firing.
DebounceTimer is a single-slot scheduler: every schedule() supersedes the
outstanding timer, so a burst of raw events produces exactly one firing
once the burst has been quiet for `delay` seconds.

Firing is serialized and never re-entrant. cancel(final=True) blocks until
any in-flight firing has returned, after which the callback never runs
again.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path

import structlog

from changeplane.config.models import DEFAULT_DEBOUNCE_SEC
from changeplane.tracking.policy import path_key

logger = structlog.get_logger()


class PendingChanges:
    """Thread-safe set of touched paths (key -> (path, last touch time))."""

    def __init__(self) -> None:
        self._paths: dict[str, tuple[Path, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def __bool__(self) -> bool:
        return len(self) > 0

    def add(self, path: Path) -> None:
        with self._lock:
            self._paths[path_key(path)] = (path, time.monotonic())

    def drain(self) -> list[Path]:
        """Atomically take and clear the pending paths."""
        with self._lock:
            paths = [path for path, _ts in self._paths.values()]
            self._paths = {}
        return paths

    def clear(self) -> None:
        with self._lock:
            self._paths = {}


class DebounceTimer:
    """Cancel-and-reschedule timer with exactly-once, non-reentrant firing."""

    def __init__(
        self,
        callback: Callable[[], None],
        delay: float = DEFAULT_DEBOUNCE_SEC,
        *,
        name: str = "changeplane-debounce",
    ) -> None:
        self._callback = callback
        self.delay = delay
        self._name = name
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._closed = False
        self._lock = threading.Lock()
        # Held for the whole callback so firings never overlap
        self._fire_lock = threading.RLock()

    @property
    def is_scheduled(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        """(Re)arm the timer, superseding any outstanding one."""
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            timer.name = self._name
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self, *, final: bool = False) -> None:
        """Drop the outstanding timer. With final=True the timer is disposed."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            if final:
                self._closed = True
        if final:
            # Wait out an in-flight firing
            with self._fire_lock:
                pass

    def _fire(self, generation: int) -> None:
        with self._fire_lock:
            with self._lock:
                # Superseded or cancelled after the thread was already running
                if self._closed or generation != self._generation:
                    return
                self._timer = None
            try:
                self._callback()
            except Exception as e:
                logger.error("debounce_callback_failed", error=str(e))
