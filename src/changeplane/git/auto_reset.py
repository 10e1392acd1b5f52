"""Automatic baseline reset once the repository is clean again.

A git baseline lists everything that differs from HEAD. After a commit
the working tree matches HEAD but the tracker still compares against the
old contents, so the change list would never empty. GitAutoReset detects
"changes listed, git status empty" and takes a fresh baseline.

git status is throttled per repository root. Commits only write under
.git, which the watcher never reports, so hosts call poll() on a timer in
addition to check() after every change notification.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from changeplane.config.models import DEFAULT_GIT_POLL_SEC, DEFAULT_GIT_STATUS_THROTTLE_SEC
from changeplane.git.baseline import apply_baseline, find_repository_root, is_repository_clean
from changeplane.tracking.policy import normalize_path, path_key

if TYPE_CHECKING:
    from changeplane.tracking.tracker import FileChangeTracker

logger = structlog.get_logger()


class ThrottledCleanCheck:
    """is_repository_clean() with the last answer reused for throttle_sec."""

    def __init__(
        self,
        throttle_sec: float = DEFAULT_GIT_STATUS_THROTTLE_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.throttle_sec = throttle_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._last: tuple[str, float, bool] | None = None

    def __call__(self, repo_root: str | os.PathLike[str]) -> bool:
        key = path_key(repo_root)
        now = self._clock()
        with self._lock:
            if self._last is not None:
                last_key, checked_at, clean = self._last
                if last_key == key and now - checked_at < self.throttle_sec:
                    return clean

        clean = is_repository_clean(repo_root)
        with self._lock:
            self._last = (key, now, clean)
        return clean


class GitAutoReset:
    """Resets a tracker's git baseline when its repository turns clean."""

    def __init__(
        self,
        tracker: FileChangeTracker,
        workspace: str | os.PathLike[str],
        *,
        throttle_sec: float = DEFAULT_GIT_STATUS_THROTTLE_SEC,
        poll_sec: float = DEFAULT_GIT_POLL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tracker = tracker
        self.workspace: Path = normalize_path(workspace)
        self.poll_sec = poll_sec
        self._clock = clock
        self._is_clean = ThrottledCleanCheck(throttle_sec, clock)
        # Held while a reset runs; a second caller skips instead of waiting
        self._resetting = threading.Lock()
        self._next_poll = clock() + poll_sec

    def should_reset(self) -> bool:
        """True when the repository is clean but the tracker still lists changes."""
        root = find_repository_root(self.workspace)
        if root is None or not self._is_clean(root):
            return False
        return bool(self.tracker.get_changed_files())

    def check(self) -> bool:
        """Reset the baseline if should_reset(). Returns True when it did."""
        if not self._resetting.acquire(blocking=False):
            return False
        try:
            if not self.should_reset():
                return False
            source = apply_baseline(self.tracker, self.workspace, use_git=True)
            logger.info("baseline_auto_reset", workspace=str(self.workspace), source=source)
            return True
        finally:
            self._resetting.release()

    def poll(self) -> bool:
        """check() at most once per poll_sec. Returns True when it reset."""
        now = self._clock()
        if now < self._next_poll:
            return False
        self._next_poll = now + self.poll_sec
        return self.check()
