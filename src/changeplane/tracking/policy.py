"""Trackability predicate and case-insensitive path keys.

One predicate gates snapshotting, watching and classification, so a path
that fails it never shows up anywhere in the tracker's output.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from changeplane.core.excludes import IGNORED_DIRS, TRACKED_EXTENSIONS

_IGNORED_DIRS_FOLDED = frozenset(d.casefold() for d in IGNORED_DIRS)
_SEPARATORS = re.compile(r"[\\/]")


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Absolute, normalised form of *path* (no symlink resolution)."""
    return Path(os.path.abspath(os.fspath(path)))


def path_key(path: str | os.PathLike[str]) -> str:
    """Case-insensitive identity of a path, used as the key of every tracker map."""
    return str(normalize_path(path)).casefold()


def is_trackable_path(path: str | os.PathLike[str]) -> bool:
    """True when the extension is allow-listed and no segment is a deny-listed directory."""
    text = os.fspath(path)
    if not text:
        return False
    if os.path.splitext(text)[1].casefold() not in TRACKED_EXTENSIONS:
        return False
    return not any(part.casefold() in _IGNORED_DIRS_FOLDED for part in _SEPARATORS.split(text))


def is_trackable_dir(name: str) -> bool:
    """True unless *name* is a deny-listed directory (used to prune walks)."""
    return name.casefold() not in _IGNORED_DIRS_FOLDED
