"""Workspace change tracking: snapshot, watch, classify."""

from changeplane.tracking.policy import is_trackable_path, path_key
from changeplane.tracking.tracker import FileChangeTracker

__all__ = [
    "FileChangeTracker",
    "is_trackable_path",
    "path_key",
]
