"""Line diff engine and change records."""

from changeplane.diff.engine import GAP_MARKER, compute_diff
from changeplane.diff.models import (
    ChangedFile,
    ChangeKind,
    DiffLine,
    DiffLineKind,
    DiffResult,
)

__all__ = [
    "GAP_MARKER",
    "compute_diff",
    "ChangedFile",
    "ChangeKind",
    "DiffLine",
    "DiffLineKind",
    "DiffResult",
]
