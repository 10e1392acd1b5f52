"""Git-backed baselines."""

from changeplane.git.auto_reset import GitAutoReset, ThrottledCleanCheck
from changeplane.git.baseline import (
    GitBaseline,
    apply_baseline,
    find_repository_root,
    is_repository_clean,
    load_git_baseline,
)
from changeplane.git.errors import GitError, NotARepositoryError

__all__ = [
    "GitAutoReset",
    "GitBaseline",
    "GitError",
    "NotARepositoryError",
    "ThrottledCleanCheck",
    "apply_baseline",
    "find_repository_root",
    "is_repository_clean",
    "load_git_baseline",
]
