"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CHANGEPLANE__SECTION__KEY)
3. Repo YAML (<root>/.changeplane/config.yaml)
4. Global YAML (~/.config/changeplane/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CHANGEPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    CHANGEPLANE__LOGGING__LEVEL=DEBUG
    CHANGEPLANE__TRACKER__DEBOUNCE_SEC=1.0
    CHANGEPLANE__TRACKER__MAX_FILE_BYTES=1048576
    CHANGEPLANE__GIT__AUTO_RESET=false
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_DEBOUNCE_SEC = 0.5
DEFAULT_MAX_FILE_BYTES = 4 * 1024 * 1024
DEFAULT_CONTEXT_LINES = 3
DEFAULT_GIT_STATUS_THROTTLE_SEC = 5.0
DEFAULT_GIT_POLL_SEC = 15.0


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CHANGEPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every raw watch event.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class TrackerConfig(BaseModel):
    """Change tracker configuration.

    Env vars:
        CHANGEPLANE__TRACKER__DEBOUNCE_SEC: Quiet period before a change notification
        CHANGEPLANE__TRACKER__MAX_FILE_BYTES: Skip files larger than this
        CHANGEPLANE__TRACKER__CONTEXT_LINES: Unchanged lines shown around each change
        CHANGEPLANE__TRACKER__READ_WORKERS: Parallel readers during a snapshot
    """

    debounce_sec: float = Field(
        default=DEFAULT_DEBOUNCE_SEC,
        description="Quiet period before one aggregate 'files changed' notification. "
        "Lower values may notify several times for one editor save.",
    )
    max_file_bytes: int = Field(
        default=DEFAULT_MAX_FILE_BYTES,
        description="Files larger than this are silently left out of the baseline and of "
        "every later comparison.",
    )
    context_lines: int = Field(
        default=DEFAULT_CONTEXT_LINES,
        description="Unchanged lines included on each side of a change in rendered diffs.",
    )
    read_workers: int | None = Field(
        default=None,
        description="Parallel file readers while snapshotting. Default: 2x CPU count.",
    )

    @field_validator("debounce_sec")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"debounce_sec must be >= 0, got {v}")
        return v

    @field_validator("max_file_bytes", "context_lines")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must be >= 0, got {v}")
        return v

    @field_validator("read_workers")
    @classmethod
    def validate_workers(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError(f"read_workers must be >= 1, got {v}")
        return v


class GitConfig(BaseModel):
    """Git baseline configuration for `chp watch`.

    Env vars:
        CHANGEPLANE__GIT__AUTO_RESET: Reset the baseline once the repository is clean again
        CHANGEPLANE__GIT__STATUS_THROTTLE_SEC: Reuse a git status result for this long
        CHANGEPLANE__GIT__POLL_SEC: Interval of the clean check while nothing on disk moves
    """

    auto_reset: bool = Field(
        default=True,
        description="After a commit (or any action that leaves git status empty) while "
        "changes are listed, take a fresh baseline so the list empties.",
    )
    status_throttle_sec: float = Field(default=DEFAULT_GIT_STATUS_THROTTLE_SEC, ge=0)
    poll_sec: float = Field(
        default=DEFAULT_GIT_POLL_SEC,
        ge=0,
        description="Commits only touch .git, which is never watched, so the clean check "
        "also runs on this interval.",
    )


class ChangePlaneConfig(BaseModel):
    """Root configuration for ChangePlane.

    All settings can be configured via:
    1. Environment variables: CHANGEPLANE__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    git: GitConfig = Field(default_factory=GitConfig)
