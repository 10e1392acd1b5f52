"""Tests for configuration models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from changeplane.config.models import (
    DEFAULT_CONTEXT_LINES,
    DEFAULT_DEBOUNCE_SEC,
    DEFAULT_GIT_POLL_SEC,
    DEFAULT_GIT_STATUS_THROTTLE_SEC,
    DEFAULT_MAX_FILE_BYTES,
    ChangePlaneConfig,
    GitConfig,
    LogOutputConfig,
    TrackerConfig,
)


class TestTrackerConfig:
    """Tests for TrackerConfig."""

    def test_defaults(self) -> None:
        config = TrackerConfig()

        assert config.debounce_sec == DEFAULT_DEBOUNCE_SEC == 0.5
        assert config.max_file_bytes == DEFAULT_MAX_FILE_BYTES == 4 * 1024 * 1024
        assert config.context_lines == DEFAULT_CONTEXT_LINES == 3
        assert config.read_workers is None

    def test_zero_debounce_allowed(self) -> None:
        assert TrackerConfig(debounce_sec=0).debounce_sec == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"debounce_sec": -0.1},
            {"max_file_bytes": -1},
            {"context_lines": -3},
            {"read_workers": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            TrackerConfig(**kwargs)  # type: ignore[arg-type]


class TestGitConfig:
    def test_defaults(self) -> None:
        config = GitConfig()

        assert config.auto_reset is True
        assert config.status_throttle_sec == DEFAULT_GIT_STATUS_THROTTLE_SEC == 5.0
        assert config.poll_sec == DEFAULT_GIT_POLL_SEC == 15.0

    def test_rejects_negative_intervals(self) -> None:
        with pytest.raises(ValidationError):
            GitConfig(poll_sec=-1)


class TestLogOutputConfig:
    def test_console_destinations(self) -> None:
        assert LogOutputConfig(destination="stdout").destination == "stdout"

    def test_relative_file_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LogOutputConfig(destination="logs/out.log")


class TestChangePlaneConfig:
    def test_nested_sections(self) -> None:
        config = ChangePlaneConfig.model_validate(
            {"logging": {"level": "DEBUG"}, "tracker": {"context_lines": 0}}
        )

        assert config.logging.level == "DEBUG"
        assert config.tracker.context_lines == 0
        assert config.tracker.debounce_sec == DEFAULT_DEBOUNCE_SEC
