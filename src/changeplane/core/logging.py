"""Structured logging for the tracker and the CLI.

structlog renders through stdlib logging so every output (stderr, stdout,
file) gets its own handler, level and renderer. Events are emitted from
several threads (watchdog observer, debounce timer, snapshot workers), so
each record carries the emitting thread's name.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

if TYPE_CHECKING:
    from changeplane.config.models import LoggingConfig, LogOutputConfig

_CONSOLE_DESTINATIONS = ("stderr", "stdout")

# First file output of the active configuration, for "see log" pointers
_log_file_path: Path | None = None


def get_log_file_path() -> Path | None:
    """Path of the first file output, if any."""
    return _log_file_path


def _level_number(name: str, default: int = logging.INFO) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), default)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        CallsiteParameterAdder([CallsiteParameter.THREAD_NAME]),
    ]


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install structlog and the stdlib handlers.

    Args:
        config: Full logging configuration. Takes precedence over the
            simple parameters below.
        json_format: Single stderr output rendered as JSON instead of console text.
        level: Root level when no config is given.
    """
    from changeplane.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level.upper(),  # type: ignore[arg-type]
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )

    root_level = _level_number(config.level)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration (e.g. -v after load_config) must reach existing loggers
        cache_logger_on_first_use=False,
    )
    _install_handlers(config, shared, root_level)


def _open_handler(destination: str) -> logging.Handler:
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _build_formatter(
    output: LogOutputConfig,
    shared: list[structlog.types.Processor],
) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        stream = sys.stdout if output.destination == "stdout" else sys.stderr
        renderer = structlog.dev.ConsoleRenderer(
            colors=output.destination in _CONSOLE_DESTINATIONS and stream.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)


def _install_handlers(
    config: LoggingConfig,
    shared: list[structlog.types.Processor],
    root_level: int,
) -> None:
    global _log_file_path

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(root_level)

    # watchdog logs every inotify buffer read at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)

    _log_file_path = None
    for output in config.outputs:
        if output.destination not in _CONSOLE_DESTINATIONS and _log_file_path is None:
            _log_file_path = Path(output.destination)

        handler = _open_handler(output.destination)
        handler.setLevel(_level_number(output.level or config.level, root_level))
        handler.setFormatter(_build_formatter(output, shared))
        root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """structlog logger, bound to `logger=name` when a name is given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
