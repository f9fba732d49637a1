"""Logging for source_linked: structlog on top of stdlib logging."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog


if TYPE_CHECKING:
    from collections.abc import Sequence


LogLevel = int | str

ROOT_LOGGER = "source_linked"


def _to_level(level: LogLevel) -> int:
    if isinstance(level, str):
        return logging.getLevelNamesMapping()[level.upper()]
    return level


def _renderer(*, use_colors: bool | None, json_logs: bool) -> Any:
    """Pick console rendering on a terminal or when colors are requested, JSON otherwise."""
    if use_colors is None:
        use_colors = sys.stderr.isatty() and not json_logs
    if json_logs or (not use_colors and not sys.stderr.isatty()):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=use_colors)


def configure_logging(
    level: LogLevel = "INFO",
    *,
    handlers: Sequence[logging.Handler] = (),
    use_colors: bool | None = None,
    json_logs: bool = False,
) -> None:
    """Configure structlog and the stdlib handlers behind it.

    Console output goes to stderr at `level`. Extra handlers (e.g. a log file)
    keep their own level, the stdlib root is opened up far enough for all of
    them.

    Args:
        level: Level of the console handler
        handlers: Additional handlers to attach to the root logger
        use_colors: Whether to use colored console output (auto-detected if None)
        json_logs: Force JSON output regardless of TTY detection
    """
    console_level = _to_level(level)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    all_handlers = [console, *handlers]
    logging.basicConfig(
        level=min([console_level, *(h.level or logging.DEBUG for h in handlers)]),
        handlers=all_handlers,
        force=True,
        format="%(message)s",
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(use_colors=use_colors, json_logs=json_logs),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, prefixed with 'source_linked.' unless it already is."""
    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"
    return structlog.get_logger(full_name)
