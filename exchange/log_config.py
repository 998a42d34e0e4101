"""structlog setup for the exchange."""

from __future__ import annotations

import logging

import structlog

from exchange.config import DEFAULT_CONFIG


def configure_logging(level: str | int | None = None) -> None:
    """Configure structlog with console output.

    Args:
        level: Level name or number. Defaults to DEFAULT_CONFIG.log_level.
    """
    if level is None:
        level = DEFAULT_CONFIG.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
