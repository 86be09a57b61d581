"""Logging configuration for the Turnaround CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from turnaround.config.models import LoggingSettings

LOG_FILENAME = "turnaround.log"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    state_dir: Optional[Path] = None,
    *,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach Turnaround's handlers to the package logger.

    Existing handlers are replaced, so repeated calls (one per CLI command in
    tests) do not stack output.

    Args:
        settings: Level and rotation settings.
        state_dir: Project metadata directory; when it exists a rotating log
            file is written inside it.
        console: Console used for stderr output.

    Returns:
        logging.Logger: The configured ``turnaround`` logger.
    """
    logger = logging.getLogger("turnaround")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)
    logger.propagate = False

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=level <= logging.DEBUG,
        show_path=level <= logging.DEBUG,
        rich_tracebacks=True,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if state_dir is not None and state_dir.is_dir():
        file_handler = RotatingFileHandler(
            state_dir / LOG_FILENAME,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["LOG_FILENAME", "configure_logging"]
