import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "insights.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 3

LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(name: str) -> int:
    """Maps a LOG_LEVEL name onto a logging level, defaulting to INFO."""
    return LEVELS.get(name.strip().lower(), logging.INFO)


def configure_logging(level: str = "info", log_dir: Optional[str] = None) -> None:
    """
    Configures root logging: stdout always, plus a rotating file under log_dir when given.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                directory / LOG_FILE_NAME,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
            )
        )

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
