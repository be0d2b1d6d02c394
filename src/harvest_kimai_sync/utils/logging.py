"""Logging configuration for harvest-kimai-sync."""

import logging
import os
from pathlib import Path

LOG_FILE_NAME = "harvest-kimai-sync.log"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(name)s - %(levelname)s - %(message)s"

# Libraries that log every request or statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def level_from_env(default: int = logging.INFO) -> int:
    """Read the LOG_LEVEL environment variable as a logging level.

    Unknown names fall back to the default.
    """
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "").upper())
    return level if isinstance(level, int) else default


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str | None = None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logging(log_level: int | None = None, config_dir: Path | None = None) -> Path:
    """Route log records to a file in the config dir and to the console.

    Calling it again replaces the previously installed handlers.

    Args:
        log_level: Logging level. Defaults to LOG_LEVEL from the environment, then INFO.
        config_dir: Directory for the log file. Defaults to ~/.harvest-kimai-sync/

    Returns:
        Path of the log file.
    """
    level = log_level if log_level is not None else level_from_env()
    log_dir = config_dir or Path.home() / ".harvest-kimai-sync"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
        existing.close()

    root_logger.addHandler(_handler(logging.FileHandler(log_file), level, FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(_handler(logging.StreamHandler(), level, CONSOLE_FORMAT))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass __name__)."""
    return logging.getLogger(name)
