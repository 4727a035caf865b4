"""Logging configuration for Party Manager.

Provides centralized logging setup with file and console handlers.
Log files are stored next to the active configuration file.
"""

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "party_manager.log"


def setup_logging(log_dir: Path | None = None, debug: bool = False) -> logging.Logger:
    """Configure application-wide logging.

    Sets up logging to a file (always) and to stderr. The console handler
    only shows warnings and errors unless debug mode is on, so command
    output on stdout stays machine readable.

    Args:
        log_dir: Directory for the log file, defaults to the config directory
        debug: If True, log to console at DEBUG level

    Returns:
        The root logger for the application
    """
    if log_dir is None:
        from .config.paths import AppPaths
        log_dir = AppPaths.CONFIG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    # Create logger
    logger = logging.getLogger("party_manager")
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    # File handler - always logs DEBUG and above
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    # Console handler - stderr, verbose only in debug mode
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_formatter = logging.Formatter(
        "%(levelname)s - %(name)s - %(message)s"
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific module.

    Args:
        name: Module name (e.g., 'registry', 'installer')

    Returns:
        A logger instance for the module
    """
    return logging.getLogger(f"party_manager.{name}")
