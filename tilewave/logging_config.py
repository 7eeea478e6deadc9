"""
Centralized logging configuration for tilewave.

Provides debug logging to a rotating file for learning and generation runs.
Log file: <log_dir>/tilewave.log (with rotation)

Usage:
    from tilewave.logging_config import setup_logging
    setup_logging(log_dir)  # Call once at startup

All tilewave.* loggers will write DEBUG to file, WARNING+ to console.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime


# Global configuration
LOG_FILE_NAME = "tilewave.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB per file
BACKUP_COUNT = 5  # Keep 5 backup files

_logging_initialized = False


def setup_logging(
    log_dir: Path | str,
    log_level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
) -> Path:
    """
    Configure the logging system for tilewave.

    Args:
        log_dir: Directory the log file goes into (created if missing)
        log_level: Level for file logging (default: DEBUG)
        console_level: Level for console output (default: WARNING)

    Returns:
        Path to the log file
    """
    global _logging_initialized

    log_path_dir = Path(log_dir)
    log_path_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_path_dir / LOG_FILE_NAME

    root_logger = logging.getLogger("tilewave")
    root_logger.setLevel(logging.DEBUG)  # Capture all levels

    # Clear any existing handlers (for re-initialization)
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()

    file_formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-35s | %(funcName)-20s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    # Console handler (less verbose)
    console_formatter = logging.Formatter(
        fmt="%(levelname)-8s | %(name)-25s | %(message)s"
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if not _logging_initialized:
        root_logger.info("=" * 80)
        root_logger.info(f"tilewave logging initialized at {datetime.now().isoformat()}")
        root_logger.info(f"Log file: {log_path.absolute()}")
        root_logger.info("=" * 80)
        _logging_initialized = True

    return log_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger configured as child of the tilewave logger
    """
    if name == "tilewave" or name.startswith("tilewave."):
        return logging.getLogger(name)
    return logging.getLogger(f"tilewave.{name}")


# =============================================================================
# Structured Logging Helpers
# =============================================================================


def log_learn(
    logger: logging.Logger,
    tile_size: int,
    tile_count: int,
    rule_count: int,
    details: str | None = None,
) -> None:
    """Log the outcome of the learning phase."""
    details_str = f" | {details}" if details else ""
    logger.info(f"LEARN | n={tile_size} | tiles={tile_count} | rules={rule_count}{details_str}")


def log_step(
    logger: logging.Logger,
    step: int,
    phase: str,
    details: str | None = None,
) -> None:
    """Log one collapse/propagate tick."""
    details_str = f" | {details}" if details else ""
    logger.debug(f"STEP {step:06d} | {phase}{details_str}")


def log_restart(
    logger: logging.Logger,
    restart: int,
    max_restarts: int | None,
    details: str | None = None,
) -> None:
    """Log a full field restart after a contradiction."""
    limit = "unbounded" if max_restarts is None else str(max_restarts)
    details_str = f" | {details}" if details else ""
    logger.warning(f"RESTART {restart}/{limit}{details_str}")
