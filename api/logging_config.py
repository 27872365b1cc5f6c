"""
Logging configuration for Storefront Sync.
Provides structured logging with proper formatting.
"""

import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Log directory
LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent / "logs"))

# Log level from environment
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Module loggers live under these packages and inherit the handlers below.
PACKAGE_LOGGERS = ("api", "core", "browser", "workflows", "monitoring")


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Copy so file handlers sharing the record don't get escape codes.
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _build_handlers(name: str, log_dir: Path):
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    file_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_dir / f"{name}.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_format)

    # Error file handler (errors and above)
    error_handler = RotatingFileHandler(
        log_dir / f"{name}_errors.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_format)

    return [console_handler, file_handler, error_handler]


def setup_logging(name: str = "storefront_sync", log_dir: Path = None) -> logging.Logger:
    """
    Setup and return a configured logger.

    The same handlers are attached to the package loggers so that
    ``logging.getLogger(__name__)`` in any module writes to the same files.

    Args:
        name: Logger name, also the log file stem (default: storefront_sync)
        log_dir: Override for LOG_DIR

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    log_dir = Path(log_dir or LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, LOG_LEVEL, logging.INFO)

    handlers = _build_handlers(name, log_dir)
    for target in (logger, *(logging.getLogger(pkg) for pkg in PACKAGE_LOGGERS)):
        target.setLevel(level)
        target.propagate = False
        for handler in handlers:
            target.addHandler(handler)

    return logger


# Create default logger
logger = setup_logging()


def log_job(job_tag: str, pattern: str, status: str, duration_ms: float = None, error: str = None):
    """Log the terminal outcome of a dispatched job."""
    timing = f" ({duration_ms:.2f}ms)" if duration_ms is not None else ""
    if error:
        logger.error(f"{job_tag} {pattern} -> {status}{timing}: {error}")
    else:
        logger.info(f"{job_tag} {pattern} -> {status}{timing}")
