"""
Centralized logging configuration for idea-download.

Informational and warning messages go to stdout, errors go to stderr, each
line tagged with its severity (``[INFO]``, ``[WARN]``, ``[ERROR]``). Quiet
mode silences everything below ERROR on the console.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "idea_download"

# Global logger instance
_logger: Optional[logging.Logger] = None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        verbose: Enable verbose (DEBUG) output
        quiet: Only errors reach the console
        propagate: Allow log propagation (useful for testing)

    Returns:
        Configured logger instance
    """
    global _logger

    if verbose or os.environ.get("IDEA_DOWNLOAD_DEBUG", "0") == "1":
        effective_level = "DEBUG"
    else:
        effective_level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else getattr(logging, effective_level))

    # Clear existing handlers
    logger.handlers.clear()

    console_level = logging.ERROR if quiet else getattr(logging, effective_level)

    # stdout carries everything below ERROR
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(console_level)
    stdout_handler.addFilter(_BelowLevelFilter(logging.ERROR))
    stdout_handler.setFormatter(
        ColoredFormatter("%(levelname_tag)s %(message)s", use_colors=sys.stdout.isatty())
    )
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(max(console_level, logging.ERROR))
    stderr_handler.setFormatter(
        ColoredFormatter("%(levelname_tag)s %(message)s", use_colors=sys.stderr.isatty())
    )
    logger.addHandler(stderr_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file

        file_formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    logger.propagate = propagate

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Get the configured logger instance.

    If logging hasn't been set up, initializes with defaults.

    Returns:
        Logger instance
    """
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class _BelowLevelFilter(logging.Filter):
    """Pass only records strictly below the given level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


class ColoredFormatter(logging.Formatter):
    """
    Formatter producing ``[LEVEL]`` tags, colored when writing to a terminal.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[2m',       # Dim
        'INFO': '',
        'WARNING': '\033[1m',     # Bold
        'ERROR': '\033[1;31m',    # Bold red
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    TAGS = {
        'DEBUG': '[DEBUG]',
        'INFO': '[INFO]',
        'WARNING': '[WARN]',
        'ERROR': '[ERROR]',
        'CRITICAL': '[ERROR]',
    }

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a severity tag."""
        tag = self.TAGS.get(record.levelname, f"[{record.levelname}]")
        color = self.COLORS.get(record.levelname, '')
        if self.use_colors and color:
            record.levelname_tag = f"{color}{tag}{self.RESET}"
        else:
            record.levelname_tag = tag

        return super().format(record)
