"""
Logging configuration for spot-remote.

This module sets up the logging system with multiple outputs:
    - Console: Compact colored messages, tqdm-compatible
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages

Command mode prints its results on stdout; everything the logger writes to
the console goes to stderr so that `spot-remote ... | other-tool` only ever
sees the formatted output.

Usage:
    from spot_remote.core.logger import setup_logging, get_logger

    setup_logging(config.logging.directory)  # Call once at startup
    logger = get_logger(__name__)            # Get logger for each module

    logger.info("Starting playback")
    log_intent_failure(logger, "Seek", error)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm

from spot_remote.core.exceptions import SpotRemoteError


LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name of console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Style.BRIGHT + Fore.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record with colors.

        Args:
            record: The log record to format.

        Returns:
            "LEVEL: message" with the level name colored.
        """
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        colored_levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console without breaking tqdm bars.

    `list --liked --all` shows a progress bar while it pages through the
    library. Writing through tqdm.write() keeps log lines above the bar
    instead of tearing it.

    Attributes:
        stream: The output stream (defaults to sys.stderr).
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path | None, level: str = "WARNING") -> None:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before the engine runs.

    Args:
        log_dir: Directory where log files will be created.
                 None disables file logging (console only).
        level: Console level name. Files always receive DEBUG.

    Behavior:
        1. Configure root logger level to DEBUG
        2. Add a TqdmLoggingHandler with ColoredConsoleFormatter at `level`
        3. If log_dir is given: create it and add the full and error-only
           file handlers, named with this run's timestamp
        4. Quiet the chatty third-party loggers (urllib3, spotipy)
    """
    colorama.just_fix_windows_console()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.WARNING))
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

        full_handler = logging.FileHandler(
            log_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root_logger.addHandler(full_handler)

        error_handler = logging.FileHandler(
            log_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
        )
        error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
        error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        error_handler.addFilter(ErrorOnlyFilter())
        root_logger.addHandler(error_handler)

    for noisy in ("urllib3", "spotipy"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own; records propagate to whatever the root has (nothing,
        under pytest's capture, the capture handler).
    """
    return logging.getLogger(name)


def log_intent_failure(
    logger: logging.Logger,
    intent_name: str,
    error: SpotRemoteError
) -> None:
    """
    Log an intent that ended with a recorded failure.

    Args:
        logger: The logger to use for the message.
        intent_name: Class name of the failed intent.
        error: The recorded error.

    Behavior:
        Logs an ERROR with the message and attaches the intent name and
        error details as extra fields, so file logs keep the context.

    Example:
        log_intent_failure(logger, "ToggleSaveTrack", SpotifyError("rate limited"))
        # ERROR: ToggleSaveTrack failed: rate limited
    """
    logger.error(
        f"{intent_name} failed: {error.message}",
        extra={
            "intent_name": intent_name,
            "intent_error_details": error.details,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close every root handler.

    Called from the CLI's finally block. After this, logging no longer
    produces output until setup_logging() is called again.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
