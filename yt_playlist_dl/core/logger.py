"""
Logging configuration for yt-playlist-downloader.

Outputs:
    - Console: colored (colorama), written through tqdm.write() so log lines
      appear above the progress bar instead of breaking it
    - Full log file (optional): every DEBUG+ record with timestamps
    - Failure report (optional): one entry per failed item, written from
      records logged through log_download_failure()

Usage:
    from yt_playlist_dl.core.logger import setup_logging, get_logger

    setup_logging("INFO", log_file=Path("run.log"))  # Call once at startup
    logger = get_logger(__name__)

    logger.info("Starting download")
"""

import logging
import sys
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("urllib3", "requests", "yt_dlp", "PIL")


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name for console output.

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
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        colored_levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        message = f"{colored_levelname}: {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes through tqdm.write().

    tqdm redraws its bar with carriage returns; writing log lines through
    tqdm.write() keeps them above any active bar.

    Attributes:
        stream: Output stream (defaults to sys.stderr, where tqdm writes).
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class DownloadFailureHandler(logging.Handler):
    """
    Handler that writes failed items to a human-readable report file.

    Only records carrying the 'download_failed_item_id' extra field are
    written; everything else is ignored. The file is only created when
    the first such record arrives. Each entry looks like:

        Artist Name - Song Title
        https://www.youtube.com/watch?v=xxxxxxxxxxx
        Reason: ERROR: [youtube] xxxxxxxxxxx: Video unavailable

    Attributes:
        report_path: Path of the report file.
        report_file: Open file handle, set on the first failure record.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_path.parent.mkdir(parents=True, exist_ok=True)
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        """
        Write failed item info if present in the record.

        logging.Handler.handle() holds self.lock around emit(), so
        concurrent workers do not interleave entries.
        """
        if not hasattr(record, "download_failed_item_id"):
            return

        try:
            if self.report_file is None:
                self.open()

            name = getattr(record, "download_failed_item_name", "Unknown")
            url = getattr(record, "download_failed_item_url", "")
            reason = getattr(record, "download_failed_reason", "")

            self.report_file.write(f"{name}\n")
            self.report_file.write(f"{url}\n")
            self.report_file.write(f"Reason: {reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    failures_file: Path | None = None,
    stream: TextIO | None = None
) -> None:
    """
    Configure the logging system for the application.

    Call ONCE at startup from the main thread, before any worker starts.

    Args:
        level: Console level name ("DEBUG", "INFO", ...).
        log_file: Optional path of a full DEBUG log file.
        failures_file: Optional path of the failed-items report.
        stream: Console stream. Defaults to sys.stderr.

    Behavior:
        1. Enable ANSI colors on Windows consoles (colorama)
        2. Set the root logger to DEBUG and remove existing handlers
        3. Add the tqdm-compatible console handler at the requested level
        4. Add the full log file handler if log_file is given
        5. Add the failure report handler if failures_file is given
        6. Silence noisy third-party loggers
    """
    colorama.just_fix_windows_console()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler(stream)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        full_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        full_handler.setLevel(logging.DEBUG)
        full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
        root_logger.addHandler(full_handler)

    if failures_file is not None:
        failure_handler = DownloadFailureHandler(failures_file)
        root_logger.addHandler(failure_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Typically __name__ of the calling module, which yields a
              hierarchy like 'yt_playlist_dl.download.pipeline'.
    """
    return logging.getLogger(name)


def log_download_failure(
    logger: logging.Logger,
    item_id: str,
    display_name: str,
    url: str,
    error_message: str
) -> None:
    """
    Log an item whose download failed.

    Attaches the extra fields DownloadFailureHandler looks for, so the
    failure also lands in the report file.

    Example:
        log_download_failure(
            logger,
            item_id="dQw4w9WgXcQ",
            display_name="Rick Astley - Never Gonna Give You Up",
            url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            error_message="Video unavailable"
        )
    """
    logger.error(
        f"Download failed: {display_name} - {error_message}",
        extra={
            "download_failed_item_id": item_id,
            "download_failed_item_name": display_name,
            "download_failed_item_url": url,
            "download_failed_reason": error_message,
        }
    )


def shutdown_logging() -> None:
    """Flush and close all handlers. Call at application exit."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)
