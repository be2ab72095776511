"""
Logging configuration for TraceLens.

Two destinations:

  - Console: DEBUG if --verbose, WARNING+ otherwise. Config console_format:
    - "simple": (default) bare messages for DEBUG/INFO, [LEVEL] prefix for WARNING+
    - "full":   same structured format as the file handler
    - "clean":  no console output at all (file logging still active)
  - File: always DEBUG level, attached by ``attach_log_file()``.
    Format: "timestamp | level | name | tag | message"

Log files are stored in ~/.tracelens/logs/.
"""

import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import config
from config import get_data_dir


LOGGER_NAME = "tracelens"

_FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(log_tag)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_current_log_file: Optional[Path] = None


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def tagged(tag: str) -> dict:
    """Return ``extra`` dict for logger calls: ``logger.info("...", extra=tagged("x"))``."""
    return {"log_tag": tag}


class _TagFilter(logging.Filter):
    """Guarantees every record carries a log_tag for the formatters."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "log_tag"):
            record.log_tag = ""
        return True


class _ConsoleFormatter(logging.Formatter):
    """Console formatter: shows [LEVEL] prefix only for WARNING and above."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return f"  [{record.levelname}] {record.getMessage()}"
        return f"  {record.getMessage()}"


def attach_log_file(name: str = "server") -> Path:
    """Attach a file handler writing to ``<data_dir>/logs/{name}.log``.

    Replaces any file handler attached earlier. Returns the log path.
    """
    global _current_log_file
    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"{name}.log"
    _current_log_file = log_file

    logger = get_logger()
    logger.handlers = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(_FILE_FORMAT)
    logger.addHandler(file_handler)

    logger.info("=" * 60)
    logger.info(f"Log opened at {datetime.now().isoformat()}")
    logger.info(f"Log file: {log_file}")
    return log_file


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure console logging.

    The file handler is attached separately by ``attach_log_file()``.

    Args:
        verbose: If True, show DEBUG level on console; otherwise WARNING+.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    # Clear existing handlers (in case of re-init)
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(_TagFilter())

    console_format = config.get("console_format", "simple")

    if console_format != "clean":
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
        if console_format == "full":
            console_handler.setFormatter(_FILE_FORMAT)
        else:
            console_handler.setFormatter(_ConsoleFormatter())
        logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the TraceLens logger (creates with defaults if not configured)."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        return setup_logging(verbose=False)
    return logger


def log_error(
    message: str,
    exc: Optional[BaseException] = None,
    context: Optional[dict] = None,
) -> None:
    """Log an error with full details including stack trace.

    Args:
        message: Error description
        exc: Optional exception to include stack trace from
        context: Optional dict of additional context (listener, session id, etc.)
    """
    lines = [message]

    if context:
        lines.append("Context:")
        for key, value in context.items():
            lines.append(f"  {key}: {value}")

    if exc is not None:
        lines.append(f"Exception type: {type(exc).__name__}")
        lines.append(f"Exception message: {exc}")
        lines.append("Stack trace:")
        lines.append(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
        )

    get_logger().error("\n".join(lines), extra=tagged("error"))


def get_current_log_path() -> Path:
    """Return the path of the attached log file (default server.log)."""
    if _current_log_file is not None:
        return _current_log_file
    return get_log_dir() / "server.log"


def get_recent_errors(limit: int = 50, path: Optional[Path] = None) -> list[dict]:
    """Retrieve the most recent WARNING/ERROR records from a log file.

    Args:
        limit: Maximum number of records to return
        path: Log file to read (defaults to the current log file)

    Returns:
        List of dicts with timestamp, level, message and continuation
        ``details`` lines, newest last.
    """
    log_path = path or get_current_log_path()
    if not log_path.exists():
        return []

    errors: list[dict] = []
    current: Optional[dict] = None
    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\n")
            parts = line.split(" | ", 4)
            if len(parts) == 5:
                # A new record starts; close the one being accumulated
                if current is not None:
                    errors.append(current)
                    current = None
                level = parts[1].strip()
                if level in ("WARNING", "ERROR", "CRITICAL"):
                    current = {
                        "timestamp": parts[0].strip(),
                        "level": level,
                        "message": parts[4],
                        "details": [],
                    }
            elif current is not None:
                current["details"].append(line)

    if current is not None:
        errors.append(current)
    return errors[-limit:] if limit > 0 else errors
