"""
Centralized logging configuration for CafeQueueWeb.

Every live view (customer tracking, barista dashboard, simulation monitor)
polls the Queue Service from its own thread named ``Poll-<view>``. Log
records are tagged with that view so one view's ticks and failures can be
followed; request-handling threads are tagged ``web``.

Log Format:
    2026-10-19 10:15:30 [INFO    ] [web            ] app - Starting CafeQueueWeb
    2026-10-19 10:15:31 [DEBUG   ] [barista        ] services.barista_service - Dashboard refreshed
    2026-10-19 10:15:32 [WARNING ] [customer-4f2a9c] services.poller - Refresh failed

Usage:
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=level_from_name("INFO"), enable_file_logging=True)
    logger = get_logger(__name__)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional


APP_LOGGER_NAME = "cafe_queue_web"

POLLER_THREAD_PREFIX = "Poll-"

# HTTP plumbing that logs every pooled connection at DEBUG
QUIET_LIBRARIES = ("urllib3", "requests")

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(view)-15s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def poller_thread_name(view: str) -> str:
    """Thread name used by the poller of one view."""
    return f"{POLLER_THREAD_PREFIX}{view}"


class ViewContextFilter(logging.Filter):
    """Adds ``view`` to every record: the polling view, or ``web`` for requests."""

    def filter(self, record: logging.LogRecord) -> bool:
        thread_name = threading.current_thread().name
        if thread_name.startswith(POLLER_THREAD_PREFIX):
            record.view = thread_name[len(POLLER_THREAD_PREFIX):]
        else:
            record.view = "web"
        return True


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """
    Map a level name from configuration ("debug", "WARNING") to its number.

    Unknown or empty names give ``default``.
    """
    if not name:
        return default
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    view_filter: logging.Filter
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(view_filter)
    return handler


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = False,
    quiet_libraries: Iterable[str] = QUIET_LIBRARIES,
) -> logging.Logger:
    """
    Configure the application logger.

    Console output is always on. With file logging, ``cafe_queue_web.log``
    and an ERROR-only ``cafe_queue_web_error.log`` rotate under log_dir.
    Safe to call more than once (each Flask app in the tests calls it).

    Args:
        log_level: Minimum level for the application logger
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write log files
        quiet_libraries: Third-party loggers capped at WARNING

    Returns:
        The configured application logger
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    view_filter = ViewContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(view_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log = log_dir / f"{APP_LOGGER_NAME}.log"
        logger.addHandler(_rotating_handler(app_log, log_level, formatter, view_filter))
        logger.addHandler(_rotating_handler(
            log_dir / f"{APP_LOGGER_NAME}_error.log", logging.ERROR, formatter, view_filter
        ))
        logger.info(f"File logging enabled: {app_log}")

    for name in quiet_libraries:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Child logger under the application namespace.

    ``get_logger("services.poller")`` -> ``cafe_queue_web.services.poller``
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_session_logger(session_key: str) -> logging.Logger:
    """Logger for one customer session, keyed by the first 8 characters."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.customer.{session_key[:8]}")


def set_thread_name(name: str) -> None:
    """Rename the current thread (shows up as the record's view)."""
    threading.current_thread().name = name
