"""
Centralized logging configuration for the coloring page printer service.

Every log line carries the name of the thread that wrote it, which is what
makes the service debuggable: the queue watcher, Flask request threads and
per-job submission threads all log concurrently.

Log Format:
    2026-10-18 10:15:30 [INFO    ] [MainThread] coloring_printer.app - Starting
    2026-10-18 10:15:31 [WARNING ] [QueueWatcher] coloring_printer.services.queue_watcher - Resumed HP
    2026-10-18 10:15:32 [INFO    ] [Job-a1b2c3d4] coloring_printer.job.a1b2c3d4 - Queued

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For job threads
    job_logger = get_job_logger(job_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "coloring_printer"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Logging filter that adds thread context to all log records.

    Adds ``thread_name`` and ``thread_id`` attributes used by the format
    string. Never drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)-12s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _rotating_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    thread_filter: ThreadContextFilter
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
    quiet_request_log: bool = True,
) -> logging.Logger:
    """
    Configure service logging with thread context.

    Handlers:
    1. Console (always)
    2. ``<app_name>.log``: everything at log_level (file logging only)
    3. ``<app_name>_error.log``: failed submissions, refresh failures that
       keep escalating, crashed watcher ticks (file logging only)

    Args:
        app_name: Name of the application logger (default: "coloring_printer")
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write to log files (default: True)
        quiet_request_log: Raise werkzeug's access log to WARNING. The
            frontend polls /api/printers and /health, which would otherwise
            bury watcher and job lines.

    Returns:
        Configured application logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs to root logger

    # create_app() may run more than once per process (tests)
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, thread_filter))

        # QueueWatcher and Job-* threads log hardware trouble at ERROR
        error_log_file = log_dir / f"{app_name}_error.log"
        logger.addHandler(_rotating_handler(error_log_file, logging.ERROR, formatter, thread_filter))

        logger.info(f"File logging enabled: {app_log_file}")

    if quiet_request_log:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Example:
        # In services/queue_watcher.py
        logger = get_logger(__name__)
        # Logger name: "coloring_printer.services.queue_watcher"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_job_logger(job_id: str) -> logging.Logger:
    """
    Get a logger for a specific print job.

    Only the first 8 characters of the job id are used in the name.
    """
    short_id = job_id[:8] if len(job_id) >= 8 else job_id
    return logging.getLogger(f"{APP_LOGGER_NAME}.job.{short_id}")


def set_thread_name(name: str) -> None:
    """
    Set the name of the current thread.

    This name appears in log messages in the [thread_name] field.
    """
    threading.current_thread().name = name
