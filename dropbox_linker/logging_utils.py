"""
Logging setup for Dropbox Linker.

Configures a rotating log file plus console output on the root logger.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "dropbox_linker.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request chatter from the HTTP stack and the loopback listener
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.error")

# Track handlers we add to avoid interfering with third-party logging
_added_handlers: set[logging.Handler] = set()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Safe to call more than once: handlers added by a previous call are
    replaced, handlers installed by anything else are left alone.

    Args:
        verbose: If True, set log level to DEBUG, otherwise INFO
        log_file: Path to the log file (default: 'logs/dropbox_linker.log')
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()

    for handler in list(_added_handlers):
        if handler in root_logger.handlers:
            root_logger.removeHandler(handler)
        handler.close()
    _added_handlers.clear()

    if log_file is None:
        log_file = os.path.join(DEFAULT_LOG_DIR, DEFAULT_LOG_FILE)

    file_handler = None
    try:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
    except OSError as e:
        print(f"Warning: Could not create log file '{log_file}': {e}")
        print("Falling back to console-only logging.")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    if file_handler:
        root_logger.addHandler(file_handler)
        _added_handlers.add(file_handler)
    root_logger.addHandler(console_handler)
    _added_handlers.add(console_handler)
    root_logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging initialized - Level: {logging.getLevelName(level)}, File: {log_file}")
