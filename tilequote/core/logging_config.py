"""
Logging configuration for the quotation system.
The root logger feeds a coloured console handler plus, optionally, a daily
log file and a size-rotated debug log under the data directory.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from tilequote.core.paths import app_paths

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DEBUG_LOG_MAX_BYTES = 10 * 1024 * 1024
DEBUG_LOG_BACKUPS = 5

QUIET_LOGGERS = ('sqlalchemy', 'PIL', 'reportlab')


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Records are shared with the file handlers, which must stay uncoloured
        plain = record.levelname
        color = self.COLORS.get(plain)
        if color:
            record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def _console_handler(level) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    return handler


def _file_handlers(logs_dir: Path) -> List[logging.Handler]:
    formatter = logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    daily = logging.FileHandler(
        logs_dir / f"tilequote_{datetime.now().strftime('%Y%m%d')}.log", encoding='utf-8'
    )
    debug = logging.handlers.RotatingFileHandler(
        logs_dir / "debug.log",
        maxBytes=DEBUG_LOG_MAX_BYTES,
        backupCount=DEBUG_LOG_BACKUPS,
        encoding='utf-8',
    )
    for handler in (daily, debug):
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
    return [daily, debug]


def setup_logging(log_level=logging.INFO, enable_file_logging=True,
                  logs_dir: Optional[Path] = None):
    """
    Configure the root logger. Safe to call more than once.

    Args:
        log_level: Console level; files always record DEBUG
        enable_file_logging: Also write the daily and debug log files
        logs_dir: Directory for log files (default: <data dir>/logs)

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(log_level))

    if enable_file_logging:
        logs_dir = Path(logs_dir) if logs_dir else app_paths.logs_dir
        logs_dir.mkdir(parents=True, exist_ok=True)
        for handler in _file_handlers(logs_dir):
            root.addHandler(handler)
        root.setLevel(logging.DEBUG)
        root.debug(f"Logging to {logs_dir}")
    else:
        root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name):
    return logging.getLogger(name)


def log_function_call(func):
    """Decorator logging a call's arguments and result at DEBUG, and failures at ERROR."""
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        logger.debug(f"-> {func.__name__} args={args} kwargs={kwargs}")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__name__} failed: {e}", exc_info=True)
            raise
        logger.debug(f"<- {func.__name__} = {result!r}")
        return result
    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    wrapper.__wrapped__ = func
    return wrapper


def log_database_operation(operation, collection, record_count=None, details=None):
    """Log a collection read or write."""
    parts = [f"{operation.upper()} {collection}"]
    if record_count is not None:
        parts.append(f"{record_count} records")
    if details:
        parts.append(details)
    get_logger('tilequote.storage').debug(" | ".join(parts))


def log_business_operation(operation, details=None):
    """Audit-trail entry for catalog, party and quotation changes."""
    message = operation.upper()
    if details:
        message += f": {details}"
    get_logger('tilequote.business').info(message)


def log_error(error, context=None):
    """Log an exception with the command or operation it interrupted."""
    message = f"{type(error).__name__}: {error}"
    if context:
        message += f" (during {context})"
    get_logger('tilequote.errors').error(message, exc_info=error)


def log_performance(operation, duration_ms, details=None):
    message = f"{operation} took {duration_ms:.2f}ms"
    if details:
        message += f" ({details})"
    get_logger('tilequote.performance').info(message)
