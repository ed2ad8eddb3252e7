"""
logging_config.py — Logging setup for the farm stock application.

Console output always; rotating log files under LOG_DIR when it is writable.
LOG_FORMAT=json switches every handler to one-line JSON records.
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_configured = False


class JsonFormatter(logging.Formatter):
    """Outputs log records as single-line JSON objects."""

    def format(self, record):
        log_entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def _file_handler(path, level, max_bytes, backup_count):
    try:
        handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    except OSError:
        return None
    handler.setLevel(level)
    return handler


def configure_logging(log_dir=None, level=None, fmt=None, to_files=True):
    """
    Attach handlers to the root logger. Safe to call more than once.

    Args:
        log_dir: Directory for farm.log / errors.log (env LOG_DIR, default "logs")
        level: Console level name (env LOG_LEVEL, default INFO)
        fmt: "text" or "json" (env LOG_FORMAT, default text)
        to_files: False keeps logging on the console only (tests)
    """
    global _configured
    if _configured:
        return
    _configured = True

    log_dir = log_dir or os.environ.get('LOG_DIR', 'logs')
    level = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    fmt = (fmt or os.environ.get('LOG_FORMAT', 'text')).lower()

    formatter = JsonFormatter() if fmt == 'json' else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    handlers = [console_handler]

    if to_files:
        try:
            os.makedirs(log_dir, exist_ok=True)
        except OSError:
            log_dir = '.'  # Fall back to current directory
        # 5MB x 5 for everything, 2MB x 3 for errors only
        for handler in (
            _file_handler(os.path.join(log_dir, 'farm.log'), logging.DEBUG, 5 * 1024 * 1024, 5),
            _file_handler(os.path.join(log_dir, 'errors.log'), logging.ERROR, 2 * 1024 * 1024, 3),
        ):
            if handler:
                handlers.append(handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logging.getLogger('farm').info("Farm logging initialized")
