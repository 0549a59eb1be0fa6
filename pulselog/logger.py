"""
Structured JSON logging for pulse processes.
"""

import json
import logging
import os
import socket
from datetime import datetime
from typing import Optional

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """
    Formatter that renders each record as one JSON line.

    Output format:
    {
        "timestamp": "2026-02-08T20:30:00.123456Z",
        "level": "INFO",
        "logger": "pulse_hub.retention",
        "host": "collector-1",
        "message": "Evicted expired samples",
        "context": {...}  # from extra={'context': {...}}
    }
    """

    def __init__(self, hostname: Optional[str] = None):
        super().__init__()
        self.hostname = hostname or socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'level': record.levelname,
            'logger': record.name,
            'host': self.hostname,
            'message': record.getMessage(),
        }

        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def _make_formatter(use_json: bool) -> logging.Formatter:
    return JSONFormatter() if use_json else logging.Formatter(TEXT_FORMAT)


def get_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_json: bool = True
) -> logging.Logger:
    """
    Get a logger with a console handler (and optionally a file handler).

    Calling this twice for the same name does not stack handlers.

    Example:
        logger = get_logger(__name__)
        logger.info("Sample stored", extra={'context': {'server_name': 'web-1'}})
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    has_file_handler = any(
        isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file)
        for h in logger.handlers
    ) if log_file else False

    if not has_console_handler:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(_make_formatter(use_json))
        logger.addHandler(console_handler)

    if log_file and not has_file_handler:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(_make_formatter(use_json))
        logger.addHandler(file_handler)

    return logger


def setup_logging(
    names=('pulse_hub', 'pulse_agent'),
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """
    Configure the package loggers once at process start.

    Level and format default to PULSE_LOG_LEVEL (INFO) and PULSE_LOG_FORMAT
    ('json' or 'text'). Module loggers created with logging.getLogger(__name__)
    inherit from these.
    """
    level_name = (level or os.getenv('PULSE_LOG_LEVEL', 'INFO')).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    use_json = (log_format or os.getenv('PULSE_LOG_FORMAT', 'json')).lower() != 'text'

    for name in names:
        get_logger(name, level=numeric_level, log_file=log_file, use_json=use_json)
