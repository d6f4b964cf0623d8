"""
Structured logging for PracticeHub.

JSON lines in production, coloured single-line output in development.
Every module logs through a child of the `practicehub` logger, e.g.
`practicehub.workflows.engine`.
"""

import os
import sys
import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

ROOT_LOGGER = 'practicehub'

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ('apscheduler', 'urllib3', 'werkzeug')


_log_context: ContextVar[dict] = ContextVar('practicehub_log_context', default={})


class ContextFilter(logging.Filter):
    """Copy the active LogContext fields onto the record as `record.context`.

    Fields passed per call (extra={'context': ...}) win over the block's.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        fields = _log_context.get()
        if fields:
            context = dict(fields)
            context.update(getattr(record, 'context', None) or {})
            record.context = context
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        context = getattr(record, 'context', None)
        if context:
            log_entry.update(context)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for local runs."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        reset = self.RESET if color else ''

        timestamp = datetime.now().strftime('%H:%M:%S')
        name = record.name
        if name.startswith(ROOT_LOGGER + '.'):
            name = name[len(ROOT_LOGGER) + 1:]

        line = f'{color}[{timestamp}] {record.levelname:8}{reset} {name:28} {record.getMessage()}'

        context = getattr(record, 'context', None)
        if context:
            extras = ' | '.join(f'{k}={v}' for k, v in context.items())
            line = f'{line} | {extras}'

        if record.exc_info:
            line = f'{line}\n{self.formatException(record.exc_info)}'

        return line


def setup_logging(
    level: str = 'INFO',
    json_format: Optional[bool] = None,
    logger_name: str = ROOT_LOGGER
) -> logging.Logger:
    """Configure the application logger and return it.

    json_format defaults to True when PRODUCTION=true or under gunicorn.
    """
    if json_format is None:
        json_format = os.environ.get('PRODUCTION', '').lower() == 'true' or \
                      'gunicorn' in os.environ.get('SERVER_SOFTWARE', '')

    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logger.level)
    handler.setFormatter(JSONFormatter() if json_format else DevelopmentFormatter())
    handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger; pass a dotted name such as 'practicehub.finance'."""
    return logging.getLogger(name)


class LogContext:
    """Attach fields (tenant_id, workflow_id, ...) to every record logged inside the block.

    The fields live in a ContextVar, so concurrent blocks in other threads
    (request workers, the scheduler) never see each other's fields.
    Nested blocks add to the enclosing fields and restore them on exit.
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        self._token = None
        return False


def current_context() -> dict:
    """Fields set by the enclosing LogContext blocks."""
    return dict(_log_context.get())


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log a single message with extra context fields."""
    logger.log(level, message, extra={'context': context})
