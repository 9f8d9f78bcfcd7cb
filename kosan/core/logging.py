"""
Logging Configuration and Utilities

Structured logging for the booking client: structlog processors for
context and redaction, and standard handlers with a JSON or text format.
"""

import sys
import logging
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from contextvars import ContextVar

import structlog
from pythonjsonlogger import jsonlogger

from kosan.config.settings import Settings, get_settings

# Context variables for tenant tracking
user_id: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

SENSITIVE_KEYS = (
    'password', 'token', 'secret', 'credentials',
    'authorization', 'cookie', 'session'
)


def _sanitize(event_dict: Dict[str, Any]) -> None:
    """Mask sensitive values in place"""
    for key in list(event_dict.keys()):
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            event_dict[key] = '[REDACTED]'
        elif isinstance(event_dict[key], dict):
            _sanitize(event_dict[key])


class UserContextProcessor:
    """Add tenant context to log records"""

    def __init__(self, environment: str):
        self.environment = environment

    def __call__(self, logger, method_name, event_dict):
        uid = user_id.get()
        if uid:
            event_dict['user_id'] = uid

        event_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
        event_dict['service'] = 'kosan-booking-client'
        event_dict['environment'] = self.environment

        return event_dict


class SecurityLogProcessor:
    """Redact session cookies and credentials"""

    def __call__(self, logger, method_name, event_dict):
        _sanitize(event_dict)
        return event_dict


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName

        uid = user_id.get()
        if uid and 'user_id' not in log_record:
            log_record['user_id'] = uid

        _sanitize(log_record)

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def configure_structured_logging(config: Settings):
        """Configure structured logging with structlog"""

        processors = [
            UserContextProcessor(config.ENVIRONMENT),
            SecurityLogProcessor(),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if config.LOG_FORMAT == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.processors.KeyValueRenderer())

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def configure_standard_logging(config: Settings):
        """Configure the package logger"""

        level = getattr(logging, config.LOG_LEVEL, logging.INFO)
        package_logger = logging.getLogger("kosan")
        package_logger.setLevel(level)
        package_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if config.LOG_FORMAT == "json":
            formatter = CustomJsonFormatter(
                '%(asctime)s %(name)s %(levelname)s %(message)s'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

        # Reduce noise from the HTTP stack
        logging.getLogger("urllib3").setLevel(logging.WARNING)


class LoggerAdapter:
    """Logger adapter that always passes an ``extra`` dict"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, message: str, *args, **kwargs):
        extra = dict(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)


def get_logger(name: str) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name, normally the caller's ``__name__``

    Returns:
        Logger adapter
    """
    return LoggerAdapter(logging.getLogger(name))


def setup_logging(config: Optional[Settings] = None) -> None:
    """Initialize logging configuration"""
    config = config or get_settings()

    if config.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging(config)

    LoggingConfig.configure_standard_logging(config)

    get_logger(__name__).info("Logging system initialized", extra={
        'log_level': config.LOG_LEVEL,
        'log_format': config.LOG_FORMAT,
        'structured_logging': config.ENABLE_STRUCTURED_LOGGING
    })


__all__ = [
    'get_logger',
    'setup_logging',
    'LoggerAdapter',
    'LoggingConfig',
    'CustomJsonFormatter',
    'user_id',
]
