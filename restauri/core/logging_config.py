from __future__ import annotations

import os
import logging
from pythonjsonlogger import jsonlogger
from datetime import datetime
from logging.handlers import RotatingFileHandler
import sys
import re
from typing import Any, Dict

# Import settings for environment variable configuration
from restauri.core.config import settings

# Constants - now using environment variables from settings
LOG_DIR = os.path.abspath(settings.LOG_DIR)
# Ensure the directory exists at import time
os.makedirs(LOG_DIR, exist_ok=True)
MAX_BYTES = settings.LOG_ROTATION_SIZE
BACKUP_COUNT = settings.LOG_BACKUP_COUNT

class LogSanitizer:
    """Utility class for sanitizing credentials in logs."""

    # Patterns for sensitive data
    SENSITIVE_PATTERNS = {
        'jwt': r'eyJ[A-Za-z0-9-_=]+\.eyJ[A-Za-z0-9-_=]+\.?[A-Za-z0-9-_.+/=]*',
        'bearer': r'(?i)bearer\s+[\w\-\.]+',
        'api_key': r'(?i)(api[_-]?key|apikey|token|secret)[_-]?[=:]\s*[\w\-\.]+',
        'password': r'(?i)(password|passwd|pwd)[_-]?[=:]\s*[\w\-\.]+',
        'bcrypt': r'\$2[aby]?\$\d{2}\$[./A-Za-z0-9]{53}',
    }

    # Fields that should always be redacted
    SENSITIVE_FIELDS = {
        'password', 'token', 'secret', 'api_key', 'apikey', 'auth_token',
        'access_token', 'refresh_token', 'authorization',
    }

    @classmethod
    def redaction_for(cls, key: str) -> str:
        if 'password' in key.lower():
            return "[REDACTED_PASSWORD]"
        if 'api_key' in key.lower():
            return "[REDACTED_API_KEY]"
        return "[REDACTED]"

    @classmethod
    def is_sensitive_key(cls, key: str) -> bool:
        return any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS)

    @classmethod
    def sanitize_value(cls, value: Any) -> Any:
        """Sanitize a single value."""
        if isinstance(value, str):
            for pattern_name, pattern in cls.SENSITIVE_PATTERNS.items():
                if re.search(pattern, value):
                    return f"[REDACTED_{pattern_name.upper()}]"
            return value
        elif isinstance(value, dict):
            return cls.sanitize_dict(value)
        elif isinstance(value, list):
            return [cls.sanitize_value(item) for item in value]
        return value

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize a dictionary of data."""
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if cls.is_sensitive_key(str(key)):
                sanitized[key] = cls.redaction_for(str(key))
            else:
                sanitized[key] = cls.sanitize_value(value)
        return sanitized

    @classmethod
    def sanitize_log_record(cls, record: logging.LogRecord) -> logging.LogRecord:
        """Sanitize a log record."""
        if isinstance(record.msg, dict):
            record.msg = cls.sanitize_dict(record.msg)
        elif isinstance(record.msg, str):
            for pattern_name, pattern in cls.SENSITIVE_PATTERNS.items():
                record.msg = re.sub(pattern, f"[REDACTED_{pattern_name.upper()}]", record.msg)

        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(cls.sanitize_value(arg) for arg in record.args)
            else:
                record.args = cls.sanitize_value(record.args)

        return record

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.utcnow().isoformat()

        if not log_record.get('level'):
            log_record['level'] = record.levelname.upper()

        if not log_record.get('source'):
            log_record['source'] = record.name

        # Handle message field properly
        if 'message' in message_dict:
            log_record['message'] = message_dict['message']
        elif hasattr(record, 'message'):
            log_record['message'] = record.message

class SanitizingFilter(logging.Filter):
    """Filter to sanitize log records before they are processed."""

    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
        'processName', 'process', 'message', 'asctime', 'taskName',
    }

    def filter(self, record: logging.LogRecord) -> bool:
        LogSanitizer.sanitize_log_record(record)

        # Extra fields passed through `extra=` end up as plain attributes
        for attr_name in list(vars(record)):
            if attr_name.startswith('_') or attr_name in self.STANDARD_ATTRS:
                continue
            attr_value = getattr(record, attr_name)
            if LogSanitizer.is_sensitive_key(attr_name):
                setattr(record, attr_name, LogSanitizer.redaction_for(attr_name))
            else:
                setattr(record, attr_name, LogSanitizer.sanitize_value(attr_value))

        return True

def init_logging(level: int | None = None) -> logging.Logger:
    """Bootstrap application-wide logging. Safe to call multiple times."""

    if level is None:
        level_name = settings.LOG_LEVEL.upper()
        level = getattr(logging, level_name, logging.INFO)

    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(level)s %(name)s %(message)s %(source)s %(component)s",
        json_ensure_ascii=False,
        reserved_attrs=[],
    )

    root_logger = logging.getLogger()

    # Idempotency – if we already added our sentinel handler, just return
    for h in root_logger.handlers:
        if getattr(h, "_is_central_handler", False):
            root_logger.setLevel(level)
            return logging.getLogger("restauri")

    # Console / docker-stdout
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    console_handler.addFilter(SanitizingFilter())
    console_handler._is_central_handler = True  # sentinel attr

    combined_log_path = os.path.join(LOG_DIR, "combined.log")
    file_handler = RotatingFileHandler(
        combined_log_path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    file_handler.addFilter(SanitizingFilter())
    file_handler._is_central_handler = True

    # Reset existing handlers (avoid duplicate logs when reloaded)
    root_logger.handlers = []
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.INFO)

    app_logger = logging.getLogger("restauri")
    app_logger.info("Centralised logger initialised", extra={"component": "logger"})
    return app_logger

# Initialise at import time so any early imports get the logger
app_logger = init_logging()
