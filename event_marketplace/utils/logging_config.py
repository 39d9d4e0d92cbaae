"""
Logging configuration for the event marketplace.

Application loggers live under the ``event_marketplace`` namespace; business
and security events go to the ``event_marketplace.business`` and
``event_marketplace.security`` loggers so they can be routed separately.
"""

import json
import logging
import logging.config
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import get_settings

APP_LOGGER = "event_marketplace"

# LogRecord attributes that are not user supplied extra fields
_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "taskName", "request_id", "message",
}

_TOKEN_PATTERN = re.compile(r"\b[A-Za-z0-9_\-]{32,}\b")
_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_MASK = "***MASKED***"


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_json_logging: Optional[bool] = None,
) -> None:
    """
    Configure logging for the API process and the Celery workers.

    Args:
        log_level: Level for the application loggers, defaults to the settings
        log_file: Optional path of a rotating log file
        enable_json_logging: Emit JSON lines instead of text, defaults to the settings
    """
    settings = get_settings()
    level = (log_level or settings.log_level).upper()
    use_json = settings.enable_json_logging if enable_json_logging is None else enable_json_logging
    formatter = "json" if use_json else "detailed"

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": ["request_id", "sensitive_data"],
        }
    }
    app_handlers = ["console"]

    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": formatter,
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "filters": ["request_id", "sensitive_data"],
        }
        app_handlers.append("file")

    if settings.environment == "production":
        error_file = log_file.replace(".log", "_errors.log") if log_file else "logs/errors.log"
        Path(error_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["error_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": formatter,
            "filename": error_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 10,
            "filters": ["request_id", "sensitive_data"],
        }
        app_handlers.append("error_file")

    def library(name_level: str) -> Dict[str, Any]:
        return {"level": name_level, "handlers": list(app_handlers), "propagate": False}

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d [%(request_id)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": f"{APP_LOGGER}.utils.logging_config.JSONFormatter"},
        },
        "filters": {
            "request_id": {"()": f"{APP_LOGGER}.utils.logging_config.RequestIDFilter"},
            "sensitive_data": {
                "()": f"{APP_LOGGER}.utils.logging_config.SensitiveDataFilter",
                "enabled": not settings.log_sensitive_data,
            },
        },
        "handlers": handlers,
        "loggers": {
            APP_LOGGER: {"level": level, "handlers": list(app_handlers), "propagate": False},
            "uvicorn": library("INFO"),
            "uvicorn.access": library("INFO"),
            "fastapi": library("INFO"),
            "sqlalchemy.engine": library("WARNING"),
            "sqlalchemy.pool": library("WARNING"),
            "redis": library("WARNING"),
            "celery": library("INFO"),
            "httpx": library("WARNING"),
        },
        "root": {"level": level, "handlers": ["console"]},
    }
    logging.config.dictConfig(config)


class RequestIDFilter(logging.Filter):
    """Attach the current request id so the detailed format can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            from ..middleware.logging import request_id_var

            record.request_id = request_id_var.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask credentials, reset tokens, CAC numbers and e-mail addresses."""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "authorization", "cookie",
        "api_key", "access_token", "reset_token", "cac_number", "phone",
        "gateway_reference",
    }

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True

        if isinstance(record.msg, str):
            record.msg = self._mask_text(record.msg)

        for key, value in list(record.__dict__.items()):
            if key in _RESERVED_ATTRS:
                continue
            if self._is_sensitive(key):
                setattr(record, key, _MASK)
            elif isinstance(value, (str, dict, list)):
                setattr(record, key, self._mask_value(value))
        return True

    def _is_sensitive(self, key: str) -> bool:
        lowered = key.lower()
        return any(sensitive in lowered for sensitive in self.SENSITIVE_KEYS)

    def _mask_text(self, text: str) -> str:
        text = _TOKEN_PATTERN.sub(_MASK, text)
        return _EMAIL_PATTERN.sub("***EMAIL***", text)

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: _MASK if self._is_sensitive(str(key)) else self._mask_value(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [self._mask_value(item) for item in value]
        if isinstance(value, str):
            return self._mask_text(value)
        return value


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS}
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, default=str, ensure_ascii=False)


def log_business_event(event_type: str, details: Dict[str, Any], user_id: Optional[str] = None) -> None:
    """Log a marketplace event such as a booking, payment or review."""
    logging.getLogger(f"{APP_LOGGER}.business").info(
        f"Business event: {event_type}",
        extra={"event_type": event_type, "business_event": True, "user_id": user_id, **details},
    )


def log_security_event(event_type: str, details: Dict[str, Any], severity: str = "WARNING") -> None:
    """Log an authentication or authorization event."""
    logger = logging.getLogger(f"{APP_LOGGER}.security")
    log_method = getattr(logger, severity.lower(), logger.warning)
    log_method(
        f"Security event: {event_type}",
        extra={"event_type": event_type, "security_event": True, "severity": severity, **details},
    )
