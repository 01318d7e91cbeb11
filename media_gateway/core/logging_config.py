"""
Logging Configuration for media-gateway

Features:
- JSON structured logs via structlog for production
- Pretty console output for development
- Request trace IDs carried in a context variable
- Third-party library noise filtering
- Dual streams: DEBUG-WARNING → stdout, ERROR/CRITICAL → stderr
"""

import logging
import logging.config
from contextvars import ContextVar
from typing import Any, Dict, Optional
import structlog
from structlog.types import EventDict
from pythonjsonlogger.json import JsonFormatter


# Trace ID for the current request (set by middleware).
# ContextVar keeps concurrent requests isolated from each other.
_trace_id_context: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

# Static service fields injected into every record, set by setup_logging()
_app_context: Dict[str, str] = {}


def set_trace_id(trace_id: str) -> None:
    """Set the trace ID for the current request context."""
    _trace_id_context.set(trace_id)


def get_trace_id() -> Optional[str]:
    """Get the current trace ID, or None outside a request."""
    return _trace_id_context.get()


def clear_trace_id() -> None:
    """Clear the trace ID after request completes."""
    _trace_id_context.set(None)


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service name, version, environment and trace ID to all log records."""
    event_dict.update(_app_context)

    trace_id = get_trace_id()
    if trace_id:
        event_dict["trace_id"] = trace_id
        event_dict["correlation_id"] = trace_id

    return event_dict


def add_log_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to event dict for consistency."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_structlog(debug: bool = False, json_logs: bool = True) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: Enable debug mode with pretty console output
        json_logs: Use JSON formatting (True) or console (False)
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        add_log_level,
    ]

    if debug and not json_logs:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter for records emitted through plain stdlib loggers."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = self.formatTime(record, self.datefmt)

        log_record['level'] = (log_record.get('level') or record.levelname).upper()
        log_record['logger'] = record.name

        trace_id = get_trace_id()
        if trace_id:
            log_record.setdefault('trace_id', trace_id)
            log_record.setdefault('correlation_id', trace_id)


class BelowErrorFilter(logging.Filter):
    """Only allow records below ERROR to pass.

    Keeps stdout free of ERROR/CRITICAL records, which go to stderr.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def get_logging_config(log_level: str = "INFO", debug: bool = False, json_logs: bool = True) -> Dict[str, Any]:
    """Generate logging dictConfig.

    Args:
        log_level: Level for application loggers
        debug: Enable debug mode
        json_logs: Use JSON formatting

    Returns:
        Dictionary configuration for logging.config.dictConfig
    """
    log_level = log_level.upper()

    if debug and not json_logs:
        formatter_class = "logging.Formatter"
        formatter_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    else:
        formatter_class = "media_gateway.core.logging_config.CustomJsonFormatter"
        formatter_format = "%(timestamp)s %(level)s %(name)s %(message)s"

    app_handlers = ["stdout", "stderr"]

    def quiet(level: str = "WARNING") -> Dict[str, Any]:
        return {"handlers": app_handlers, "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": formatter_class,
                "format": formatter_format,
            },
            "console": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "json" if json_logs else "console",
                "stream": "ext://sys.stdout",
                "filters": ["below_error"],
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": "json" if json_logs else "console",
                "stream": "ext://sys.stderr",
            },
        },
        "filters": {
            "below_error": {
                "()": "media_gateway.core.logging_config.BelowErrorFilter",
            },
        },
        "loggers": {
            "": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "media_gateway": {"handlers": app_handlers, "level": log_level, "propagate": False},
            "uvicorn": quiet("INFO"),
            "fastapi": quiet("INFO"),
            # Disabled - RequestLoggingMiddleware logs every request
            "uvicorn.access": {"handlers": [], "level": "CRITICAL", "propagate": False},
            "uvicorn.error": {"handlers": ["stderr"], "level": "INFO", "propagate": False},
            "asyncio": {"handlers": ["stderr"], "level": "WARNING", "propagate": False},
            "httpx": quiet(),
            "httpcore": quiet(),
            "PIL": quiet(),
        },
    }


def setup_logging(
    service: str,
    version: str,
    environment: str,
    log_level: str = "INFO",
    debug: bool = False,
    json_logs: bool = True,
) -> None:
    """Initialize the complete logging system.

    Call once at application startup, before any logging calls.

    Example:
        >>> setup_logging(
        ...     settings.SERVICE_NAME, settings.VERSION, settings.ENVIRONMENT,
        ...     log_level=settings.LOG_LEVEL,
        ...     debug=settings.is_debug_mode,
        ...     json_logs=settings.use_json_logs,
        ... )
    """
    _app_context.clear()
    _app_context.update(service=service, version=version, environment=environment)

    logging.config.dictConfig(get_logging_config(log_level=log_level, debug=debug, json_logs=json_logs))
    configure_structlog(debug=debug, json_logs=json_logs)

    logger = get_logger(__name__)
    logger.info(
        "logging_system_initialized",
        debug_mode=debug,
        json_logs=json_logs,
        log_level=logging.getLevelName(logging.root.level),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("asset_stored", asset_id="uploads/1700000000000-cat.png")
    """
    return structlog.get_logger(name)
