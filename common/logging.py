"""
Structured logging configuration for the ISMS document engine.
Provides correlation IDs, structured JSON logging, and proper error tracking.
"""

import json
import logging
import sys
import uuid
from typing import Optional, Dict, Any
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variables for generation tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
company_id_var: ContextVar[Optional[str]] = ContextVar('company_id', default=None)
document_type_var: ContextVar[Optional[str]] = ContextVar('document_type', default=None)

_RESERVED_RECORD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage',
    'taskName',
}


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id

        company_id = company_id_var.get()
        if company_id:
            log_entry["company_id"] = company_id

        document_type = document_type_var.get()
        if document_type:
            log_entry["document_type"] = document_type

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        # Extra fields passed via `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and key not in log_entry:
                log_entry[key] = value

        return self._serialize_log_entry(log_entry)

    def _serialize_log_entry(self, log_entry: Dict[str, Any]) -> str:
        """Serialize log entry to JSON string."""
        try:
            return json.dumps(log_entry, default=str, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            return f"LOG_SERIALIZATION_ERROR: {e} | Original message: {log_entry.get('message', 'N/A')}"


class GenerationContextLogger:
    """Context manager for setting generation-specific logging context."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        company_id: Optional[str] = None,
        document_type: Optional[str] = None
    ):
        self.request_id = request_id or str(uuid.uuid4())
        self.company_id = company_id
        self.document_type = document_type
        self.tokens = []

    def __enter__(self):
        self.tokens.append(request_id_var.set(self.request_id))
        if self.company_id:
            self.tokens.append(company_id_var.set(self.company_id))
        if self.document_type:
            self.tokens.append(document_type_var.set(self.document_type))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for token in reversed(self.tokens):
            token.var.reset(token)
        self.tokens = []


def setup_logging(
    level: str = "INFO",
    format_type: str = "structured",
    log_file: Optional[str] = None
) -> None:
    """
    Setup application logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Format type ('structured' for JSON, 'simple' for readable)
        log_file: Optional file path for logging output
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(numeric_level)

    if format_type == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def log_performance(
    operation: str,
    duration_ms: float,
    success: bool = True,
    **kwargs
) -> None:
    """Log performance metrics for operations."""
    logger = get_logger("performance")
    logger.info(
        f"Performance metric: {operation}",
        extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "success": success,
            **kwargs
        }
    )


def log_business_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    action: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Log business-related events."""
    logger = get_logger("business")
    logger.info(
        f"Business event: {event_type}",
        extra={
            "event_type": event_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "details": details or {}
        }
    )


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Log error with context information."""
    logger = get_logger("error")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **(context or {})
    }

    if hasattr(error, 'context'):
        error_context["exception_context"] = error.context
    if hasattr(error, 'error_code'):
        error_context["error_code"] = error.error_code

    logger.error(
        f"Error occurred: {type(error).__name__}",
        extra=error_context,
        exc_info=error
    )
