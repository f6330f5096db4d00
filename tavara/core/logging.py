"""
Tavara.care Coordination Service - Logging Configuration

Structured logging with JSON formatting, request correlation
and event-typed helpers for assignment and integration events.
"""

import sys
import logging
from datetime import datetime
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from tavara.core.settings import get_settings

# Get settings
settings = get_settings()

# Configure logger
logger = logging.getLogger("tavara")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with service metadata and source location.
    """

    def add_fields(self, log_record: Dict, record: logging.LogRecord, message_dict: Dict):
        """Add custom fields to log records."""
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)

        # Add timestamp
        log_record['timestamp'] = datetime.utcnow().isoformat() + 'Z'

        # Add service metadata
        log_record['service'] = 'tavara-care-service'
        log_record['version'] = settings.APP_VERSION
        log_record['environment'] = settings.ENVIRONMENT

        # Add log level
        log_record['level'] = record.levelname

        # Add source location
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno


def setup_logging():
    """
    Initialize logging configuration for the application.
    JSON output in production, human-readable output when LOG_FORMAT=text.
    """
    # Clear existing handlers
    logger.handlers.clear()

    # Set log level
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Create console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    # Set formatter based on environment
    if settings.LOG_FORMAT == "json" or settings.is_production():
        # JSON formatter for production
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        # Human-readable formatter for development
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    logger.info(
        "Logging initialized",
        extra={
            "log_level": settings.LOG_LEVEL,
            "log_format": settings.LOG_FORMAT,
            "environment": settings.ENVIRONMENT
        }
    )


def log_request(endpoint: str, method: str, request_id: str, **kwargs):
    """Log incoming API request."""
    logger.info(
        f"Incoming request: {method} {endpoint}",
        extra={
            "event_type": "api_request",
            "endpoint": endpoint,
            "method": method,
            "request_id": request_id,
            **kwargs
        }
    )


def log_response(endpoint: str, method: str, request_id: str, status_code: int, duration_ms: float):
    """Log API response."""
    logger.info(
        f"Response: {method} {endpoint} - {status_code}",
        extra={
            "event_type": "api_response",
            "endpoint": endpoint,
            "method": method,
            "request_id": request_id,
            "status_code": status_code,
            "duration_ms": duration_ms
        }
    )


def log_assignment_event(
    action: str,
    family_user_id: str,
    caregiver_id: str,
    assignment_type: str,
    match_score: float = None,
    **kwargs
):
    """Log creation, update or deactivation of a caregiver assignment."""
    logger.info(
        f"Assignment {action}: {assignment_type} {family_user_id} -> {caregiver_id}",
        extra={
            "event_type": "assignment",
            "action": action,
            "family_user_id": family_user_id,
            "caregiver_id": caregiver_id,
            "assignment_type": assignment_type,
            "match_score": match_score,
            **kwargs
        }
    )


def log_integration_call(provider: str, operation: str, success: bool, **kwargs):
    """Log an outbound call to PayPal, Resend or WhatsApp."""
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        f"{provider} {operation} {'succeeded' if success else 'failed'}",
        extra={
            "event_type": "integration_call",
            "provider": provider,
            "operation": operation,
            "success": success,
            **kwargs
        }
    )


def log_error(error: Exception, context: Dict[str, Any] = None):
    """Log error with context."""
    logger.error(
        f"Error occurred: {str(error)}",
        extra={
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=True
    )
