"""Structured Logging.

JSON or console log output with request and editing-session ids bound
from context.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel, DEFAULT_LOGGING_CONFIG
from src.logging_config.context import (
    LogContext,
    generate_request_id,
    get_request_id,
    get_session_id,
    get_context_dict,
)
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    resolve_config,
)
from src.logging_config.middleware import RequestTracingMiddleware

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "DEFAULT_LOGGING_CONFIG",
    "LogContext",
    "generate_request_id",
    "get_request_id",
    "get_session_id",
    "get_context_dict",
    "ConsoleFormatter",
    "StructuredFormatter",
    "configure_logging",
    "resolve_config",
    "RequestTracingMiddleware",
]
