"""Logging Configuration.

Log level, output format and service identity for screener logs.
"""

from dataclasses import dataclass, field
from enum import Enum


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


LEVEL_ENV_VAR = "SCREENER_LOG_LEVEL"
FORMAT_ENV_VAR = "SCREENER_LOG_FORMAT"


@dataclass
class LoggingConfig:
    """Screener logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    exclude_paths: list[str] = field(default_factory=lambda: ["/health"])
    service_name: str = "screener"


DEFAULT_LOGGING_CONFIG = LoggingConfig()
