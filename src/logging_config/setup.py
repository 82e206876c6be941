"""Logging Setup.

One call at startup routes every screener logger through either a JSON
formatter (deployments) or a coloured console formatter (development).
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    FORMAT_ENV_VAR,
    LEVEL_ENV_VAR,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from src.logging_config.context import get_context_dict

# Attributes copied from ``extra=`` onto JSON entries
_EXTRA_KEYS = ("duration_ms", "status_code", "method", "path", "unparsed", "error_codes")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record with the bound request/session context."""

    def __init__(self, service_name: str = "screener", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if self.include_caller:
            entry["module"] = record.module
            entry["function"] = record.funcName
            entry["line"] = record.lineno

        entry.update(get_context_dict())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with colour-coded levels."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]

        ctx = get_context_dict()
        ctx_str = f" [{', '.join(f'{k}={v}' for k, v in ctx.items())}]" if ctx else ""

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}: {record.getMessage()}{ctx_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def resolve_config(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Apply SCREENER_LOG_LEVEL and SCREENER_LOG_FORMAT overrides.

    Unrecognised override values are ignored.
    """
    config = config or DEFAULT_LOGGING_CONFIG

    env_level = os.environ.get(LEVEL_ENV_VAR, "").upper()
    if env_level in LogLevel.__members__:
        config = replace(config, level=LogLevel(env_level))

    env_format = os.environ.get(FORMAT_ENV_VAR, "").lower()
    if env_format in [f.value for f in LogFormat]:
        config = replace(config, format=LogFormat(env_format))

    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Configure the root logger for the screener service.

    Call once at application startup.

    Args:
        config: Logging configuration. Uses defaults if not provided.

    Returns:
        The effective configuration after environment overrides.
    """
    config = resolve_config(config)

    if config.format == LogFormat.JSON:
        formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    for noisy in ("asyncio", "httpx", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return config
