"""Centralized settings for the screener service.

Uses pydantic-settings to load from environment variables (prefixed
SCREENER_) with defaults matching the dataclass configs.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings

from src.logging_config import LogFormat, LoggingConfig, LogLevel
from src.screener.config import LogicalConnector, ScreenerConfig


class Settings(BaseSettings):
    """Screener settings loaded from environment variables."""

    # --- Expression handling ---
    pretty_print: bool = True
    default_connector: LogicalConnector = LogicalConnector.AND
    indent: str = "  "
    strict_syntax: bool = False  # Append grammar errors to validation results

    # --- Logging ---
    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.JSON

    # --- API ---
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = ["http://localhost:8000"]

    model_config = {
        "env_prefix": "SCREENER_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def screener_config(self) -> ScreenerConfig:
        return ScreenerConfig(
            pretty_print=self.pretty_print,
            default_connector=self.default_connector,
            indent=self.indent,
            strict_syntax=self.strict_syntax,
        )

    def logging_config(self) -> LoggingConfig:
        return LoggingConfig(level=self.log_level, format=self.log_format)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
