"""API Configuration.

Settings for the screener REST API.
"""

from dataclasses import dataclass, field


@dataclass
class APIConfig:
    """Core API settings."""

    title: str = "Screener Filter API"
    version: str = "1.0.0"
    description: str = "Field dictionary, expression validation and filter request building"
    prefix: str = "/api/v1"
    docs_url: str = "/docs"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:8000"])
    cors_methods: list[str] = field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_headers: list[str] = field(default_factory=lambda: ["*"])
