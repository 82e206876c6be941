"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Drop cached settings and SCREENER_ env overrides around each test."""
    from src.settings import get_settings

    for name in ("SCREENER_LOG_LEVEL", "SCREENER_LOG_FORMAT", "SCREENER_STRICT_SYNTAX",
                 "SCREENER_PRETTY_PRINT", "SCREENER_API_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()
