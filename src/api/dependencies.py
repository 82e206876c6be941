"""FastAPI Dependencies.

Injectable screener configuration and field dictionary.
"""

from src.screener import FIELD_DICTIONARY, FieldDictionary, ScreenerConfig
from src.settings import get_settings


def get_screener_config() -> ScreenerConfig:
    """Screener configuration built from the cached settings."""
    return get_settings().screener_config()


def get_dictionary() -> FieldDictionary:
    return FIELD_DICTIONARY
