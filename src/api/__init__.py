"""Screener Filter API.

REST endpoints over the screener field dictionary and expression tools.

Example:
    from src.api import create_app
    app = create_app()
"""

from src.api.config import APIConfig
from src.api.models import (
    ErrorResponse,
    HealthResponse,
    FieldResponse,
    OperatorResponse,
    ExampleResponse,
    ConditionModel,
    ExpressionRequest,
    ExpressionResponse,
    SerializeRequest,
    IssueModel,
    ValidationResponse,
    ParseResponse,
    FilterSpecRequest,
    FilterRequestResponse,
)
from src.api.app import create_app

__all__ = [
    # Config
    "APIConfig",
    # Models - Common
    "ErrorResponse",
    "HealthResponse",
    # Models - Dictionary
    "FieldResponse",
    "OperatorResponse",
    "ExampleResponse",
    # Models - Expressions
    "ConditionModel",
    "ExpressionRequest",
    "ExpressionResponse",
    "SerializeRequest",
    "IssueModel",
    "ValidationResponse",
    "ParseResponse",
    # Models - Filter requests
    "FilterSpecRequest",
    "FilterRequestResponse",
    # App
    "create_app",
]
