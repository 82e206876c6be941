"""API Request/Response Models.

Pydantic schemas for the screener endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─── Common ──────────────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Optional[str] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ─── Dictionary ──────────────────────────────────────────────────────────


class FieldResponse(BaseModel):
    """Screenable field."""

    key: str
    label: str
    category: str
    value_type: str
    unit: Optional[str] = None
    enum_options: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    description: str = ""


class OperatorResponse(BaseModel):
    """Comparison operator."""

    key: str
    label: str
    symbol: str
    display_symbol: str
    applicable_types: list[str]


class ExampleResponse(BaseModel):
    """Catalogue expression."""

    name: str
    expression: str


# ─── Conditions & Expressions ────────────────────────────────────────────


class ConditionModel(BaseModel):
    """One screening condition. The connector links it to the next one."""

    condition_id: Optional[str] = None
    field_key: str
    operator: str
    value: Any = None
    field_label: str = ""
    logical_connector: Optional[str] = None


class ExpressionRequest(BaseModel):
    """Expression to validate, parse or format."""

    expression: str = ""
    indent: Optional[str] = None


class ExpressionResponse(BaseModel):
    """Expression text."""

    expression: str


class SerializeRequest(BaseModel):
    """Condition list to serialize."""

    conditions: list[ConditionModel] = Field(default_factory=list)
    pretty: Optional[bool] = None
    keywords: bool = False


class IssueModel(BaseModel):
    """Single validation error or warning."""

    message: str
    code: str = ""
    position: Optional[int] = None


class ValidationResponse(BaseModel):
    """Expression validation diagnostic."""

    valid: bool
    errors: list[IssueModel] = Field(default_factory=list)
    warnings: list[IssueModel] = Field(default_factory=list)


class ParseResponse(BaseModel):
    """Best-effort parse result."""

    conditions: list[ConditionModel] = Field(default_factory=list)
    unparsed: list[str] = Field(default_factory=list)
    unparsed_count: int = 0


# ─── Filter Requests ─────────────────────────────────────────────────────


class FilterSpecRequest(BaseModel):
    """Filter facets of one editing session."""

    basic: dict[str, Any] = Field(default_factory=dict)
    technical: dict[str, Any] = Field(default_factory=dict)
    fundamental: dict[str, Any] = Field(default_factory=dict)
    custom_rules: list[ConditionModel] = Field(default_factory=list)
    expression: str = ""
    advanced: bool = False


class FilterRequestResponse(BaseModel):
    """Outbound screening request with facet range checks."""

    request: dict[str, Any]
    valid: bool
    errors: list[str] = Field(default_factory=list)
    has_filters: bool
