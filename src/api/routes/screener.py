"""Screener Filter API Routes.

Endpoints for the field dictionary, expression validation, serialization,
parsing and outbound filter request building.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_dictionary, get_screener_config
from src.api.models import (
    ConditionModel,
    ExampleResponse,
    ExpressionRequest,
    ExpressionResponse,
    FieldResponse,
    FilterRequestResponse,
    FilterSpecRequest,
    OperatorResponse,
    ParseResponse,
    SerializeRequest,
    ValidationResponse,
)
from src.screener import (
    EXPRESSION_EXAMPLES,
    Condition,
    ExpressionValidator,
    FieldCategory,
    FieldDictionary,
    FilterAggregator,
    FilterSpec,
    FilterSpecError,
    ScreenerConfig,
    conditions_to_expression,
    conditions_to_keyword_expression,
    format_expression,
    parse_expression,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/screener", tags=["Screener"])


def _to_conditions(models: list[ConditionModel]) -> list[Condition]:
    try:
        return [Condition.from_dict(m.model_dump(exclude_none=True)) for m in models]
    except (TypeError, ValueError, AttributeError) as e:
        raise FilterSpecError(f"Invalid condition: {e}") from e


# ─── Dictionary ──────────────────────────────────────────────────────────


@router.get("/fields", response_model=list[FieldResponse])
async def list_fields(
    category: Optional[FieldCategory] = None,
    dictionary: FieldDictionary = Depends(get_dictionary),
) -> list[FieldResponse]:
    """List screenable fields, optionally for one category."""
    fields = (
        dictionary.get_fields_by_category(category) if category
        else dictionary.get_all_fields()
    )
    return [FieldResponse(**f.to_dict()) for f in fields]


@router.get("/operators", response_model=list[OperatorResponse])
async def list_operators(
    dictionary: FieldDictionary = Depends(get_dictionary),
) -> list[OperatorResponse]:
    return [OperatorResponse(**op.to_dict()) for op in dictionary.get_all_operators()]


@router.get("/examples", response_model=list[ExampleResponse])
async def list_examples() -> list[ExampleResponse]:
    return [
        ExampleResponse(name=name, expression=expression)
        for name, expression in EXPRESSION_EXAMPLES.items()
    ]


# ─── Expressions ─────────────────────────────────────────────────────────


@router.post("/expression/validate", response_model=ValidationResponse)
async def validate(
    body: ExpressionRequest,
    config: ScreenerConfig = Depends(get_screener_config),
) -> ValidationResponse:
    """Validate expression text. Always 200; problems are in the body."""
    diagnostic = ExpressionValidator(config).validate(body.expression)
    return ValidationResponse(**diagnostic.to_dict())


@router.post("/expression/serialize", response_model=ExpressionResponse)
async def serialize(
    body: SerializeRequest,
    config: ScreenerConfig = Depends(get_screener_config),
    dictionary: FieldDictionary = Depends(get_dictionary),
) -> ExpressionResponse:
    """Serialize a condition list into expression text."""
    conditions = _to_conditions(body.conditions)
    serialize_fn = conditions_to_keyword_expression if body.keywords else conditions_to_expression
    text = serialize_fn(conditions, pretty=body.pretty, dictionary=dictionary, config=config)
    return ExpressionResponse(expression=text)


@router.post("/expression/parse", response_model=ParseResponse)
async def parse(
    body: ExpressionRequest,
    dictionary: FieldDictionary = Depends(get_dictionary),
) -> ParseResponse:
    """Recover a condition list from expression text (best effort)."""
    report = parse_expression(body.expression, dictionary)
    return ParseResponse(**report.to_dict())


@router.post("/expression/format", response_model=ExpressionResponse)
async def format_text(
    body: ExpressionRequest,
    config: ScreenerConfig = Depends(get_screener_config),
) -> ExpressionResponse:
    indent = body.indent if body.indent is not None else config.indent
    return ExpressionResponse(expression=format_expression(body.expression, indent))


# ─── Filter Requests ─────────────────────────────────────────────────────


@router.post("/request", response_model=FilterRequestResponse)
async def build_request(
    body: FilterSpecRequest,
    x_screener_session: Optional[str] = Header(default=None),
    config: ScreenerConfig = Depends(get_screener_config),
    dictionary: FieldDictionary = Depends(get_dictionary),
) -> FilterRequestResponse:
    """Build the outbound screening request for a set of filters.

    With ``advanced`` off the expression is discarded and the structured
    facets are sent.
    """
    spec = FilterSpec.from_dict({
        "basic": body.basic,
        "technical": body.technical,
        "fundamental": body.fundamental,
        "custom_rules": _to_conditions(body.custom_rules),
        "expression": body.expression,
    })
    aggregator = FilterAggregator(
        spec, config=config, dictionary=dictionary, session_id=x_screener_session
    )
    aggregator.toggle_advanced_mode(body.advanced)

    valid, errors = aggregator.validate_filters()
    request = aggregator.build_request()
    logger.info(f"Built {request['mode']} request for session {aggregator.session_id}")
    return FilterRequestResponse(
        request=request,
        valid=valid,
        errors=errors,
        has_filters=aggregator.has_any_filter(),
    )
