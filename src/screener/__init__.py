"""Stock Screener Filters.

Field dictionary, condition lists, expression serialization, heuristic
validation, best-effort parsing and the per-session filter aggregator.

Example:
    from src.screener import FilterAggregator, validate_expression

    agg = FilterAggregator()
    agg.add_condition("peRatio", "lt", 30, logical_connector="AND")
    agg.add_condition("roe", "gt", 10)
    text = agg.sync_expression_from_rules()
    # 市盈率PE < 30
    # AND 净资产收益率ROE > 10

    result = validate_expression(text)
    print(result.valid)
"""

from src.screener.config import (
    FieldCategory,
    ValueType,
    Operator,
    LogicalConnector,
    EditMode,
    MACondition,
    RSICondition,
    MACDCondition,
    BOLLCondition,
    VolumeCondition,
    Volatility,
    PEType,
    MARKETS,
    EXPRESSION_EXAMPLES,
    ScreenerConfig,
    DEFAULT_SCREENER_CONFIG,
)

from src.screener.models import (
    FilterSpecError,
    FieldDescriptor,
    OperatorDescriptor,
    Condition,
    BasicFilters,
    MAConfig,
    RSIConfig,
    MACDConfig,
    KDJConfig,
    BOLLConfig,
    VolumeConfig,
    TechnicalFilters,
    FundamentalFilters,
    FilterSpec,
    ValidationIssue,
    ValidationDiagnostic,
)

from src.screener.fields import FieldDictionary, FIELD_DICTIONARY, BUILTIN_OPERATORS
from src.screener.serializer import (
    format_value,
    condition_to_text,
    condition_to_keyword_text,
    conditions_to_expression,
    conditions_to_keyword_expression,
    format_expression,
)
from src.screener.validator import ExpressionValidator, validate_expression
from src.screener.parser import ParseReport, parse_expression, expression_to_conditions
from src.screener.syntax import (
    ExpressionSyntaxError,
    SyntaxIssue,
    SyntaxResult,
    analyze,
    parse_tree,
    chain_to_tree,
    referenced_fields,
    render,
)
from src.screener.aggregator import FilterAggregator


__all__ = [
    # Config
    "FieldCategory",
    "ValueType",
    "Operator",
    "LogicalConnector",
    "EditMode",
    "MACondition",
    "RSICondition",
    "MACDCondition",
    "BOLLCondition",
    "VolumeCondition",
    "Volatility",
    "PEType",
    "MARKETS",
    "EXPRESSION_EXAMPLES",
    "ScreenerConfig",
    "DEFAULT_SCREENER_CONFIG",
    # Models
    "FilterSpecError",
    "FieldDescriptor",
    "OperatorDescriptor",
    "Condition",
    "BasicFilters",
    "MAConfig",
    "RSIConfig",
    "MACDConfig",
    "KDJConfig",
    "BOLLConfig",
    "VolumeConfig",
    "TechnicalFilters",
    "FundamentalFilters",
    "FilterSpec",
    "ValidationIssue",
    "ValidationDiagnostic",
    # Fields
    "FieldDictionary",
    "FIELD_DICTIONARY",
    "BUILTIN_OPERATORS",
    # Serializer
    "format_value",
    "condition_to_text",
    "condition_to_keyword_text",
    "conditions_to_expression",
    "conditions_to_keyword_expression",
    "format_expression",
    # Validator
    "ExpressionValidator",
    "validate_expression",
    # Parser
    "ParseReport",
    "parse_expression",
    "expression_to_conditions",
    # Syntax tree
    "ExpressionSyntaxError",
    "SyntaxIssue",
    "SyntaxResult",
    "analyze",
    "parse_tree",
    "chain_to_tree",
    "referenced_fields",
    "render",
    # Aggregator
    "FilterAggregator",
]
