"""Condition List Serializer.

Turns a condition list into boolean expression text for display and for
re-validation.
"""

from typing import Any, Optional
import re

from src.screener.config import ScreenerConfig, DEFAULT_SCREENER_CONFIG, Operator
from src.screener.fields import FIELD_DICTIONARY, FieldDictionary
from src.screener.models import Condition


_CONNECTOR_BREAK = re.compile(r"\s+(AND|OR)\s+")


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        text = repr(value)
        if "e" in text or "E" in text:
            # Exponent notation reads as a malformed number to the validator
            text = f"{value:.15f}".rstrip("0").rstrip(".")
        return text
    return str(value)


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        quote = "'" if '"' in value else '"'
        return f"{quote}{value}{quote}"
    if isinstance(value, (int, float)):
        return _format_number(value)
    return str(value)


def format_value(value: Any, operator: Operator = Operator.EQ) -> str:
    """Format a condition value as expression text.

    Strings are double-quoted, or single-quoted when they contain a double
    quote. A string holding an odd number of either quote character cannot
    be written so that the validator's quote balance check passes; such a
    condition serializes, but the text is reported as ``unbalanced_quotes``.
    """
    operator = Operator(operator)
    if operator in (Operator.BETWEEN, Operator.IN) and isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_scalar(v) for v in value) + "]"
    return _format_scalar(value)


def _between_bounds(value: Any) -> tuple[Any, Any]:
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return value[0], value[1]
    return value, value


def condition_to_text(
    condition: Condition,
    dictionary: Optional[FieldDictionary] = None,
) -> str:
    """Render one condition.

    ``between`` expands to an explicit conjunction so the text needs no
    BETWEEN keyword.
    """
    dictionary = dictionary or FIELD_DICTIONARY
    label = dictionary.lookup_label(condition.field_key)

    if condition.operator == Operator.BETWEEN:
        low, high = _between_bounds(condition.value)
        return f"({label} >= {_format_scalar(low)} AND {label} <= {_format_scalar(high)})"

    if condition.operator == Operator.IN:
        return f"{label} IN {format_value(condition.value, Operator.IN)}"

    symbol = dictionary.operator_symbol(condition.operator)
    return f"{label} {symbol} {format_value(condition.value, condition.operator)}"


def condition_to_keyword_text(
    condition: Condition,
    dictionary: Optional[FieldDictionary] = None,
) -> str:
    """Render one condition using the BETWEEN/IN keywords."""
    dictionary = dictionary or FIELD_DICTIONARY
    label = dictionary.lookup_label(condition.field_key)
    symbol = dictionary.operator_symbol(condition.operator)
    if condition.operator == Operator.BETWEEN:
        low, high = _between_bounds(condition.value)
        return f"{label} {symbol} {format_value([low, high], Operator.BETWEEN)}"
    return f"{label} {symbol} {format_value(condition.value, condition.operator)}"


def _join(
    parts: list[str],
    conditions: list[Condition],
    pretty: Optional[bool],
    config: ScreenerConfig,
) -> str:
    if pretty is None:
        pretty = config.pretty_print

    expression = parts[0]
    for i in range(1, len(parts)):
        connector = conditions[i - 1].logical_connector or config.default_connector
        separator = "\n" if pretty else " "
        expression += f"{separator}{connector.value} {parts[i]}"
    return expression


def conditions_to_expression(
    conditions: list[Condition],
    pretty: Optional[bool] = None,
    dictionary: Optional[FieldDictionary] = None,
    config: Optional[ScreenerConfig] = None,
) -> str:
    """Serialize a condition list into one expression.

    The connector between conditions i-1 and i is read from condition i-1.

    Args:
        conditions: Ordered condition list.
        pretty: One connector-led line per condition. Defaults to
            ``config.pretty_print``.
        dictionary: Field dictionary used for labels.
        config: Screener configuration.

    Returns:
        Expression text, empty for an empty list.
    """
    if not conditions:
        return ""
    config = config or DEFAULT_SCREENER_CONFIG
    parts = [condition_to_text(c, dictionary) for c in conditions]
    return _join(parts, conditions, pretty, config)


def conditions_to_keyword_expression(
    conditions: list[Condition],
    pretty: Optional[bool] = None,
    dictionary: Optional[FieldDictionary] = None,
    config: Optional[ScreenerConfig] = None,
) -> str:
    """Serialize a condition list with the BETWEEN/IN keyword rendering."""
    if not conditions:
        return ""
    config = config or DEFAULT_SCREENER_CONFIG
    parts = [condition_to_keyword_text(c, dictionary) for c in conditions]
    return _join(parts, conditions, pretty, config)


def format_expression(expression: str, indent: Optional[str] = None) -> str:
    """Pretty-print an expression.

    Breaks the line before every AND/OR and indents by parenthesis depth.
    """
    if indent is None:
        indent = DEFAULT_SCREENER_CONFIG.indent

    broken = _CONNECTOR_BREAK.sub(r"\n\1 ", expression)
    level = 0
    lines = []
    for line in broken.split("\n"):
        stripped = line.strip()
        opened = stripped.count("(")
        closed = stripped.count(")")

        if closed > opened:
            level = max(0, level - (closed - opened))
        lines.append(indent * level + stripped)
        if opened > closed:
            level += opened - closed

    return "\n".join(lines)
