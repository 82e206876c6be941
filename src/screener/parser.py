"""Expression Parser.

Best-effort recovery of a condition list from expression text, for moving
an expression back into the structured editor. Only flat chains of simple
conditions are understood; nested groups and NOT are reported as unparsed.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import re
import logging

from src.screener.config import Operator, LogicalConnector
from src.screener.fields import FIELD_DICTIONARY, FieldDictionary
from src.screener.models import Condition

logger = logging.getLogger(__name__)


_CONNECTOR_SPLIT = re.compile(r"\s+(AND|OR)\s+", re.IGNORECASE)
_NOT_PREFIX = re.compile(r"NOT(?![A-Za-z0-9_])", re.IGNORECASE)

_COMPARISON = re.compile(r"^(?P<field>.+?)\s*(?P<op>>=|<=|==|!=|=|>|<)\s*(?P<value>.+)$")
_MEMBERSHIP = re.compile(
    r"^(?P<field>.+?)\s+IN\s*\[(?P<items>[^\]]*)\]$", re.IGNORECASE
)
_RANGE = re.compile(
    r"^(?P<field>.+?)\s+BETWEEN\s*\[\s*(?P<low>[^,\]]+?)\s*,\s*(?P<high>[^,\]]+?)\s*\]$",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"[+-]?\d+(?:\.\d+)?")

_COMPARISON_OPERATORS = {
    ">=": Operator.GTE,
    "<=": Operator.LTE,
    "==": Operator.EQ,
    "=": Operator.EQ,
    "!=": Operator.NEQ,
    ">": Operator.GT,
    "<": Operator.LT,
}


@dataclass
class ParseReport:
    """Outcome of a best-effort parse.

    ``unparsed`` holds the text of every segment that produced no
    condition, in order of appearance.
    """
    conditions: list[Condition] = field(default_factory=list)
    unparsed: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unparsed

    def to_dict(self) -> dict:
        return {
            "conditions": [c.to_dict() for c in self.conditions],
            "unparsed": list(self.unparsed),
            "unparsed_count": len(self.unparsed),
        }


def coerce_value(text: str) -> Any:
    """Numeric-looking text becomes int or float; quotes are stripped otherwise."""
    text = text.strip()
    if _NUMBER.fullmatch(text):
        return float(text) if "." in text else int(text)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


def _strip_group(segment: str) -> str:
    segment = segment.strip()
    if segment.startswith("("):
        segment = segment[1:]
    if segment.endswith(")"):
        segment = segment[:-1]
    return segment.strip()


def _split_segments(text: str) -> list[tuple[Optional[LogicalConnector], str]]:
    """Split on connectors, pairing each segment with the connector before it."""
    parts = _CONNECTOR_SPLIT.split(text.strip())
    segments = [(None, parts[0])]
    for i in range(1, len(parts), 2):
        segments.append((LogicalConnector(parts[i].upper()), parts[i + 1]))
    return segments


def _match_segment(segment: str, dictionary: FieldDictionary) -> Optional[Condition]:
    match = _COMPARISON.match(segment)
    if match:
        operator = _COMPARISON_OPERATORS[match.group("op")]
        value = coerce_value(match.group("value"))
    else:
        match = _MEMBERSHIP.match(segment)
        if match:
            operator = Operator.IN
            value = [coerce_value(v) for v in match.group("items").split(",") if v.strip()]
        else:
            match = _RANGE.match(segment)
            if not match:
                return None
            operator = Operator.BETWEEN
            value = [coerce_value(match.group("low")), coerce_value(match.group("high"))]

    field_key = dictionary.lookup_key_by_label(match.group("field").strip())
    return Condition(
        field_key=field_key,
        operator=operator,
        value=value,
        field_label=dictionary.lookup_label(field_key),
    )


def parse_expression(
    expression: str,
    dictionary: Optional[FieldDictionary] = None,
) -> ParseReport:
    """Recover a condition list from expression text.

    Each AND/OR separated segment is tried against the comparison, IN and
    BETWEEN patterns in that order. Segments starting with NOT or matching
    none of them are skipped and listed in the report.

    Args:
        expression: Expression text.
        dictionary: Field dictionary used to resolve labels back to keys.

    Returns:
        ParseReport with recovered conditions and unparsed segments.
    """
    dictionary = dictionary or FIELD_DICTIONARY
    report = ParseReport()
    if not expression or not expression.strip():
        return report

    for connector, raw in _split_segments(expression):
        segment = _strip_group(raw)
        if not segment:
            continue

        condition = None
        if not _NOT_PREFIX.match(segment):
            condition = _match_segment(segment, dictionary)

        if condition is None:
            report.unparsed.append(raw.strip())
            continue

        if report.conditions and connector is not None:
            report.conditions[-1].logical_connector = connector
        report.conditions.append(condition)

    if report.unparsed:
        logger.warning(
            f"Skipped {len(report.unparsed)} unparsed expression segment(s): {report.unparsed}"
        )
    return report


def expression_to_conditions(
    expression: str,
    dictionary: Optional[FieldDictionary] = None,
) -> list[Condition]:
    """Recovered conditions only, dropping the unparsed segment report."""
    return parse_expression(expression, dictionary).conditions
