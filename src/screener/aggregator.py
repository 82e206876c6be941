"""Filter Aggregator.

Owns the filter specification of one editing session: merges the
independently edited facets, manages the custom condition list and the
raw expression, and switches between structured and advanced editing.
"""

from dataclasses import replace
from typing import Any, Optional
import logging
import uuid

from src.screener.config import (
    EditMode,
    Operator,
    LogicalConnector,
    ScreenerConfig,
    DEFAULT_SCREENER_CONFIG,
    EXPRESSION_EXAMPLES,
)
from src.screener.fields import FIELD_DICTIONARY, FieldDictionary
from src.screener.models import (
    Condition,
    FilterSpec,
    FilterSpecError,
    ValidationDiagnostic,
)
from src.screener.serializer import conditions_to_expression
from src.screener.validator import ExpressionValidator
from src.screener.parser import ParseReport, parse_expression

logger = logging.getLogger(__name__)


class FilterAggregator:
    """Editing session over a single FilterSpec.

    Mode policy: a non-empty expression is sent alone; structured facets
    stay in the spec while in advanced mode but are left out of the
    outbound request. Leaving advanced mode clears the expression.

    Example:
        agg = FilterAggregator()
        agg.set_basic(markets=["SH_MAIN"], price_min=5)
        cid = agg.add_condition("peRatio", "lt", 30)
        agg.sync_expression_from_rules()
        agg.build_request()   # {"mode": "structured", ...}
    """

    def __init__(
        self,
        spec: Optional[FilterSpec] = None,
        config: Optional[ScreenerConfig] = None,
        dictionary: Optional[FieldDictionary] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config or DEFAULT_SCREENER_CONFIG
        self.dictionary = dictionary or FIELD_DICTIONARY
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.spec = spec if spec is not None else FilterSpec()
        self._mode = EditMode.ADVANCED if self.spec.expression.strip() else EditMode.STRUCTURED
        self._validator = ExpressionValidator(self.config)

    # -------------------------------------------------------------------------
    # Facets
    # -------------------------------------------------------------------------

    def set_basic(self, **updates: Any) -> None:
        """Merge updates into the basic filters. No validation is done here."""
        self.spec.basic = replace(self.spec.basic, **updates)

    def set_technical(self, **updates: Any) -> None:
        """Merge updates into the technical filters.

        Indicator sections may be given as dicts, e.g.
        ``set_technical(rsi={"enabled": True, "condition": "oversold"})``.
        """
        self.spec.technical = replace(self.spec.technical, **updates)

    def set_fundamental(self, **updates: Any) -> None:
        """Merge updates into the fundamental filters."""
        self.spec.fundamental = replace(self.spec.fundamental, **updates)

    # -------------------------------------------------------------------------
    # Custom conditions
    # -------------------------------------------------------------------------

    @property
    def conditions(self) -> list[Condition]:
        return self.spec.custom_rules

    def get_condition(self, condition_id: str) -> Optional[Condition]:
        for condition in self.spec.custom_rules:
            if condition.condition_id == condition_id:
                return condition
        return None

    def add_condition(
        self,
        field_key: str,
        operator: Operator,
        value: Any,
        logical_connector: Optional[LogicalConnector] = None,
    ) -> str:
        """Append a condition to the custom list.

        Returns:
            The new condition's id.
        """
        condition = Condition(
            field_key=field_key,
            operator=operator,
            value=value,
            field_label=self.dictionary.lookup_label(field_key),
            logical_connector=logical_connector,
        )
        self.spec.custom_rules.append(condition)
        logger.debug(f"[{self.session_id}] Added condition {condition.condition_id} on {field_key}")
        return condition.condition_id

    def update_condition(self, condition_id: str, **updates: Any) -> bool:
        """Edit a condition in place.

        Accepts ``field_key``, ``operator``, ``value`` and
        ``logical_connector``. Changing the field refreshes the cached label.
        """
        condition = self.get_condition(condition_id)
        if condition is None:
            logger.warning(f"[{self.session_id}] Condition not found: {condition_id}")
            return False

        if "field_key" in updates:
            condition.field_key = updates["field_key"]
            condition.field_label = self.dictionary.lookup_label(condition.field_key)
        if "operator" in updates:
            condition.operator = Operator(updates["operator"].lower())
        if "value" in updates:
            condition.value = updates["value"]
        if "logical_connector" in updates:
            connector = updates["logical_connector"]
            condition.logical_connector = LogicalConnector(connector.upper()) if connector else None
        return True

    def remove_condition(self, condition_id: str) -> bool:
        """Remove a condition. The predecessor keeps its connector."""
        condition = self.get_condition(condition_id)
        if condition is None:
            logger.warning(f"[{self.session_id}] Condition not found: {condition_id}")
            return False
        self.spec.custom_rules.remove(condition)
        return True

    def clear_conditions(self) -> None:
        self.spec.custom_rules = []

    # -------------------------------------------------------------------------
    # Expression and mode
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> EditMode:
        return self._mode

    @property
    def is_advanced(self) -> bool:
        return self._mode == EditMode.ADVANCED

    def set_expression(self, expression: str) -> None:
        """Store raw expression text. Custom conditions are not touched."""
        self.spec.expression = expression or ""

    def toggle_advanced_mode(self, enabled: bool) -> EditMode:
        """Switch editing mode.

        Entering advanced mode keeps every structured facet; leaving it
        clears the expression.
        """
        if enabled:
            self._mode = EditMode.ADVANCED
        else:
            self._mode = EditMode.STRUCTURED
            self.spec.expression = ""
        logger.info(f"[{self.session_id}] Edit mode: {self._mode.value}")
        return self._mode

    def sync_expression_from_rules(self, pretty: Optional[bool] = None) -> str:
        """Replace the expression with the serialized custom conditions."""
        self.spec.expression = conditions_to_expression(
            self.spec.custom_rules,
            pretty=pretty,
            dictionary=self.dictionary,
            config=self.config,
        )
        return self.spec.expression

    def import_rules_from_expression(self) -> ParseReport:
        """Replace the custom conditions with those recovered from the expression.

        Segments the parser cannot read are listed in the returned report
        and do not become conditions.
        """
        report = parse_expression(self.spec.expression, self.dictionary)
        self.spec.custom_rules = list(report.conditions)
        return report

    def insert_example(self, example: str) -> str:
        """Append a catalogue example (by name) or literal text to the expression."""
        text = EXPRESSION_EXAMPLES.get(example, example)
        if self.spec.expression.strip():
            self.spec.expression = f"{self.spec.expression}\n{LogicalConnector.AND.value} {text}"
        else:
            self.spec.expression = text
        return self.spec.expression

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def has_any_filter(self) -> bool:
        """True if any facet, condition or expression is set."""
        spec = self.spec
        return (
            not spec.basic.is_empty()
            or not spec.technical.is_empty()
            or not spec.fundamental.is_empty()
            or bool(spec.custom_rules)
            or bool(spec.expression.strip())
        )

    def validate_filters(self) -> tuple[bool, list[str]]:
        """Check facet ranges and custom condition shapes.

        Returns:
            Tuple of (is_valid, error messages).
        """
        errors = []
        errors.extend(self.spec.basic.range_errors())
        errors.extend(self.spec.technical.range_errors())
        errors.extend(self.spec.fundamental.range_errors())
        for i, condition in enumerate(self.spec.custom_rules, start=1):
            for problem in self.dictionary.check_condition(condition):
                errors.append(f"Condition {i}: {problem}")
        return len(errors) == 0, errors

    def validate_expression(self) -> ValidationDiagnostic:
        return self._validator.validate(self.spec.expression)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        self.spec = FilterSpec()
        self._mode = EditMode.STRUCTURED

    def load(self, spec: FilterSpec) -> None:
        self.spec = spec
        self._mode = EditMode.ADVANCED if spec.expression.strip() else EditMode.STRUCTURED

    def to_json(self) -> str:
        return self.spec.to_json()

    def load_json(self, text: str) -> bool:
        """Load a spec saved with ``to_json``. Leaves state unchanged on failure."""
        try:
            spec = FilterSpec.from_json(text)
        except FilterSpecError as e:
            logger.error(f"[{self.session_id}] Failed to load filters: {e}")
            return False
        self.load(spec)
        return True

    def build_request(self) -> dict:
        """Outbound request for the screening backend.

        Returns:
            ``{"mode": "advanced", "expression": ...}`` when an expression is
            set, otherwise the structured facets that are not empty.
        """
        if self.spec.expression.strip():
            return {"mode": EditMode.ADVANCED.value, "expression": self.spec.expression}

        request: dict[str, Any] = {"mode": EditMode.STRUCTURED.value}
        for name in ("basic", "technical", "fundamental"):
            facet = getattr(self.spec, name).to_dict()
            if facet:
                request[name] = facet
        if self.spec.custom_rules:
            request["custom_rules"] = [c.to_dict() for c in self.spec.custom_rules]
        return request
