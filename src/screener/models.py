"""Stock Screener Filter Data Models.

Dataclasses for field and operator descriptors, screening conditions,
filter facets, the aggregate filter specification, and validation
diagnostics.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Optional
import json
import uuid

from src.screener.config import (
    FieldCategory,
    ValueType,
    Operator,
    LogicalConnector,
    MACondition,
    RSICondition,
    MACDCondition,
    BOLLCondition,
    VolumeCondition,
    Volatility,
    PEType,
    RSI_OVERSOLD,
    RSI_OVERBOUGHT,
)


class FilterSpecError(Exception):
    """Filter specification could not be decoded."""
    pass


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _payload(value: Any) -> Any:
    """Convert a model value into plain JSON-friendly data."""
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return _compact(value)
    if isinstance(value, (list, tuple)):
        return [_payload(v) for v in value]
    return value


def _compact(obj: Any) -> dict[str, Any]:
    """Dataclass fields as a dict, skipping unset values."""
    result = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None or value == [] or value == ():
            continue
        result[f.name] = _payload(value)
    return result


def _known(cls: type, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _require_numbers(obj: Any, names) -> None:
    for name in names:
        value = getattr(obj, name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(
                f"{type(obj).__name__}.{name} must be a number, got {type(value).__name__}"
            )


def _require_lists(obj: Any, names) -> None:
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise TypeError(f"{type(obj).__name__}.{name} must be a list of strings")


def _range_fields(ranges: tuple) -> list[str]:
    return [name for _, low, high in ranges for name in (low, high)]


def _range_errors(obj: Any, ranges: tuple) -> list[str]:
    errors = []
    for name, low_attr, high_attr in ranges:
        low = getattr(obj, low_attr)
        high = getattr(obj, high_attr)
        if low is not None and high is not None and low > high:
            errors.append(f"{name} range: minimum {low} is greater than maximum {high}")
    return errors


# =============================================================================
# Descriptor Models
# =============================================================================

@dataclass(frozen=True)
class FieldDescriptor:
    """Definition of a screenable field."""
    key: str
    label: str
    category: FieldCategory
    value_type: ValueType = ValueType.NUMBER
    unit: Optional[str] = None
    enum_options: tuple = ()
    aliases: tuple = ()  # Alternative labels accepted in expressions
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "category": self.category.value,
            "value_type": self.value_type.value,
            "unit": self.unit,
            "enum_options": list(self.enum_options),
            "aliases": list(self.aliases),
            "description": self.description,
        }


@dataclass(frozen=True)
class OperatorDescriptor:
    """Definition of a comparison operator."""
    key: Operator
    label: str
    symbol: str          # Used in expression text
    display_symbol: str  # Used in the editor
    applicable_types: frozenset = frozenset({ValueType.NUMBER})

    def to_dict(self) -> dict:
        return {
            "key": self.key.value,
            "label": self.label,
            "symbol": self.symbol,
            "display_symbol": self.display_symbol,
            "applicable_types": sorted(t.value for t in self.applicable_types),
        }


# =============================================================================
# Condition Model
# =============================================================================

@dataclass
class Condition:
    """A single screening condition.

    ``logical_connector`` joins this condition to the *next* one in the
    list and is ignored on the last condition. ``field_label`` is a copy of
    the dictionary label taken when the field was chosen.
    """
    field_key: str
    operator: Operator
    value: Any
    field_label: str = ""
    logical_connector: Optional[LogicalConnector] = None
    condition_id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.operator = Operator(self.operator.lower())
        if not self.logical_connector:
            self.logical_connector = None
        else:
            self.logical_connector = LogicalConnector(self.logical_connector.upper())

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, tuple):
            value = list(value)
        return {
            "condition_id": self.condition_id,
            "field_key": self.field_key,
            "field_label": self.field_label,
            "operator": self.operator.value,
            "value": value,
            "logical_connector": (
                self.logical_connector.value if self.logical_connector else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Condition":
        return cls(**_known(cls, data))


# =============================================================================
# Filter Facets
# =============================================================================

@dataclass
class BasicFilters:
    """Market, industry, size, price and volume filters."""
    markets: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    sectors: list[str] = field(default_factory=list)
    market_cap_min: Optional[float] = None
    market_cap_max: Optional[float] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    volume_min: Optional[float] = None
    volume_max: Optional[float] = None

    _RANGES = (
        ("Market cap", "market_cap_min", "market_cap_max"),
        ("Price", "price_min", "price_max"),
        ("Volume", "volume_min", "volume_max"),
    )

    def __post_init__(self):
        _require_lists(self, ("markets", "industries", "sectors"))
        _require_numbers(self, _range_fields(self._RANGES))

    def to_dict(self) -> dict:
        return _compact(self)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def range_errors(self) -> list[str]:
        return _range_errors(self, self._RANGES)

    @classmethod
    def from_dict(cls, data: dict) -> "BasicFilters":
        return cls(**_known(cls, data))


@dataclass
class MAConfig:
    """Moving-average cross settings."""
    enabled: bool = False
    short_period: int = 5
    long_period: int = 20
    condition: MACondition = MACondition.CROSS_UP

    def __post_init__(self):
        _require_numbers(self, ("short_period", "long_period"))
        self.condition = MACondition(self.condition)


@dataclass
class RSIConfig:
    """RSI settings."""
    enabled: bool = False
    period: int = 14
    condition: RSICondition = RSICondition.OVERSOLD
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    def __post_init__(self):
        _require_numbers(self, ("period", "min_value", "max_value"))
        self.condition = RSICondition(self.condition)

    def bounds(self) -> tuple[Optional[float], Optional[float]]:
        """Effective (min, max) band implied by the condition."""
        if self.condition == RSICondition.OVERSOLD:
            return None, RSI_OVERSOLD
        if self.condition == RSICondition.OVERBOUGHT:
            return RSI_OVERBOUGHT, None
        return self.min_value, self.max_value


@dataclass
class MACDConfig:
    """MACD settings."""
    enabled: bool = False
    condition: MACDCondition = MACDCondition.GOLDEN_CROSS

    def __post_init__(self):
        self.condition = MACDCondition(self.condition)


@dataclass
class KDJConfig:
    """KDJ band settings."""
    enabled: bool = False
    k_min: Optional[float] = None
    k_max: Optional[float] = None
    d_min: Optional[float] = None
    d_max: Optional[float] = None
    j_min: Optional[float] = None
    j_max: Optional[float] = None

    def __post_init__(self):
        _require_numbers(self, ("k_min", "k_max", "d_min", "d_max", "j_min", "j_max"))


@dataclass
class BOLLConfig:
    """Bollinger band settings."""
    enabled: bool = False
    period: int = 20
    condition: BOLLCondition = BOLLCondition.IN_MIDDLE

    def __post_init__(self):
        _require_numbers(self, ("period",))
        self.condition = BOLLCondition(self.condition)


@dataclass
class VolumeConfig:
    """Volume settings."""
    enabled: bool = False
    condition: VolumeCondition = VolumeCondition.ABOVE_AVERAGE
    multiplier: Optional[float] = None

    def __post_init__(self):
        _require_numbers(self, ("multiplier",))
        self.condition = VolumeCondition(self.condition)


@dataclass
class TechnicalFilters:
    """Technical indicator filters."""
    ma: Optional[MAConfig] = None
    rsi: Optional[RSIConfig] = None
    macd: Optional[MACDConfig] = None
    kdj: Optional[KDJConfig] = None
    boll: Optional[BOLLConfig] = None
    volume: Optional[VolumeConfig] = None
    volatility: Optional[Volatility] = None

    _SECTIONS = {
        "ma": MAConfig,
        "rsi": RSIConfig,
        "macd": MACDConfig,
        "kdj": KDJConfig,
        "boll": BOLLConfig,
        "volume": VolumeConfig,
    }

    def __post_init__(self):
        for name, config_cls in self._SECTIONS.items():
            value = getattr(self, name)
            if isinstance(value, dict):
                setattr(self, name, config_cls(**_known(config_cls, value)))
            elif value is not None and not isinstance(value, config_cls):
                raise TypeError(f"technical.{name} must be an object, got {type(value).__name__}")
        if self.volatility is not None:
            self.volatility = Volatility(self.volatility)

    def to_dict(self) -> dict:
        return _compact(self)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def range_errors(self) -> list[str]:
        errors = []
        if self.ma is not None and self.ma.short_period >= self.ma.long_period:
            errors.append(
                f"MA periods: short period {self.ma.short_period} "
                f"is not shorter than long period {self.ma.long_period}"
            )
        if self.rsi is not None and self.rsi.condition == RSICondition.CUSTOM:
            errors.extend(_range_errors(self.rsi, (("RSI", "min_value", "max_value"),)))
        if self.kdj is not None:
            errors.extend(_range_errors(self.kdj, (
                ("KDJ-K", "k_min", "k_max"),
                ("KDJ-D", "d_min", "d_max"),
                ("KDJ-J", "j_min", "j_max"),
            )))
        return errors

    @classmethod
    def from_dict(cls, data: dict) -> "TechnicalFilters":
        return cls(**_known(cls, data))


@dataclass
class FundamentalFilters:
    """Valuation, profitability, growth and leverage ranges."""
    roe_min: Optional[float] = None
    roe_max: Optional[float] = None
    pe_min: Optional[float] = None
    pe_max: Optional[float] = None
    pe_type: Optional[PEType] = None
    pb_min: Optional[float] = None
    pb_max: Optional[float] = None
    gross_profit_margin_min: Optional[float] = None
    gross_profit_margin_max: Optional[float] = None
    net_profit_margin_min: Optional[float] = None
    net_profit_margin_max: Optional[float] = None
    eps_growth_min: Optional[float] = None
    eps_growth_max: Optional[float] = None
    revenue_growth_min: Optional[float] = None
    revenue_growth_max: Optional[float] = None
    debt_ratio_min: Optional[float] = None
    debt_ratio_max: Optional[float] = None

    _RANGES = (
        ("ROE", "roe_min", "roe_max"),
        ("P/E", "pe_min", "pe_max"),
        ("P/B", "pb_min", "pb_max"),
        ("Gross margin", "gross_profit_margin_min", "gross_profit_margin_max"),
        ("Net margin", "net_profit_margin_min", "net_profit_margin_max"),
        ("EPS growth", "eps_growth_min", "eps_growth_max"),
        ("Revenue growth", "revenue_growth_min", "revenue_growth_max"),
        ("Debt ratio", "debt_ratio_min", "debt_ratio_max"),
    )

    def __post_init__(self):
        _require_numbers(self, _range_fields(self._RANGES))
        if self.pe_type is not None:
            self.pe_type = PEType(self.pe_type)

    def to_dict(self) -> dict:
        return _compact(self)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def range_errors(self) -> list[str]:
        return _range_errors(self, self._RANGES)

    @classmethod
    def from_dict(cls, data: dict) -> "FundamentalFilters":
        return cls(**_known(cls, data))


# =============================================================================
# Filter Specification
# =============================================================================

@dataclass
class FilterSpec:
    """Aggregate of all editable filter facets for one editing session."""
    basic: BasicFilters = field(default_factory=BasicFilters)
    technical: TechnicalFilters = field(default_factory=TechnicalFilters)
    fundamental: FundamentalFilters = field(default_factory=FundamentalFilters)
    custom_rules: list[Condition] = field(default_factory=list)
    expression: str = ""

    _FACETS = {
        "basic": BasicFilters,
        "technical": TechnicalFilters,
        "fundamental": FundamentalFilters,
    }

    def __post_init__(self):
        for name, facet_cls in self._FACETS.items():
            value = getattr(self, name)
            if isinstance(value, dict):
                setattr(self, name, facet_cls.from_dict(value))
            elif not isinstance(value, facet_cls):
                raise TypeError(f"{name} must be an object, got {type(value).__name__}")

        rules = self.custom_rules or []
        if not isinstance(rules, list):
            raise TypeError(f"custom_rules must be a list, got {type(rules).__name__}")
        self.custom_rules = [
            Condition.from_dict(rule) if isinstance(rule, dict) else rule
            for rule in rules
        ]
        for rule in self.custom_rules:
            if not isinstance(rule, Condition):
                raise TypeError(f"custom_rules entries must be objects, got {type(rule).__name__}")

        self.expression = self.expression or ""
        if not isinstance(self.expression, str):
            raise TypeError(f"expression must be a string, got {type(self.expression).__name__}")

    def to_dict(self) -> dict:
        return {
            "basic": self.basic.to_dict(),
            "technical": self.technical.to_dict(),
            "fundamental": self.fundamental.to_dict(),
            "custom_rules": [rule.to_dict() for rule in self.custom_rules],
            "expression": self.expression,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> "FilterSpec":
        """Build a spec from its dict form.

        Raises:
            FilterSpecError: If the data is not a valid filter spec.
        """
        if not isinstance(data, dict):
            raise FilterSpecError(f"Expected an object, got {type(data).__name__}")
        try:
            return cls(**_known(cls, data))
        except (TypeError, ValueError, AttributeError) as e:
            raise FilterSpecError(f"Invalid filter spec: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "FilterSpec":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise FilterSpecError(f"Malformed filter JSON: {e}") from e
        return cls.from_dict(data)


# =============================================================================
# Validation Models
# =============================================================================

@dataclass
class ValidationIssue:
    """One problem found in an expression."""
    message: str
    code: str = ""
    position: Optional[int] = None

    def to_dict(self) -> dict:
        result = {"message": self.message, "code": self.code}
        if self.position is not None:
            result["position"] = self.position
        return result


@dataclass
class ValidationDiagnostic:
    """Result of checking an expression.

    Errors make the expression unusable; warnings are advisory only.
    """
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def error_codes(self) -> list[str]:
        return [e.code for e in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [w.code for w in self.warnings]

    def add_error(self, message: str, code: str, position: Optional[int] = None) -> None:
        self.errors.append(ValidationIssue(message, code, position))

    def add_warning(self, message: str, code: str, position: Optional[int] = None) -> None:
        self.warnings.append(ValidationIssue(message, code, position))

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
