"""Field Dictionary.

Built-in field and operator definitions for screening conditions, with
forward (key -> label) and reverse (label -> key) indices built from one
field list.
"""

from typing import Any, Iterable, Optional
import logging

from src.screener.config import FieldCategory, ValueType, Operator, MARKETS, Volatility
from src.screener.models import FieldDescriptor, OperatorDescriptor, Condition

logger = logging.getLogger(__name__)

_NUMBER = ValueType.NUMBER
_ALL_TYPES = frozenset({ValueType.NUMBER, ValueType.STRING, ValueType.ENUM})


BUILTIN_OPERATORS = [
    OperatorDescriptor(Operator.GT, "大于", ">", ">", frozenset({_NUMBER})),
    OperatorDescriptor(Operator.GTE, "大于等于", ">=", "≥", frozenset({_NUMBER})),
    OperatorDescriptor(Operator.LT, "小于", "<", "<", frozenset({_NUMBER})),
    OperatorDescriptor(Operator.LTE, "小于等于", "<=", "≤", frozenset({_NUMBER})),
    OperatorDescriptor(Operator.EQ, "等于", "==", "=", _ALL_TYPES),
    OperatorDescriptor(Operator.NEQ, "不等于", "!=", "≠", _ALL_TYPES),
    OperatorDescriptor(Operator.BETWEEN, "介于", "BETWEEN", "⋯", frozenset({_NUMBER})),
    OperatorDescriptor(Operator.IN, "属于", "IN", "∈", frozenset({ValueType.ENUM})),
]


class FieldDictionary:
    """Registry of screenable fields and comparison operators.

    Unknown keys and labels are never errors: lookups fall back to the
    text they were given so serialization degrades instead of failing.

    Example:
        dictionary = FieldDictionary()
        dictionary.lookup_label("peRatio")        # "市盈率PE"
        dictionary.lookup_key_by_label("价格")     # "price"
        dictionary.lookup_label("unknownField")   # "unknownField"
    """

    def __init__(
        self,
        fields: Optional[Iterable[FieldDescriptor]] = None,
        operators: Optional[Iterable[OperatorDescriptor]] = None,
    ):
        self._fields: dict[str, FieldDescriptor] = {}
        self._by_label: dict[str, str] = {}
        self._by_folded_label: dict[str, str] = {}
        self._operators: dict[Operator, OperatorDescriptor] = {}

        if fields is None:
            self._register_builtin_fields()
        else:
            for field_def in fields:
                self.register(field_def)

        for op in operators if operators is not None else BUILTIN_OPERATORS:
            self._operators[op.key] = op

    # -------------------------------------------------------------------------
    # Fields
    # -------------------------------------------------------------------------

    def register(self, field_def: FieldDescriptor) -> None:
        """Register a field and index its label and aliases."""
        self._fields[field_def.key] = field_def
        for name in (field_def.label, *field_def.aliases):
            owner = self._by_label.get(name)
            if owner is not None and owner != field_def.key:
                logger.warning(
                    f"Label '{name}' already maps to '{owner}', ignoring it for '{field_def.key}'"
                )
                continue
            self._by_label[name] = field_def.key
            self._by_folded_label.setdefault(name.casefold(), field_def.key)

    def get_field(self, key: str) -> Optional[FieldDescriptor]:
        """Get a field by key."""
        return self._fields.get(key)

    def get_all_fields(self) -> list[FieldDescriptor]:
        """Get all registered fields."""
        return list(self._fields.values())

    def get_fields_by_category(self, category: FieldCategory) -> list[FieldDescriptor]:
        """Get fields by category."""
        return [f for f in self._fields.values() if f.category == category]

    def search_fields(self, query: str) -> list[FieldDescriptor]:
        """Search fields by key, label or description."""
        query = query.casefold()
        return [
            f for f in self._fields.values()
            if query in f.key.casefold()
            or query in f.label.casefold()
            or query in f.description.casefold()
        ]

    def lookup_label(self, key: str) -> str:
        """Display label for a field key, or the key itself if unknown."""
        field_def = self._fields.get(key)
        return field_def.label if field_def else key

    def lookup_key_by_label(self, label: str) -> str:
        """Canonical key for a label or alias, or the label itself if unknown."""
        name = label.strip()
        key = self._by_label.get(name)
        if key is None:
            key = self._by_folded_label.get(name.casefold())
        return key if key is not None else label

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def get_operator(self, op: Operator) -> Optional[OperatorDescriptor]:
        """Get an operator descriptor."""
        return self._operators.get(Operator(op))

    def get_all_operators(self) -> list[OperatorDescriptor]:
        return list(self._operators.values())

    def operator_symbol(self, op: Operator) -> str:
        """Expression symbol for an operator, or its key if unknown."""
        descriptor = self.get_operator(op)
        return descriptor.symbol if descriptor else Operator(op).value

    def get_operators_for_type(self, value_type: ValueType) -> list[OperatorDescriptor]:
        """Operators that accept values of the given type."""
        return [op for op in self._operators.values() if value_type in op.applicable_types]

    # -------------------------------------------------------------------------
    # Condition checks
    # -------------------------------------------------------------------------

    def check_condition(self, condition: Condition) -> list[str]:
        """Report shape problems in a condition.

        Does not raise; an empty list means the condition is well formed.
        """
        problems = []
        field_def = self._fields.get(condition.field_key)
        if field_def is None:
            problems.append(f"Unknown field: {condition.field_key}")

        value = condition.value
        if condition.operator == Operator.BETWEEN:
            if not isinstance(value, (list, tuple)) or len(value) != 2:
                problems.append("'between' requires a [min, max] pair")
            return problems

        if condition.operator == Operator.IN:
            if not isinstance(value, (list, tuple)) or not value:
                problems.append("'in' requires a non-empty list")
            return problems

        value_type = _scalar_type(value)
        if value_type is None:
            problems.append(f"'{condition.operator.value}' requires a single value")
            return problems

        descriptor = self.get_operator(condition.operator)
        if descriptor and value_type not in descriptor.applicable_types:
            problems.append(
                f"'{condition.operator.value}' does not accept {value_type.value} values"
            )
        return problems

    # -------------------------------------------------------------------------
    # Built-in fields
    # -------------------------------------------------------------------------

    def _register_builtin_fields(self) -> None:
        """Register all built-in fields."""
        self._register_basic_fields()
        self._register_technical_fields()
        self._register_fundamental_fields()

    def _register_basic_fields(self) -> None:
        basic = FieldCategory.BASIC
        fields = [
            FieldDescriptor("price", "价格", basic, unit="元", aliases=("股价",),
                            description="Last traded price"),
            FieldDescriptor("changePercent", "涨跌幅", basic, unit="%"),
            FieldDescriptor("volume", "成交量", basic, unit="股"),
            FieldDescriptor("amount", "成交额", basic, unit="元"),
            FieldDescriptor("marketCap", "市值", basic, unit="元",
                            description="Total market capitalisation"),
            FieldDescriptor("circulationMarketCap", "流通市值", basic, unit="元"),
            FieldDescriptor("market", "市场", basic, ValueType.ENUM,
                            enum_options=tuple(MARKETS)),
            FieldDescriptor("industry", "行业", basic, ValueType.STRING),
        ]
        for field_def in fields:
            self.register(field_def)

    def _register_technical_fields(self) -> None:
        technical = FieldCategory.TECHNICAL
        fields = [
            FieldDescriptor("ma5", "MA5", technical, unit="元", description="5-day moving average"),
            FieldDescriptor("ma10", "MA10", technical, unit="元", description="10-day moving average"),
            FieldDescriptor("ma20", "MA20", technical, unit="元", description="20-day moving average"),
            FieldDescriptor("ma60", "MA60", technical, unit="元", description="60-day moving average"),
            FieldDescriptor("rsi", "RSI", technical, description="Relative strength index"),
            FieldDescriptor("macd", "MACD", technical),
            FieldDescriptor("macdSignal", "MACD信号线", technical),
            FieldDescriptor("macdHistogram", "MACD柱状图", technical, aliases=("MACD柱",)),
            FieldDescriptor("kdj_k", "KDJ-K", technical),
            FieldDescriptor("kdj_d", "KDJ-D", technical),
            FieldDescriptor("kdj_j", "KDJ-J", technical),
            FieldDescriptor("volatility", "波动率", technical, ValueType.ENUM,
                            enum_options=tuple(v.value for v in Volatility)),
        ]
        for field_def in fields:
            self.register(field_def)

    def _register_fundamental_fields(self) -> None:
        fundamental = FieldCategory.FUNDAMENTAL
        fields = [
            FieldDescriptor("peRatio", "市盈率PE", fundamental, aliases=("市盈率",),
                            description="Price to earnings ratio"),
            FieldDescriptor("pbRatio", "市净率PB", fundamental, aliases=("市净率",),
                            description="Price to book ratio"),
            FieldDescriptor("roe", "净资产收益率ROE", fundamental, unit="%", aliases=("ROE",),
                            description="Return on equity"),
            FieldDescriptor("eps", "每股收益EPS", fundamental, unit="元", aliases=("EPS",),
                            description="Earnings per share"),
            FieldDescriptor("grossProfitMargin", "毛利率", fundamental, unit="%"),
            FieldDescriptor("netProfitMargin", "净利率", fundamental, unit="%"),
            FieldDescriptor("epsGrowth", "EPS增长率", fundamental, unit="%"),
            FieldDescriptor("revenueGrowth", "营收增长率", fundamental, unit="%"),
            FieldDescriptor("debtRatio", "资产负债率", fundamental, unit="%"),
            FieldDescriptor("dividendYield", "股息率", fundamental, unit="%"),
        ]
        for field_def in fields:
            self.register(field_def)


def _scalar_type(value: Any) -> Optional[ValueType]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return ValueType.NUMBER
    if isinstance(value, str):
        return ValueType.STRING
    return None


# Global dictionary instance
FIELD_DICTIONARY = FieldDictionary()
