"""Stock Screener Filter Configuration.

Enums, constants, and configuration for the screener filter subsystem.
"""

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Enums
# =============================================================================

class FieldCategory(str, Enum):
    """Field category."""
    BASIC = "basic"
    TECHNICAL = "technical"
    FUNDAMENTAL = "fundamental"


class ValueType(str, Enum):
    """Field value type."""
    NUMBER = "number"
    STRING = "string"
    ENUM = "enum"


class Operator(str, Enum):
    """Comparison operator."""
    GT = "gt"           # Greater than
    GTE = "gte"         # Greater than or equal
    LT = "lt"           # Less than
    LTE = "lte"         # Less than or equal
    EQ = "eq"           # Equal
    NEQ = "neq"         # Not equal
    BETWEEN = "between" # Between two values
    IN = "in"           # In list


class LogicalConnector(str, Enum):
    """Connector between a condition and the next one."""
    AND = "AND"
    OR = "OR"


class EditMode(str, Enum):
    """Filter editing mode."""
    STRUCTURED = "structured"
    ADVANCED = "advanced"


class MACondition(str, Enum):
    """Moving-average cross condition."""
    CROSS_UP = "cross_up"
    CROSS_DOWN = "cross_down"
    ABOVE = "above"
    BELOW = "below"


class RSICondition(str, Enum):
    """RSI condition."""
    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"
    CUSTOM = "custom"


class MACDCondition(str, Enum):
    """MACD condition."""
    GOLDEN_CROSS = "golden_cross"
    DEATH_CROSS = "death_cross"
    HISTOGRAM_POSITIVE = "histogram_positive"
    HISTOGRAM_NEGATIVE = "histogram_negative"


class BOLLCondition(str, Enum):
    """Bollinger band condition."""
    ABOVE_UPPER = "above_upper"
    BELOW_LOWER = "below_lower"
    IN_MIDDLE = "in_middle"


class VolumeCondition(str, Enum):
    """Volume condition."""
    BREAKOUT = "breakout"
    ABOVE_AVERAGE = "above_average"
    BELOW_AVERAGE = "below_average"


class Volatility(str, Enum):
    """Volatility bucket."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PEType(str, Enum):
    """P/E ratio flavour."""
    TTM = "ttm"
    STATIC = "static"


# =============================================================================
# Constants
# =============================================================================

# Market boards (code -> label)
MARKETS = {
    "SH_MAIN": "沪市主板",
    "SZ_MAIN": "深市主板",
    "CHINEXT": "创业板",
    "STAR": "科创板",
    "BSE": "北交所",
}


RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70

# Example expressions offered by the expression editor
EXPRESSION_EXAMPLES = {
    "高成长低估值": "(EPS增长率 > 20) AND (市盈率PE < 30) AND (净资产收益率ROE > 10)",
    "RSI超卖": "(RSI < 30) AND (成交量 > MA5成交量)",
    "突破新高": "(股价 > MA60) AND (成交量 > MA5成交量 * 2)",
    "价值投资": "(市盈率PE < 20) AND (市净率PB < 3) AND (净资产收益率ROE > 10) AND (股息率 > 2)",
    "成长股": "(EPS增长率 > 30) AND (营收增长率 > 20) AND (毛利率 > 40)",
}


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class ScreenerConfig:
    """Screener filter configuration."""
    pretty_print: bool = True
    default_connector: LogicalConnector = LogicalConnector.AND
    indent: str = "  "
    strict_syntax: bool = False


DEFAULT_SCREENER_CONFIG = ScreenerConfig()
