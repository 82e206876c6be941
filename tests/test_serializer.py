"""Tests for condition list serialization."""

import pytest

from src.screener import (
    Condition,
    LogicalConnector,
    Operator,
    ScreenerConfig,
    condition_to_text,
    conditions_to_expression,
    conditions_to_keyword_expression,
    format_expression,
    format_value,
    validate_expression,
)


@pytest.fixture
def two_conditions():
    return [
        Condition("price", Operator.GT, 10, logical_connector=LogicalConnector.AND),
        Condition("peRatio", Operator.LT, 30),
    ]


class TestConditionsToExpression:
    """Joining a condition list."""

    def test_empty_list(self):
        assert conditions_to_expression([]) == ""

    def test_single_condition(self):
        assert conditions_to_expression([Condition("price", "gt", 10, logical_connector="OR")]) == "价格 > 10"

    def test_pretty_by_default(self, two_conditions):
        assert conditions_to_expression(two_conditions) == "价格 > 10\nAND 市盈率PE < 30"

    def test_compact(self, two_conditions):
        assert conditions_to_expression(two_conditions, pretty=False) == "价格 > 10 AND 市盈率PE < 30"

    def test_compact_from_config(self, two_conditions):
        config = ScreenerConfig(pretty_print=False)
        assert conditions_to_expression(two_conditions, config=config) == "价格 > 10 AND 市盈率PE < 30"

    def test_connector_read_from_previous_condition(self):
        conditions = [
            Condition("price", "gt", 10, logical_connector="OR"),
            Condition("roe", "gte", 15, logical_connector="AND"),
            Condition("rsi", "lt", 30),
        ]
        assert conditions_to_expression(conditions, pretty=False) == (
            "价格 > 10 OR 净资产收益率ROE >= 15 AND RSI < 30"
        )

    def test_missing_connector_defaults_to_and(self):
        conditions = [Condition("price", "gt", 10), Condition("rsi", "lt", 30)]
        assert conditions_to_expression(conditions, pretty=False) == "价格 > 10 AND RSI < 30"

    def test_default_connector_from_config(self):
        conditions = [Condition("price", "gt", 10), Condition("rsi", "lt", 30)]
        config = ScreenerConfig(default_connector=LogicalConnector.OR)
        assert conditions_to_expression(conditions, pretty=False, config=config) == "价格 > 10 OR RSI < 30"

    def test_labels_come_from_dictionary(self):
        stale = Condition("price", "gt", 10, field_label="旧标签")
        assert conditions_to_expression([stale]) == "价格 > 10"


class TestConditionToText:
    """Rendering one condition."""

    def test_between_expands(self):
        condition = Condition("marketCap", "between", [100, 500])
        assert condition_to_text(condition) == "(市值 >= 100 AND 市值 <= 500)"

    def test_in_list(self):
        condition = Condition("market", "in", ["SH_MAIN", "STAR"])
        assert condition_to_text(condition) == '市场 IN ["SH_MAIN", "STAR"]'

    def test_string_value_quoted(self):
        assert condition_to_text(Condition("industry", "eq", "银行")) == '行业 == "银行"'

    def test_not_equal(self):
        assert condition_to_text(Condition("industry", "neq", "银行")) == '行业 != "银行"'

    def test_unknown_field_uses_key(self):
        assert condition_to_text(Condition("customMetric", "gt", 1)) == "customMetric > 1"

    def test_keyword_rendering(self):
        conditions = [
            Condition("marketCap", "between", [100, 500]),
            Condition("market", "in", ["STAR"]),
        ]
        assert conditions_to_keyword_expression(conditions, pretty=False) == (
            '市值 BETWEEN [100, 500] AND 市场 IN ["STAR"]'
        )


class TestFormatValue:
    """Value formatting."""

    def test_integral_float(self):
        assert format_value(10.0) == "10"

    def test_fraction(self):
        assert format_value(0.5) == "0.5"

    def test_no_exponent(self):
        assert format_value(1e-07) == "0.0000001"

    def test_negative(self):
        assert format_value(-5) == "-5"

    def test_quote_choice(self):
        assert format_value('say "hi"') == "'say \"hi\"'"

    def test_list_for_in(self):
        assert format_value(["a", 1], Operator.IN) == '["a", 1]'


class TestSerializedExpressionsValidate:
    """Serializer output passes the validator."""

    def test_mixed_conditions_validate(self):
        conditions = [
            Condition("marketCap", "between", [1e9, 5e10], logical_connector="AND"),
            Condition("market", "in", ["SH_MAIN", "SZ_MAIN"], logical_connector="OR"),
            Condition("industry", "eq", "银行", logical_connector="AND"),
            Condition("kdj_k", "lt", 20, logical_connector="AND"),
            Condition("changePercent", "gte", -3.5, logical_connector="AND"),
            Condition("ma5", "gt", 0.0000012),
        ]
        for pretty in (True, False):
            result = validate_expression(conditions_to_expression(conditions, pretty=pretty))
            assert result.valid, result.to_dict()
            assert result.warnings == []

    @pytest.mark.parametrize("operator", ["gt", "gte", "lt", "lte", "eq", "neq"])
    @pytest.mark.parametrize("value", [30, 12.5, -3, "银行"])
    def test_single_condition_validates(self, operator, value):
        text = conditions_to_expression([Condition("peRatio", operator, value)])
        assert validate_expression(text).valid, text

    def test_apostrophe_in_string_is_flagged(self):
        text = conditions_to_expression([Condition("industry", "eq", "it's")])
        assert text == '行业 == "it\'s"'
        assert validate_expression(text).error_codes == ["unbalanced_quotes"]


class TestDocumentedScenarios:
    """Reference condition lists and their exact text."""

    def test_pe_and_roe(self):
        conditions = [
            Condition("peRatio", "lt", 30, logical_connector="AND"),
            Condition("roe", "gt", 10),
        ]
        text = conditions_to_expression(conditions)
        assert text == "市盈率PE < 30\nAND 净资产收益率ROE > 10"
        assert conditions_to_expression(conditions, pretty=False) == "市盈率PE < 30 AND 净资产收益率ROE > 10"
        assert validate_expression(text).valid

    def test_pe_between(self):
        text = conditions_to_expression([Condition("peRatio", "between", [10, 30])])
        assert text == "(市盈率PE >= 10 AND 市盈率PE <= 30)"


class TestFormatExpression:
    """Pretty-printing expression text."""

    def test_breaks_before_connectors(self):
        assert format_expression("价格 > 10 AND RSI < 30 OR 市值 > 5") == (
            "价格 > 10\nAND RSI < 30\nOR 市值 > 5"
        )

    def test_indents_inside_groups(self):
        lines = format_expression("(价格 > 10 AND RSI < 30 AND 市值 > 5)").split("\n")
        assert lines[0] == "(价格 > 10"
        assert lines[1] == "  AND RSI < 30"

    def test_custom_indent(self):
        lines = format_expression("(a > 1 AND b > 2 AND c > 3)", indent="\t").split("\n")
        assert lines[1] == "\tAND b > 2"
