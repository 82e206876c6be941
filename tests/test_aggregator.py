"""Tests for the filter aggregator editing session."""

import logging

import pytest

from src.screener import (
    EXPRESSION_EXAMPLES,
    Condition,
    EditMode,
    FilterAggregator,
    FilterSpec,
    LogicalConnector,
    Operator,
    RSIConfig,
    ScreenerConfig,
)


@pytest.fixture
def agg():
    return FilterAggregator(session_id="test-session")


class TestFacets:
    """Facet merging."""

    def test_fresh_session(self, agg):
        assert agg.mode == EditMode.STRUCTURED
        assert not agg.has_any_filter()
        assert agg.build_request() == {"mode": "structured"}

    def test_set_basic_merges(self, agg):
        agg.set_basic(markets=["SH_MAIN"], price_min=5)
        agg.set_basic(price_max=50)
        assert agg.spec.basic.markets == ["SH_MAIN"]
        assert agg.spec.basic.price_min == 5
        assert agg.spec.basic.price_max == 50
        assert agg.has_any_filter()

    def test_set_technical_accepts_dicts(self, agg):
        agg.set_technical(rsi={"enabled": True, "condition": "oversold"}, volatility="high")
        assert isinstance(agg.spec.technical.rsi, RSIConfig)
        assert agg.spec.technical.rsi.enabled

    def test_set_fundamental(self, agg):
        agg.set_fundamental(roe_min=15)
        assert agg.build_request() == {"mode": "structured", "fundamental": {"roe_min": 15}}

    def test_unknown_facet_field(self, agg):
        with pytest.raises(TypeError):
            agg.set_basic(colour="red")

    def test_sessions_do_not_share_state(self):
        a, b = FilterAggregator(), FilterAggregator()
        a.add_condition("price", "gt", 10)
        a.set_basic(markets=["STAR"])
        assert b.conditions == []
        assert b.spec.basic.markets == []
        assert a.session_id != b.session_id


class TestConditions:
    """Custom condition list editing."""

    def test_add_sets_label(self, agg):
        condition_id = agg.add_condition("peRatio", "lt", 30)
        condition = agg.get_condition(condition_id)
        assert condition.field_label == "市盈率PE"
        assert condition.operator == Operator.LT

    def test_update_refreshes_label(self, agg):
        condition_id = agg.add_condition("peRatio", "lt", 30)
        assert agg.update_condition(condition_id, field_key="roe", operator="gt", value=15)
        condition = agg.get_condition(condition_id)
        assert condition.field_label == "净资产收益率ROE"
        assert (condition.operator, condition.value) == (Operator.GT, 15)

    def test_update_connector(self, agg):
        condition_id = agg.add_condition("price", "gt", 10)
        agg.update_condition(condition_id, logical_connector="or")
        assert agg.get_condition(condition_id).logical_connector == LogicalConnector.OR
        agg.update_condition(condition_id, logical_connector=None)
        assert agg.get_condition(condition_id).logical_connector is None

    def test_unknown_id(self, agg, caplog):
        with caplog.at_level(logging.WARNING, logger="src.screener.aggregator"):
            assert not agg.update_condition("missing", value=1)
            assert not agg.remove_condition("missing")
        assert "Condition not found: missing" in caplog.text

    def test_remove_keeps_predecessor_connector(self, agg):
        first = agg.add_condition("price", "gt", 10, logical_connector="OR")
        middle = agg.add_condition("roe", "gt", 5, logical_connector="AND")
        agg.add_condition("marketCap", "lt", 100)

        assert agg.remove_condition(middle)
        assert agg.get_condition(first).logical_connector == LogicalConnector.OR
        assert agg.sync_expression_from_rules(pretty=False) == "价格 > 10 OR 市值 < 100"

    def test_clear(self, agg):
        agg.add_condition("price", "gt", 10)
        agg.clear_conditions()
        assert agg.conditions == []


class TestExpressionAndMode:
    """Expression editing and the structured/advanced switch."""

    def test_advanced_keeps_facets(self, agg):
        agg.set_basic(markets=["STAR"])
        agg.add_condition("price", "gt", 10)
        agg.set_expression("RSI < 30")

        assert agg.toggle_advanced_mode(True) == EditMode.ADVANCED
        assert agg.is_advanced
        assert agg.spec.basic.markets == ["STAR"]
        assert len(agg.conditions) == 1
        assert agg.build_request() == {"mode": "advanced", "expression": "RSI < 30"}

    def test_leaving_advanced_clears_expression(self, agg):
        agg.set_basic(markets=["STAR"])
        agg.toggle_advanced_mode(True)
        agg.set_expression("RSI < 30")

        agg.toggle_advanced_mode(False)
        assert agg.mode == EditMode.STRUCTURED
        assert agg.spec.expression == ""
        assert agg.build_request() == {"mode": "structured", "basic": {"markets": ["STAR"]}}

    def test_set_expression_leaves_conditions(self, agg):
        agg.add_condition("price", "gt", 10)
        agg.set_expression("RSI < 30")
        assert len(agg.conditions) == 1

    def test_whitespace_expression_is_not_a_filter(self, agg):
        agg.set_expression("   ")
        assert not agg.has_any_filter()
        assert agg.build_request()["mode"] == "structured"

    def test_sync_expression_from_rules(self, agg):
        agg.add_condition("price", "gt", 10, logical_connector="AND")
        agg.add_condition("peRatio", "lt", 30)
        assert agg.sync_expression_from_rules() == "价格 > 10\nAND 市盈率PE < 30"
        assert agg.spec.expression == "价格 > 10\nAND 市盈率PE < 30"

    def test_sync_uses_config(self):
        agg = FilterAggregator(config=ScreenerConfig(pretty_print=False))
        agg.add_condition("price", "gt", 10)
        agg.add_condition("rsi", "lt", 30)
        assert agg.sync_expression_from_rules() == "价格 > 10 AND RSI < 30"

    def test_import_rules_from_expression(self, agg):
        agg.add_condition("roe", "gt", 1)
        agg.set_expression("价格 > 10 AND NOT 市值 > 5")
        report = agg.import_rules_from_expression()

        assert [c.field_key for c in agg.conditions] == ["price"]
        assert report.unparsed == ["NOT 市值 > 5"]

    def test_insert_example_by_name(self, agg):
        assert agg.insert_example("RSI超卖") == EXPRESSION_EXAMPLES["RSI超卖"]

    def test_insert_example_appends(self, agg):
        agg.set_expression("价格 > 10")
        agg.insert_example("市值 < 100")
        assert agg.spec.expression == "价格 > 10\nAND 市值 < 100"
        assert agg.validate_expression().valid

    def test_validate_expression(self, agg):
        agg.set_expression("(价格 > 10")
        assert agg.validate_expression().error_codes == ["unbalanced_brackets"]


class TestValidateFilters:
    """Facet range and condition shape checks."""

    def test_clean(self, agg):
        agg.set_basic(price_min=1, price_max=5)
        agg.add_condition("marketCap", "between", [1, 5])
        assert agg.validate_filters() == (True, [])

    def test_range_and_condition_errors(self, agg):
        agg.set_basic(price_min=10, price_max=5)
        agg.set_fundamental(pb_min=3, pb_max=1)
        agg.add_condition("price", "gt", 1)
        agg.add_condition("marketCap", "between", [1])

        valid, errors = agg.validate_filters()
        assert not valid
        assert errors == [
            "Price range: minimum 10 is greater than maximum 5",
            "P/B range: minimum 3 is greater than maximum 1",
            "Condition 2: 'between' requires a [min, max] pair",
        ]


class TestPersistence:
    """Reset, load and JSON round trip."""

    def test_json_round_trip(self, agg):
        agg.set_basic(markets=["STAR"], price_min=5)
        agg.set_technical(macd={"enabled": True, "condition": "death_cross"})
        agg.add_condition("peRatio", "lt", 30)

        restored = FilterAggregator()
        assert restored.load_json(agg.to_json())
        assert restored.spec.to_dict() == agg.spec.to_dict()
        assert restored.mode == EditMode.STRUCTURED

    def test_load_json_with_expression_enters_advanced(self):
        agg = FilterAggregator()
        assert agg.load_json('{"expression": "RSI < 30"}')
        assert agg.is_advanced

    @pytest.mark.parametrize("payload", [
        '{"expression": 5}',
        '{"basic": "x"}',
        '{"technical": 5}',
        '{"custom_rules": {"field_key": "price"}}',
        '{"basic": {"price_min": "abc"}}',
    ])
    def test_mistyped_sections_rejected(self, agg, payload, caplog):
        agg.set_expression("RSI < 30")
        with caplog.at_level(logging.ERROR, logger="src.screener.aggregator"):
            assert agg.load_json(payload) is False
        assert agg.spec.expression == "RSI < 30"
        assert "Failed to load filters" in caplog.text

    def test_bad_json_leaves_state(self, agg, caplog):
        agg.add_condition("price", "gt", 10)
        with caplog.at_level(logging.ERROR, logger="src.screener.aggregator"):
            assert not agg.load_json("{broken")
        assert len(agg.conditions) == 1
        assert "Failed to load filters" in caplog.text

    def test_reset(self, agg):
        agg.set_basic(markets=["STAR"])
        agg.set_expression("RSI < 30")
        agg.toggle_advanced_mode(True)
        agg.reset()
        assert not agg.has_any_filter()
        assert agg.mode == EditMode.STRUCTURED

    def test_load(self, agg):
        spec = FilterSpec(custom_rules=[Condition("price", "gt", 1)])
        agg.load(spec)
        assert agg.spec is spec
        assert agg.build_request()["custom_rules"][0]["field_key"] == "price"
