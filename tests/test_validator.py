"""Tests for heuristic expression validation."""

import pytest

from src.screener import (
    EXPRESSION_EXAMPLES,
    ExpressionValidator,
    ScreenerConfig,
    validate_expression,
)


class TestBrackets:
    """Bracket balance check."""

    def test_unclosed(self):
        result = validate_expression("(价格 < 10")
        assert not result.valid
        assert result.error_codes == ["unbalanced_brackets"]
        assert result.errors[0].message == "Mismatched brackets: 1 opening, 0 closing"
        assert result.errors[0].position == 0

    def test_unopened(self):
        text = "价格 > 10)"
        result = validate_expression(text)
        assert result.error_codes == ["unbalanced_brackets"]
        assert result.errors[0].position == text.index(")")

    def test_balanced(self):
        assert validate_expression("((价格 > 10) AND (RSI < 30))").valid


class TestEmptyAndField:
    """Empty input and missing field name."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_empty(self, text):
        result = validate_expression(text)
        assert not result.valid
        assert result.error_codes == ["empty_expression", "missing_field"]

    def test_no_field(self):
        result = validate_expression("10 > 5")
        assert result.error_codes == ["missing_field"]

    def test_cjk_field_counts(self):
        assert validate_expression("市值 > 5").valid


class TestOperatorWarning:
    """Missing operator is advisory only."""

    def test_bare_field(self):
        result = validate_expression("价格")
        assert result.valid
        assert result.warning_codes == ["missing_operator"]

    def test_single_equals_counts(self):
        assert validate_expression("行业 = 银行").warning_codes == []

    def test_keyword_counts(self):
        assert validate_expression("NOT 价格").warning_codes == []

    @pytest.mark.parametrize("text", ["价格 ! 10", "价格 !10"])
    def test_lone_bang_is_not_an_operator(self, text):
        result = validate_expression(text)
        assert result.valid
        assert result.warning_codes == ["missing_operator"]

    @pytest.mark.parametrize("text", ["价格 != 10", "价格 == 10", "价格 >= 10", "价格 < 10"])
    def test_comparison_symbols_count(self, text):
        assert validate_expression(text).warning_codes == []


class TestNumbers:
    """Malformed numeric literals."""

    def test_digits_followed_by_letters(self):
        result = validate_expression("价格 > 10x AND 市值 < 5e")
        assert result.error_codes == ["invalid_number"]
        assert "10x, 5e" in result.errors[0].message

    def test_identifiers_with_digits_allowed(self):
        assert validate_expression("MA5 > MA20 AND ma5Cross > 1").valid

    def test_decimal(self):
        assert validate_expression("价格 > 10.5").valid


class TestLogicalOperators:
    """Successive or dangling logical keywords."""

    @pytest.mark.parametrize("text", [
        "价格 > 10 AND AND 市值 > 5",
        "价格 > 10 AND OR 市值 > 5",
        "价格 > 10 AND NOT AND 市值 > 5",
        "价格 > 10 and or 市值 > 5",
    ])
    def test_successive(self, text):
        assert "misplaced_logical_operator" in validate_expression(text).error_codes

    @pytest.mark.parametrize("text", [
        "AND 价格 > 10",
        "价格 > 10 OR",
        "RSI < 30 AND",
        "价格 > 10 AND NOT",
    ])
    def test_dangling_is_warning(self, text):
        result = validate_expression(text)
        assert result.valid
        assert result.warning_codes == ["dangling_logical_operator"]

    @pytest.mark.parametrize("text", [
        "价格 > 10 AND NOT 市值 > 5",
        "NOT 价格 > 10",
        "ORDER > 5 AND BRAND < 3",
    ])
    def test_allowed(self, text):
        assert validate_expression(text).valid


class TestQuotes:
    """Quote balance."""

    def test_unclosed_double(self):
        assert validate_expression('行业 == "银行').error_codes == ["unbalanced_quotes"]

    def test_unclosed_single(self):
        assert validate_expression("行业 == '银行").error_codes == ["unbalanced_quotes"]

    def test_balanced(self):
        assert validate_expression('行业 == "银行" AND 市场 IN ["STAR"]').valid


class TestCharacters:
    """Unexpected character warning."""

    def test_listed_in_first_seen_order(self):
        result = validate_expression("价格 > 10 @ 市值 > 5 # x @")
        assert result.valid
        assert result.warning_codes == ["unexpected_character"]
        assert result.warnings[0].message == "Contains special characters: @, #"

    def test_allowed_punctuation(self):
        result = validate_expression("(成交量 > MA5成交量 * 2) AND 涨跌幅 % 2 != 0")
        assert result.warnings == []


class TestDiagnostic:
    """Multi-issue reporting and configuration."""

    def test_all_issues_reported(self):
        result = validate_expression("(价格 > 10x AND AND 行业 == \"银行")
        assert result.error_codes == [
            "unbalanced_brackets",
            "invalid_number",
            "misplaced_logical_operator",
            "unbalanced_quotes",
        ]

    def test_examples_are_valid(self):
        for name, expression in EXPRESSION_EXAMPLES.items():
            assert validate_expression(expression).valid, name

    def test_heuristics_miss_grammar_errors(self):
        assert validate_expression("价格 > > 10").valid

    def test_strict_syntax(self):
        validator = ExpressionValidator(ScreenerConfig(strict_syntax=True))
        result = validator.validate("价格 > > 10")
        assert result.error_codes == ["syntax_error"]
        assert "line 1, column 6" in result.errors[0].message

    def test_strict_syntax_accepts_valid(self):
        validator = ExpressionValidator(ScreenerConfig(strict_syntax=True))
        assert validator.validate("价格 > 10 AND 市场 IN [\"STAR\"]").valid

    def test_never_raises(self):
        for text in ["((((", "\"'\"", "AND OR NOT", "≥≤≠", "价格 >= [1, 2"]:
            validate_expression(text)

    def test_strict_syntax_deep_nesting(self):
        validator = ExpressionValidator(ScreenerConfig(strict_syntax=True))
        text = "(" * 1500 + "价格 > 1" + ")" * 1500
        result = validator.validate(text)
        assert result.error_codes == ["syntax_error"]
        assert "nested too deeply" in result.errors[0].message

    def test_strict_syntax_deep_negation(self):
        validator = ExpressionValidator(ScreenerConfig(strict_syntax=True))
        result = validator.validate("NOT " * 1500 + "价格 > 1")
        assert result.error_codes == ["syntax_error"]


class TestDocumentedScenarios:
    """Reference inputs and their expected diagnostics."""

    def test_serialized_pair_is_valid(self):
        assert validate_expression("市盈率PE < 30\nAND 净资产收益率ROE > 10").valid

    def test_missing_close_paren(self):
        result = validate_expression("(价格 < 10")
        assert not result.valid
        assert "1 opening, 0 closing" in result.errors[0].message

    def test_empty(self):
        result = validate_expression("")
        assert not result.valid
        assert result.errors[0].message == "Expression cannot be empty"

    def test_malformed_number_listed(self):
        result = validate_expression("10x AND RSI < 30")
        assert not result.valid
        assert result.error_codes == ["invalid_number"]
        assert "10x" in result.errors[0].message

    def test_unknown_symbol_warns_only(self):
        result = validate_expression("价格 > 10 @@")
        assert result.valid
        assert result.errors == []
        assert result.warning_codes == ["unexpected_character"]
        assert result.warnings[0].message == "Contains special characters: @"
