"""Expression Validator.

Heuristic syntax checks for user-authored filter expressions. Each check
is an independent predicate over the raw text contributing to one
diagnostic, so every problem is reported at once rather than the first
one only. No parse tree is built unless strict syntax is enabled.
"""

from typing import Optional
import re
import logging

from src.screener.config import ScreenerConfig, DEFAULT_SCREENER_CONFIG
from src.screener.models import ValidationDiagnostic
from src.screener.syntax import analyze

logger = logging.getLogger(__name__)


_CJK = "\u4e00-\u9fff"

_FIELD_TOKEN = re.compile(rf"[A-Za-z{_CJK}]+")
_OPERATOR_TOKEN = re.compile(
    r"[<>]=?|[!=]?=|(?<![A-Za-z0-9_])(?:AND|OR|NOT)(?![A-Za-z0-9_])",
    re.IGNORECASE,
)
_MALFORMED_NUMBER = re.compile(r"(?<![A-Za-z0-9_.])\d+(?:\.\d+)?[A-Za-z]+")
_LOGICAL_KEYWORD = r"(?<![A-Za-z0-9_])(?:{})(?![A-Za-z0-9_])"
_REPEATED_LOGICAL = re.compile(
    _LOGICAL_KEYWORD.format("AND|OR|NOT") + r"\s+" + _LOGICAL_KEYWORD.format("AND|OR"),
    re.IGNORECASE,
)
_DANGLING_LOGICAL = re.compile(
    r"^\s*" + _LOGICAL_KEYWORD.format("AND|OR") + r"|"
    + _LOGICAL_KEYWORD.format("AND|OR|NOT") + r"\s*$",
    re.IGNORECASE,
)
_DISALLOWED_CHAR = re.compile(rf"[^\w\s{_CJK}()\[\]<>=!&|+\-*/.,%'\"]")


class ExpressionValidator:
    """Checks filter expressions without requiring a condition list.

    Errors make ``valid`` false; warnings never do.

    Example:
        validator = ExpressionValidator()
        result = validator.validate("(价格 < 10")
        result.valid         # False
        result.error_codes   # ["unbalanced_brackets"]
    """

    def __init__(self, config: Optional[ScreenerConfig] = None):
        self.config = config or DEFAULT_SCREENER_CONFIG
        self._checks = [
            self._check_brackets,
            self._check_not_empty,
            self._check_field_present,
            self._check_operator_present,
            self._check_numbers,
            self._check_logical_operators,
            self._check_quotes,
            self._check_characters,
        ]

    def validate(self, expression: Optional[str]) -> ValidationDiagnostic:
        """Run every check against an expression.

        Args:
            expression: Expression text. ``None`` is treated as empty.

        Returns:
            ValidationDiagnostic with all errors and warnings found.
        """
        text = expression or ""
        diagnostic = ValidationDiagnostic()

        for check in self._checks:
            check(text, diagnostic)

        if self.config.strict_syntax and text.strip():
            self._check_syntax(text, diagnostic)

        if not diagnostic.valid:
            logger.debug(f"Expression rejected: {diagnostic.error_codes}")
        return diagnostic

    def _check_brackets(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        opened = text.count("(")
        closed = text.count(")")
        if opened == closed:
            return
        diagnostic.add_error(
            f"Mismatched brackets: {opened} opening, {closed} closing",
            "unbalanced_brackets",
            _first_unmatched_bracket(text),
        )

    def _check_not_empty(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        if not text.strip():
            diagnostic.add_error("Expression cannot be empty", "empty_expression")

    def _check_field_present(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        if not _FIELD_TOKEN.search(text):
            diagnostic.add_error("No field name found in expression", "missing_field")

    def _check_operator_present(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        if not _OPERATOR_TOKEN.search(text):
            diagnostic.add_warning(
                "No comparison or logical operator found", "missing_operator"
            )

    def _check_numbers(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        matches = list(_MALFORMED_NUMBER.finditer(text))
        if matches:
            tokens = ", ".join(m.group() for m in matches)
            diagnostic.add_error(
                f"Invalid number format: {tokens}", "invalid_number", matches[0].start()
            )

    def _check_logical_operators(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        match = _REPEATED_LOGICAL.search(text)
        if match:
            diagnostic.add_error(
                "Consecutive logical operators",
                "misplaced_logical_operator",
                match.start(),
            )
        # A connector at either end is a warning only
        match = _DANGLING_LOGICAL.search(text)
        if match:
            diagnostic.add_warning(
                "Logical operator at the start or end of the expression",
                "dangling_logical_operator",
                match.start(),
            )

    def _check_quotes(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        if text.count("'") % 2 or text.count('"') % 2:
            diagnostic.add_error("Unclosed quote", "unbalanced_quotes")

    def _check_characters(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        found = _DISALLOWED_CHAR.findall(text)
        if found:
            distinct = list(dict.fromkeys(found))
            diagnostic.add_warning(
                f"Contains special characters: {', '.join(distinct)}",
                "unexpected_character",
                text.index(distinct[0]),
            )

    def _check_syntax(self, text: str, diagnostic: ValidationDiagnostic) -> None:
        for issue in analyze(text).errors:
            diagnostic.add_error(
                f"Syntax error at line {issue.line}, column {issue.column}: {issue.message}",
                "syntax_error",
                issue.position,
            )


def _first_unmatched_bracket(text: str) -> Optional[int]:
    """Position of the first ')' without an opener, else the first unclosed '('."""
    open_positions = []
    for i, char in enumerate(text):
        if char == "(":
            open_positions.append(i)
        elif char == ")":
            if not open_positions:
                return i
            open_positions.pop()
    return open_positions[0] if open_positions else None


_DEFAULT_VALIDATOR = ExpressionValidator()


def validate_expression(expression: Optional[str]) -> ValidationDiagnostic:
    """Validate an expression with the default configuration."""
    return _DEFAULT_VALIDATOR.validate(expression)
