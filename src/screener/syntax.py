"""Filter Expression Syntax Tree.

Grammar-based tokenizer and recursive descent parser for filter
expressions. Produces an explicit tree (And/Or/Not over comparisons) that
can represent precedence and negation, which the flat condition list
cannot.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union
import re
import logging

from src.screener.config import Operator, LogicalConnector
from src.screener.fields import FIELD_DICTIONARY
from src.screener.models import Condition

logger = logging.getLogger(__name__)


class ExpressionSyntaxError(Exception):
    """Expression could not be tokenized or parsed."""

    def __init__(self, message: str, position: int = 0):
        super().__init__(message)
        self.message = message
        self.position = position


# =============================================================================
# Tree Nodes
# =============================================================================

@dataclass
class FieldRef:
    name: str


@dataclass
class Literal:
    value: Any


@dataclass
class ListLiteral:
    items: list["Node"] = field(default_factory=list)


@dataclass
class Arithmetic:
    op: str
    left: "Node"
    right: "Node"


@dataclass
class Negate:
    operand: "Node"


@dataclass
class Comparison:
    op: str
    left: "Node"
    right: "Node"


@dataclass
class Membership:
    """``subject IN [items]``."""
    subject: "Node"
    items: list["Node"] = field(default_factory=list)


@dataclass
class Range:
    """``subject BETWEEN [low, high]``."""
    subject: "Node"
    low: "Node"
    high: "Node"


@dataclass
class And:
    left: "Node"
    right: "Node"


@dataclass
class Or:
    left: "Node"
    right: "Node"


@dataclass
class Not:
    operand: "Node"


Node = Union[
    FieldRef, Literal, ListLiteral, Arithmetic, Negate,
    Comparison, Membership, Range, And, Or, Not,
]


@dataclass
class Token:
    type: str
    value: Any
    position: int


@dataclass
class SyntaxIssue:
    """A tokenizer or parser error with its location."""
    message: str
    position: int
    line: int
    column: int


@dataclass
class SyntaxResult:
    tree: Optional[Node] = None
    errors: list[SyntaxIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.tree is not None and not self.errors


# =============================================================================
# Tokenizer
# =============================================================================

_IDENTIFIER = (
    r"[A-Za-z_\u4e00-\u9fff][A-Za-z0-9_\u4e00-\u9fff]*"
    r"(?:-[A-Z](?![A-Za-z0-9_]))?"  # KDJ-K style suffix
)

TOKEN_PATTERNS = [
    (r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?", "NUMBER"),
    (r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'', "STRING"),
    (_IDENTIFIER, "IDENTIFIER"),
    (r">=", "GTE"),
    (r"<=", "LTE"),
    (r"!=", "NEQ"),
    (r"==?", "EQ"),
    (r">", "GT"),
    (r"<", "LT"),
    (r"&&", "AND_SYMBOL"),
    (r"\|\|", "OR_SYMBOL"),
    (r"\+", "PLUS"),
    (r"-", "MINUS"),
    (r"\*", "MULTIPLY"),
    (r"/", "DIVIDE"),
    (r"%", "MOD"),
    (r"\(", "LPAREN"),
    (r"\)", "RPAREN"),
    (r"\[", "LBRACKET"),
    (r"\]", "RBRACKET"),
    (r",", "COMMA"),
    (r"\s+", "WHITESPACE"),
]

KEYWORDS = {"AND", "OR", "NOT", "IN", "BETWEEN", "TRUE", "FALSE"}

_COMPARISON_TOKENS = {"GT": ">", "GTE": ">=", "LT": "<", "LTE": "<=", "EQ": "==", "NEQ": "!="}

# Deepest grouping (parentheses, brackets, NOT, unary minus) accepted
MAX_NESTING = 64

_TOKEN_REGEX = re.compile(
    "|".join(f"(?P<{name}>{pattern})" for pattern, name in TOKEN_PATTERNS)
)


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


def tokenize(expression: str) -> list[Token]:
    """Tokenize an expression string.

    Raises:
        ExpressionSyntaxError: On the first character no token matches.
    """
    tokens = []
    pos = 0

    while pos < len(expression):
        match = _TOKEN_REGEX.match(expression, pos)
        if not match:
            char = expression[pos]
            if char in "\"'":
                raise ExpressionSyntaxError("Unterminated string literal", pos)
            raise ExpressionSyntaxError(f"Unknown character '{char}'", pos)

        token_type = match.lastgroup
        value: Any = match.group()

        if token_type != "WHITESPACE":
            if token_type == "NUMBER":
                value = float(value) if any(c in value for c in ".eE") else int(value)
            elif token_type == "STRING":
                value = _unquote(value)
            elif token_type == "IDENTIFIER" and value.upper() in KEYWORDS:
                token_type = value.upper()
            elif token_type == "AND_SYMBOL":
                token_type = "AND"
            elif token_type == "OR_SYMBOL":
                token_type = "OR"
            tokens.append(Token(token_type, value, pos))

        pos = match.end()

    tokens.append(Token("EOF", "", len(expression)))
    return tokens


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    """Recursive descent parser for filter expressions."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def parse(self) -> Node:
        result = self._parse_or()
        token = self._current()
        if token.type != "EOF":
            raise ExpressionSyntaxError(f"Unexpected token '{token.value}'", token.position)
        return result

    def _nested(self, parse, token: Token):
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionSyntaxError("Expression nested too deeply", token.position)
        try:
            return parse()
        finally:
            self.depth -= 1

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _consume(self, expected_type: Optional[str] = None) -> Token:
        token = self._current()
        if expected_type and token.type != expected_type:
            found = "end of expression" if token.type == "EOF" else f"'{token.value}'"
            raise ExpressionSyntaxError(f"Expected {expected_type}, found {found}", token.position)
        if token.type != "EOF":
            self.pos += 1
        return token

    def _parse_or(self) -> Node:
        left = self._parse_and()
        while self._current().type == "OR":
            self._consume()
            left = Or(left, self._parse_and())
        return left

    def _parse_and(self) -> Node:
        left = self._parse_not()
        while self._current().type == "AND":
            self._consume()
            left = And(left, self._parse_not())
        return left

    def _parse_not(self) -> Node:
        if self._current().type == "NOT":
            token = self._consume()
            return Not(self._nested(self._parse_not, token))
        return self._parse_comparison()

    def _parse_comparison(self) -> Node:
        left = self._parse_additive()
        token = self._current()

        if token.type in _COMPARISON_TOKENS:
            self._consume()
            return Comparison(_COMPARISON_TOKENS[token.type], left, self._parse_additive())

        if token.type == "IN":
            self._consume()
            return Membership(left, self._parse_list().items)

        if token.type == "BETWEEN":
            self._consume()
            bounds = self._parse_list()
            if len(bounds.items) != 2:
                raise ExpressionSyntaxError("BETWEEN expects [min, max]", token.position)
            return Range(left, bounds.items[0], bounds.items[1])

        return left

    def _parse_additive(self) -> Node:
        left = self._parse_multiplicative()
        while self._current().type in ("PLUS", "MINUS"):
            op = "+" if self._consume().type == "PLUS" else "-"
            left = Arithmetic(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> Node:
        left = self._parse_unary()
        while self._current().type in ("MULTIPLY", "DIVIDE", "MOD"):
            op = {"MULTIPLY": "*", "DIVIDE": "/", "MOD": "%"}[self._consume().type]
            left = Arithmetic(op, left, self._parse_unary())
        return left

    def _parse_unary(self) -> Node:
        if self._current().type == "MINUS":
            token = self._consume()
            return Negate(self._nested(self._parse_unary, token))
        return self._parse_primary()

    def _parse_list(self) -> ListLiteral:
        self._consume("LBRACKET")
        items = []
        if self._current().type != "RBRACKET":
            items.append(self._parse_additive())
            while self._current().type == "COMMA":
                self._consume()
                items.append(self._parse_additive())
        self._consume("RBRACKET")
        return ListLiteral(items)

    def _parse_primary(self) -> Node:
        token = self._current()

        if token.type in ("NUMBER", "STRING"):
            self._consume()
            return Literal(token.value)

        if token.type in ("TRUE", "FALSE"):
            self._consume()
            return Literal(token.type == "TRUE")

        if token.type == "IDENTIFIER":
            self._consume()
            return FieldRef(token.value)

        if token.type == "LPAREN":
            self._consume()
            expr = self._nested(self._parse_or, token)
            self._consume("RPAREN")
            return expr

        if token.type == "LBRACKET":
            return self._nested(self._parse_list, token)

        if token.type == "EOF":
            raise ExpressionSyntaxError("Unexpected end of expression", token.position)
        raise ExpressionSyntaxError(f"Unexpected token '{token.value}'", token.position)


def _locate(text: str, position: int) -> tuple[int, int]:
    line = text.count("\n", 0, position) + 1
    column = position - (text.rfind("\n", 0, position) + 1) + 1
    return line, column


def parse_tree(expression: str) -> Node:
    """Parse an expression into a tree.

    Raises:
        ExpressionSyntaxError: If the expression is not well formed.
    """
    return _Parser(tokenize(expression)).parse()


def analyze(expression: str) -> SyntaxResult:
    """Parse an expression, reporting problems instead of raising."""
    try:
        return SyntaxResult(tree=parse_tree(expression))
    except ExpressionSyntaxError as e:
        line, column = _locate(expression, e.position)
        logger.debug(f"Syntax error at {line}:{column}: {e.message}")
        return SyntaxResult(errors=[SyntaxIssue(e.message, e.position, line, column)])


# =============================================================================
# Tree Helpers
# =============================================================================

def _condition_to_node(condition: Condition) -> Node:
    subject = FieldRef(condition.field_key)
    value = condition.value
    if condition.operator == Operator.BETWEEN:
        low, high = value[0], value[1]
        return Range(subject, Literal(low), Literal(high))
    if condition.operator == Operator.IN:
        return Membership(subject, [Literal(v) for v in value])
    return Comparison(FIELD_DICTIONARY.operator_symbol(condition.operator), subject, Literal(value))


def chain_to_tree(conditions: list[Condition]) -> Optional[Node]:
    """Fold a flat condition list into a tree, strictly left to right.

    ``a OR b AND c`` becomes ``(a OR b) AND c``: the flat chain carries no
    precedence.
    """
    if not conditions:
        return None
    tree = _condition_to_node(conditions[0])
    for previous, condition in zip(conditions, conditions[1:]):
        connector = previous.logical_connector or LogicalConnector.AND
        node = _condition_to_node(condition)
        tree = Or(tree, node) if connector == LogicalConnector.OR else And(tree, node)
    return tree


def referenced_fields(tree: Optional[Node]) -> list[str]:
    """Field names in order of first appearance."""
    names: list[str] = []

    def visit(node: Any) -> None:
        if isinstance(node, FieldRef):
            if node.name not in names:
                names.append(node.name)
        elif isinstance(node, (And, Or, Arithmetic, Comparison)):
            visit(node.left)
            visit(node.right)
        elif isinstance(node, (Not, Negate)):
            visit(node.operand)
        elif isinstance(node, Membership):
            visit(node.subject)
            for item in node.items:
                visit(item)
        elif isinstance(node, Range):
            visit(node.subject)
            visit(node.low)
            visit(node.high)
        elif isinstance(node, ListLiteral):
            for item in node.items:
                visit(item)

    visit(tree)
    return names


def render(node: Node) -> str:
    """Render a tree as text with explicit parentheses around every group."""
    if isinstance(node, FieldRef):
        return node.name
    if isinstance(node, Literal):
        if isinstance(node.value, str):
            return f'"{node.value}"'
        if isinstance(node.value, bool):
            return "TRUE" if node.value else "FALSE"
        return str(node.value)
    if isinstance(node, ListLiteral):
        return "[" + ", ".join(render(i) for i in node.items) + "]"
    if isinstance(node, (Arithmetic, Comparison)):
        return f"{render(node.left)} {node.op} {render(node.right)}"
    if isinstance(node, Negate):
        return f"-{render(node.operand)}"
    if isinstance(node, Membership):
        return f"{render(node.subject)} IN [" + ", ".join(render(i) for i in node.items) + "]"
    if isinstance(node, Range):
        return f"{render(node.subject)} BETWEEN [{render(node.low)}, {render(node.high)}]"
    if isinstance(node, And):
        return f"({render(node.left)} AND {render(node.right)})"
    if isinstance(node, Or):
        return f"({render(node.left)} OR {render(node.right)})"
    if isinstance(node, Not):
        return f"NOT {render(node.operand)}"
    raise TypeError(f"Unknown node type: {type(node).__name__}")
