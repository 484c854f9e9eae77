"""Formula evaluation for configurable payroll concepts.

Formulas are arithmetic over named variables, e.g.::

    SALARIO_DIARIO * DIAS_VACACIONES * 25%
    MIN(SALARIO_DIARIO, 3 * UMA_DIARIA)

Pipeline: tokenizer -> recursive-descent parser -> immutable AST ->
Decimal evaluator. Nothing is ever passed to ``eval``; the only names a
formula can reach are the context variables and a fixed set of functions.

Grammar:
    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | primary
    primary    := NUMBER ["%"] | IDENT | FUNC "(" args ")" | "(" expression ")"
    args       := expression ("," expression)*
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Any, Union

from nomina_engine.calculators.errors import (
    DivisionByZeroError,
    InvalidInputError,
    ParseError,
    UnknownVariableError,
)
from nomina_engine.calculators.types import FormulaPreview

logger = logging.getLogger(__name__)

# Fixed arithmetic context so results never depend on the caller's context.
FORMULA_CONTEXT = Context(
    prec=28,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

_OPERATOR_ALIASES = {"×": "*", "÷": "/"}
_OPERATORS = "+-*/"

# Bounds keep parsing and evaluation within the interpreter stack.
MAX_TOKENS = 512
MAX_NESTING = 64


# ============================================================================
# Tokens
# ============================================================================


@dataclass(frozen=True)
class Token:
    kind: str  # NUMBER, PERCENT, IDENT, OP, LPAREN, RPAREN, COMMA, END
    text: str
    position: int


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def tokenize(formula: str) -> list[Token]:
    """Split a formula into tokens, always ending with an END token.

    Raises:
        ParseError: On a character that cannot start any token
    """
    tokens: list[Token] = []
    i = 0
    length = len(formula)

    while i < length:
        char = formula[i]

        if char.isspace():
            i += 1
            continue

        if _is_digit(char) or (char == "." and i + 1 < length and _is_digit(formula[i + 1])):
            start = i
            while i < length and _is_digit(formula[i]):
                i += 1
            if i < length and formula[i] == ".":
                i += 1
                if i >= length or not _is_digit(formula[i]):
                    raise ParseError("Malformed number", start)
                while i < length and _is_digit(formula[i]):
                    i += 1
            text = formula[start:i]
            if i < length and formula[i] == "%":
                i += 1
                tokens.append(Token("PERCENT", text, start))
            else:
                tokens.append(Token("NUMBER", text, start))
            continue

        if char.isalpha() or char == "_":
            start = i
            while i < length and (formula[i].isalnum() or formula[i] == "_"):
                i += 1
            tokens.append(Token("IDENT", formula[start:i], start))
            continue

        if char in _OPERATORS or char in _OPERATOR_ALIASES:
            tokens.append(Token("OP", _OPERATOR_ALIASES.get(char, char), i))
        elif char == "(":
            tokens.append(Token("LPAREN", char, i))
        elif char == ")":
            tokens.append(Token("RPAREN", char, i))
        elif char == ",":
            tokens.append(Token("COMMA", char, i))
        else:
            raise ParseError(f"Unexpected character {char!r}", i)
        i += 1

    tokens.append(Token("END", "", length))
    return tokens


# ============================================================================
# AST
# ============================================================================


@dataclass(frozen=True)
class Number:
    value: Decimal
    position: int


@dataclass(frozen=True)
class Variable:
    name: str
    position: int


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node
    position: int


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node
    position: int


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple[Node, ...]
    position: int


Node = Union[Number, Variable, UnaryOp, BinaryOp, Call]


def _round(value: Decimal, digits: Decimal = Decimal("0")) -> Decimal:
    if digits != digits.to_integral_value():
        raise InvalidInputError(f"ROUND digits must be an integer, got {digits}")
    try:
        return value.quantize(Decimal(1).scaleb(-int(digits)), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError(
            f"ROUND({value}, {digits}) exceeds {FORMULA_CONTEXT.prec} significant digits"
        ) from None


# name -> (min args, max args or None, implementation)
FUNCTIONS: dict[str, tuple[int, int | None, Callable[..., Decimal]]] = {
    "MIN": (1, None, lambda *args: min(args)),
    "MAX": (1, None, lambda *args: max(args)),
    "ABS": (1, 1, lambda x: abs(x)),
    "ROUND": (1, 2, _round),
    "CEIL": (1, 1, lambda x: x.to_integral_value(rounding=ROUND_CEILING)),
    "FLOOR": (1, 1, lambda x: x.to_integral_value(rounding=ROUND_FLOOR)),
}


# ============================================================================
# Parser
# ============================================================================


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token]):
        if len(tokens) > MAX_TOKENS:
            raise ParseError(
                f"Formula is too long ({len(tokens) - 1} tokens, at most {MAX_TOKENS - 1})",
                tokens[MAX_TOKENS - 1].position,
            )
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def parse(self) -> Node:
        if self.current.kind == "END":
            raise ParseError("Empty formula", self.current.position)
        node = self._expression()
        if self.current.kind == "RPAREN":
            raise ParseError("Unbalanced parenthesis", self.current.position)
        if self.current.kind != "END":
            raise ParseError(f"Unexpected token {self.current.text!r}", self.current.position)
        return node

    def _expression(self) -> Node:
        node = self._term()
        while self.current.kind == "OP" and self.current.text in "+-":
            op = self._advance()
            node = BinaryOp(op.text, node, self._term(), op.position)
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self.current.kind == "OP" and self.current.text in "*/":
            op = self._advance()
            node = BinaryOp(op.text, node, self._unary(), op.position)
        return node

    def _unary(self) -> Node:
        # Every nested construct (parentheses, call arguments, signs) passes here.
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ParseError(f"Formula nested deeper than {MAX_NESTING} levels", self.current.position)
        try:
            if self.current.kind == "OP" and self.current.text in "+-":
                op = self._advance()
                return UnaryOp(op.text, self._unary(), op.position)
            return self._primary()
        finally:
            self.depth -= 1

    def _primary(self) -> Node:
        token = self.current

        if token.kind == "NUMBER":
            self._advance()
            return Number(Decimal(token.text), token.position)

        if token.kind == "PERCENT":
            self._advance()
            return Number(Decimal(token.text) / 100, token.position)

        if token.kind == "IDENT":
            self._advance()
            if self.current.kind == "LPAREN":
                return self._call(token)
            if token.text != token.text.upper():
                raise ParseError(f"Identifier {token.text!r} must be uppercase", token.position)
            return Variable(token.text, token.position)

        if token.kind == "LPAREN":
            self._advance()
            node = self._expression()
            if self.current.kind != "RPAREN":
                raise ParseError("Unbalanced parenthesis", token.position)
            self._advance()
            return node

        if token.kind == "END":
            raise ParseError("Unexpected end of formula", token.position)
        raise ParseError(f"Unexpected token {token.text!r}", token.position)

    def _call(self, name_token: Token) -> Node:
        name = name_token.text.upper()
        if name not in FUNCTIONS:
            raise ParseError(f"Unknown function {name_token.text!r}", name_token.position)

        open_paren = self._advance()
        args: list[Node] = []
        if self.current.kind != "RPAREN":
            args.append(self._expression())
            while self.current.kind == "COMMA":
                self._advance()
                args.append(self._expression())
        if self.current.kind != "RPAREN":
            if self.current.kind == "END":
                raise ParseError("Unbalanced parenthesis", open_paren.position)
            raise ParseError(f"Unexpected token {self.current.text!r}", self.current.position)
        self._advance()

        min_args, max_args, _ = FUNCTIONS[name]
        if len(args) < min_args or (max_args is not None and len(args) > max_args):
            raise ParseError(
                f"{name} takes {min_args}"
                + ("" if max_args == min_args else f" to {max_args or 'any'}")
                + f" argument(s), got {len(args)}",
                name_token.position,
            )
        return Call(name, tuple(args), name_token.position)


# ============================================================================
# Evaluation
# ============================================================================


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """Convert a context value to Decimal without binary float artifacts."""
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number, got a boolean")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise InvalidInputError(f"{name} is not a number: {value!r}")
    else:
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    if not result.is_finite():
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class Expression:
    """A parsed formula."""

    source: str
    root: Node

    @property
    def variables(self) -> tuple[str, ...]:
        """Referenced identifiers, unique, in order of first appearance."""
        seen: dict[str, None] = {}
        stack: list[Node] = [self.root]
        ordered: list[Variable] = []
        while stack:
            node = stack.pop()
            if isinstance(node, Variable):
                ordered.append(node)
            elif isinstance(node, UnaryOp):
                stack.append(node.operand)
            elif isinstance(node, BinaryOp):
                stack.extend((node.left, node.right))
            elif isinstance(node, Call):
                stack.extend(node.args)
        for var in sorted(ordered, key=lambda v: v.position):
            seen.setdefault(var.name, None)
        return tuple(seen)

    def evaluate(self, context: Mapping[str, Any]) -> Decimal:
        """Evaluate against a complete context.

        Raises:
            UnknownVariableError: Naming every identifier missing from context
            DivisionByZeroError: When a divisor evaluates to zero
            InvalidInputError: When a result leaves the decimal range
        """
        missing = [name for name in self.variables if name not in context]
        if missing:
            raise UnknownVariableError(missing)

        values = {name: to_decimal(context[name], name) for name in self.variables}
        with localcontext(FORMULA_CONTEXT):
            try:
                return self._eval(self.root, values)
            except (InvalidOperation, Overflow):
                raise InvalidInputError(
                    f"Formula {self.source!r} leaves the representable decimal range"
                ) from None

    def _eval(self, node: Node, values: dict[str, Decimal]) -> Decimal:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, Variable):
            return values[node.name]
        if isinstance(node, UnaryOp):
            operand = self._eval(node.operand, values)
            return -operand if node.op == "-" else +operand
        if isinstance(node, BinaryOp):
            left = self._eval(node.left, values)
            right = self._eval(node.right, values)
            if node.op == "+":
                return left + right
            if node.op == "-":
                return left - right
            if node.op == "*":
                return left * right
            if right == 0:
                raise DivisionByZeroError(node.position)
            return left / right
        _, _, impl = FUNCTIONS[node.name]
        return impl(*(self._eval(arg, values) for arg in node.args))


class FormulaEvaluator:
    """Parses and evaluates payroll formulas.

    Stateless: the same (formula, context) always yields the same result or
    the same error.
    """

    def parse(self, formula: str) -> Expression:
        """Parse a formula into an expression tree.

        Raises:
            ParseError: With the offending position
        """
        root = _Parser(tokenize(formula)).parse()
        return Expression(source=formula, root=root)

    def variables(self, formula: str) -> tuple[str, ...]:
        """Identifiers referenced by a formula."""
        return self.parse(formula).variables

    def evaluate(self, formula: str, context: Mapping[str, Any]) -> Decimal:
        """Evaluate a formula against named variables."""
        result = self.parse(formula).evaluate(context)
        logger.debug("Evaluated %r -> %s", formula, result)
        return result

    def preview(self, formula: str, partial_context: Mapping[str, Any]) -> FormulaPreview:
        """Substitute known variables for display.

        Never raises for missing identifiers; they are listed instead. Only
        characters the tokenizer cannot read raise ParseError.
        """
        tokens = tokenize(formula)
        parts: list[str] = []
        missing: dict[str, None] = {}
        cursor = 0

        for index, token in enumerate(tokens):
            if token.kind != "IDENT":
                continue
            if tokens[index + 1].kind == "LPAREN":
                continue  # function name
            parts.append(formula[cursor:token.position])
            if token.text in partial_context:
                parts.append(str(to_decimal(partial_context[token.text], token.text)))
            else:
                parts.append(token.text)
                missing.setdefault(token.text, None)
            cursor = token.position + len(token.text)

        parts.append(formula[cursor:])
        return FormulaPreview(substituted="".join(parts), missing=tuple(missing))


_default_evaluator = FormulaEvaluator()


def evaluate(formula: str, context: Mapping[str, Any]) -> Decimal:
    """Evaluate a formula with the default evaluator."""
    return _default_evaluator.evaluate(formula, context)


def preview(formula: str, partial_context: Mapping[str, Any]) -> FormulaPreview:
    """Preview a formula with the default evaluator."""
    return _default_evaluator.preview(formula, partial_context)
