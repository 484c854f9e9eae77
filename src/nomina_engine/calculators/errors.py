"""Error taxonomy for the calculation engine.

Two families, so callers can tell who has to fix the problem:

- InputError: the caller passed bad facts (dates, amounts, formulas).
- ConfigurationError: the owning system supplied a malformed table.
"""

from __future__ import annotations

from collections.abc import Iterable


class NominaEngineError(Exception):
    """Base class for every error raised by the engine."""

    kind = "engine_error"


class InputError(NominaEngineError):
    """Raised when caller-supplied facts are invalid."""

    kind = "input_error"


class ConfigurationError(NominaEngineError):
    """Raised when externally owned configuration is malformed."""

    kind = "configuration_error"


class InvalidInputError(InputError):
    """Raised for invalid dates, negative amounts and similar facts."""

    kind = "invalid_input"


class InvalidBracketTableError(ConfigurationError):
    """Raised when a bracket or rate table is not well-formed."""

    kind = "invalid_bracket_table"


class FormulaError(InputError):
    """Base class for formula evaluation errors."""

    kind = "formula_error"


class ParseError(FormulaError):
    """Raised when a formula cannot be tokenized or parsed."""

    kind = "parse_error"

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} at position {position}")


class UnknownVariableError(FormulaError):
    """Raised when a formula references identifiers missing from the context."""

    kind = "unknown_variable"

    def __init__(self, names: Iterable[str]):
        self.names = tuple(names)
        super().__init__(f"Unknown formula variable(s): {', '.join(self.names)}")


class DivisionByZeroError(FormulaError):
    """Raised when a formula divides by zero."""

    kind = "division_by_zero"

    def __init__(self, position: int):
        self.position = position
        super().__init__(f"Division by zero at position {position}")
