"""Bracket table validation and lookup shared by tax and contribution tables."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol, TypeVar

from nomina_engine.calculators.errors import InvalidBracketTableError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class Bracket(Protocol):
    lower_limit: Decimal
    upper_limit: Decimal | None


B = TypeVar("B", bound=Bracket)


def validate_brackets(
    brackets: Sequence[Bracket],
    table_name: str,
    max_first_lower: Decimal = CENT,
) -> None:
    """Check that a bracket table is well-formed.

    Well-formed means: non-empty, ascending, non-overlapping, gap-free (the
    next lower limit equals the previous upper limit or sits one cent above
    it), starting at or below ``max_first_lower``, and only the last row
    open-ended.

    Raises:
        InvalidBracketTableError: On the first defect found
    """
    if not brackets:
        raise InvalidBracketTableError(f"{table_name}: table has no brackets")

    if brackets[0].lower_limit > max_first_lower:
        raise InvalidBracketTableError(
            f"{table_name}: first bracket starts at {brackets[0].lower_limit}, "
            f"expected at most {max_first_lower}"
        )

    last = len(brackets) - 1
    for i, bracket in enumerate(brackets):
        if bracket.upper_limit is None:
            if i != last:
                raise InvalidBracketTableError(
                    f"{table_name}: bracket {i} is open-ended but is not the last row"
                )
        elif bracket.upper_limit < bracket.lower_limit:
            raise InvalidBracketTableError(
                f"{table_name}: bracket {i} upper limit {bracket.upper_limit} "
                f"is below its lower limit {bracket.lower_limit}"
            )

        if i == 0:
            continue

        previous_upper = brackets[i - 1].upper_limit
        assert previous_upper is not None  # only the last row may be open-ended
        step = bracket.lower_limit - previous_upper
        if step < 0:
            raise InvalidBracketTableError(
                f"{table_name}: bracket {i} overlaps bracket {i - 1} "
                f"({bracket.lower_limit} < {previous_upper})"
            )
        if step > CENT:
            raise InvalidBracketTableError(
                f"{table_name}: gap between bracket {i - 1} and {i} "
                f"({previous_upper} .. {bracket.lower_limit})"
            )

    if brackets[last].upper_limit is not None:
        raise InvalidBracketTableError(
            f"{table_name}: missing open-ended terminal bracket"
        )


def find_bracket(value: Decimal, brackets: Sequence[B], table_name: str) -> B:
    """Locate the unique bracket containing ``value``.

    A value with lower <= value <= upper (or an open-ended upper) matches.
    Fractions of a cent that fall between one bracket's upper limit and the
    next lower limit belong to the lower bracket.

    Raises:
        InvalidBracketTableError: If no bracket covers the value
    """
    for i, bracket in enumerate(brackets):
        if bracket.lower_limit > value:
            break
        if bracket.upper_limit is None or value <= bracket.upper_limit:
            logger.debug("%s: %s falls in bracket %d", table_name, value, i)
            return bracket
        if i + 1 < len(brackets) and value < brackets[i + 1].lower_limit:
            logger.debug("%s: %s falls in the boundary gap after bracket %d", table_name, value, i)
            return bracket

    raise InvalidBracketTableError(f"{table_name}: no bracket covers {value}")
