"""Settlement line item builder with cent rounding and subtotals."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from nomina_engine.calculators.errors import InvalidInputError
from nomina_engine.calculators.types import (
    ConceptKind,
    SettlementBreakdown,
    SettlementLineItem,
)


def require_finite(value: Decimal | int, name: str) -> None:
    """Reject NaN and infinities before any comparison or rounding touches them."""
    if not Decimal(value).is_finite():
        raise InvalidInputError(f"{name} must be a finite number, got {value}")


class LineItemBuilder:
    """Builds settlement line items.

    Sign conventions (non-negotiable):
    - Every amount is stored non-negative.
    - The item kind carries the sign: EARNING adds, DEDUCTION subtracts.

    Rounding:
    - MXN to 2 decimals on every item
    - Internal compute at full Decimal precision
    - Totals are sums of already rounded items, so they never drift
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (centavos)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def money(amount: Decimal) -> str:
        """Format an amount for calculation traces."""
        return f"{LineItemBuilder.round_to_cents(amount):.2f}"

    @staticmethod
    def create_earning_item(
        concept: str,
        amount: Decimal,
        description: str,
        calculation_trace: str,
    ) -> SettlementLineItem:
        """Create an earning item, floored at zero."""
        return SettlementLineItem(
            concept=concept,
            description=description,
            calculation_trace=calculation_trace,
            amount=LineItemBuilder.round_to_cents(max(amount, Decimal("0"))),
            kind=ConceptKind.EARNING,
        )

    @staticmethod
    def create_deduction_item(
        concept: str,
        amount: Decimal,
        description: str = "",
        calculation_trace: str = "",
    ) -> SettlementLineItem:
        """Create a deduction item (stored positive, subtracted from the total)."""
        rounded = LineItemBuilder.round_to_cents(amount)
        return SettlementLineItem(
            concept=concept,
            description=description,
            calculation_trace=calculation_trace or LineItemBuilder.money(rounded),
            amount=rounded,
            kind=ConceptKind.DEDUCTION,
        )

    @staticmethod
    def breakdown(items: Iterable[SettlementLineItem]) -> SettlementBreakdown:
        """Subtotal items by kind.

        EARNINGS = Σ(EARNING), DEDUCTIONS = Σ(DEDUCTION)
        """
        earnings = Decimal("0")
        deductions = Decimal("0")
        for item in items:
            if item.kind == ConceptKind.EARNING:
                earnings += item.amount
            else:
                deductions += item.amount
        return SettlementBreakdown(
            subtotal_earnings=LineItemBuilder.round_to_cents(earnings),
            subtotal_deductions=LineItemBuilder.round_to_cents(deductions),
        )

    @staticmethod
    def total(breakdown: SettlementBreakdown) -> Decimal:
        """TOTAL = EARNINGS − DEDUCTIONS"""
        return LineItemBuilder.round_to_cents(
            breakdown.subtotal_earnings - breakdown.subtotal_deductions
        )
