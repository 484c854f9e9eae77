"""ISR withholding using SAT bracket tables and the employment subsidy."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from nomina_engine.calculators.brackets import CENT, find_bracket, validate_brackets
from nomina_engine.calculators.errors import InvalidBracketTableError, InvalidInputError
from nomina_engine.calculators.line_builder import require_finite
from nomina_engine.calculators.types import (
    Periodicity,
    SubsidyBracket,
    SubsidyTable,
    TaxResult,
    TaxTable,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_tax_table(table: TaxTable) -> None:
    """Check an ISR table for shape and sane quotas/rates.

    Raises:
        InvalidBracketTableError: On any defect
    """
    name = f"ISR table ({table.periodicity.value})"
    validate_brackets(table.brackets, name)
    for i, bracket in enumerate(table.brackets):
        if bracket.fixed_quota < 0:
            raise InvalidBracketTableError(f"{name}: bracket {i} has negative fixed quota")
        if not 0 <= bracket.marginal_rate_percent <= 100:
            raise InvalidBracketTableError(
                f"{name}: bracket {i} rate {bracket.marginal_rate_percent}% is outside 0-100"
            )


def validate_subsidy_table(table: SubsidyTable) -> None:
    """Check a subsidy table: bracket shape, non-increasing amounts, zero at the top.

    Raises:
        InvalidBracketTableError: On any defect
    """
    name = f"Subsidy table ({table.periodicity.value})"
    validate_brackets(table.brackets, name)
    previous: Decimal | None = None
    for i, bracket in enumerate(table.brackets):
        if bracket.subsidy_amount < 0:
            raise InvalidBracketTableError(f"{name}: bracket {i} has negative subsidy")
        if previous is not None and bracket.subsidy_amount > previous:
            raise InvalidBracketTableError(
                f"{name}: subsidy increases at bracket {i} ({previous} -> {bracket.subsidy_amount})"
            )
        previous = bracket.subsidy_amount
    if table.brackets[-1].subsidy_amount != 0:
        raise InvalidBracketTableError(f"{name}: top bracket must yield no subsidy")


def flat_subsidy_table(periodicity: Periodicity, income_limit: Decimal, amount: Decimal) -> SubsidyTable:
    """Build the flat subsidy in force since 2025 as a two-row table.

    Income up to ``income_limit`` receives ``amount``; anything above it
    receives nothing.
    """
    table = SubsidyTable(
        periodicity=periodicity,
        brackets=(
            SubsidyBracket(lower_limit=CENT, upper_limit=income_limit, subsidy_amount=amount),
            SubsidyBracket(lower_limit=income_limit + CENT, upper_limit=None, subsidy_amount=Decimal("0")),
        ),
    )
    validate_subsidy_table(table)
    return table


class TaxCalculator:
    """Computes ISR for one period's taxable income.

    Tables are explicit parameters; the calculator holds no state and never
    caches a table between calls.
    """

    def compute(
        self,
        taxable_income: Decimal,
        periodicity: Periodicity,
        tax_table: TaxTable,
        subsidy_table: SubsidyTable,
    ) -> TaxResult:
        """Compute tax, subsidy and net withholding.

        tax = fixed_quota + (income - lower_limit) * rate / 100
        net_tax = max(0, tax - subsidy)

        Raises:
            InvalidInputError: Negative income or a table for another periodicity
            InvalidBracketTableError: Malformed table or no covering bracket
        """
        require_finite(taxable_income, "Taxable income")
        if taxable_income < 0:
            raise InvalidInputError(f"Taxable income cannot be negative: {taxable_income}")
        for table in (tax_table, subsidy_table):
            if table.periodicity != periodicity:
                raise InvalidInputError(
                    f"{type(table).__name__} is {table.periodicity.value}, "
                    f"requested {periodicity.value}"
                )

        validate_tax_table(tax_table)
        validate_subsidy_table(subsidy_table)

        if taxable_income == 0 or taxable_income < tax_table.brackets[0].lower_limit:
            return self._zero_result(taxable_income)

        bracket = find_bracket(taxable_income, tax_table.brackets, f"ISR table ({periodicity.value})")
        excess = taxable_income - bracket.lower_limit
        marginal_tax = _cents(excess * bracket.marginal_rate_percent / 100)
        tax = _cents(bracket.fixed_quota + marginal_tax)

        subsidy = self._subsidy_for(taxable_income, subsidy_table)
        net_tax = max(ZERO, tax - subsidy)
        effective_rate = _cents(net_tax / taxable_income * 100)

        logger.debug(
            "ISR %s: income=%s lower=%s tax=%s subsidy=%s net=%s",
            periodicity.value,
            taxable_income,
            bracket.lower_limit,
            tax,
            subsidy,
            net_tax,
        )
        return TaxResult(
            taxable_income=_cents(taxable_income),
            lower_limit=bracket.lower_limit,
            excess=_cents(excess),
            fixed_quota=bracket.fixed_quota,
            marginal_rate_percent=bracket.marginal_rate_percent,
            marginal_tax=marginal_tax,
            tax=tax,
            subsidy=subsidy,
            net_tax=net_tax,
            effective_rate_percent=effective_rate,
        )

    def _subsidy_for(self, taxable_income: Decimal, table: SubsidyTable) -> Decimal:
        if taxable_income < table.brackets[0].lower_limit:
            return ZERO
        bracket = find_bracket(
            taxable_income, table.brackets, f"Subsidy table ({table.periodicity.value})"
        )
        return _cents(bracket.subsidy_amount)

    @staticmethod
    def _zero_result(taxable_income: Decimal) -> TaxResult:
        return TaxResult(
            taxable_income=_cents(taxable_income),
            lower_limit=ZERO,
            excess=ZERO,
            fixed_quota=ZERO,
            marginal_rate_percent=ZERO,
            marginal_tax=ZERO,
            tax=ZERO,
            subsidy=ZERO,
            net_tax=ZERO,
            effective_rate_percent=ZERO,
        )


def compute_tax(
    taxable_income: Decimal,
    periodicity: Periodicity,
    tax_table: TaxTable,
    subsidy_table: SubsidyTable,
) -> TaxResult:
    """Compute ISR for one period. See TaxCalculator.compute."""
    return TaxCalculator().compute(taxable_income, periodicity, tax_table, subsidy_table)
