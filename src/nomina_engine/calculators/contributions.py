"""Social security (IMSS-style) contributions from rate and bracket tables."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from nomina_engine.calculators.brackets import CENT, find_bracket, validate_brackets
from nomina_engine.calculators.errors import InvalidBracketTableError, InvalidInputError
from nomina_engine.calculators.line_builder import require_finite
from nomina_engine.calculators.types import (
    ContributionBase,
    ContributionLineItem,
    ContributionRate,
    ContributionRateTable,
)

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = Decimal("365.25")


def _cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def integrated_daily_salary(
    daily_salary: Decimal,
    bonus_days: int = 15,
    vacation_days: int = 12,
    vacation_premium_percent: Decimal = Decimal("25"),
    other_annual_benefits: Decimal = Decimal("0"),
) -> Decimal:
    """Integrated daily salary (SDI).

    SDI = salary + (salary * bonus_days
                    + salary * vacation_days * premium% / 100
                    + other_annual_benefits) / 365.25

    Raises:
        InvalidInputError: If any input is negative
    """
    for name, value in (
        ("daily_salary", daily_salary),
        ("bonus_days", bonus_days),
        ("vacation_days", vacation_days),
        ("vacation_premium_percent", vacation_premium_percent),
        ("other_annual_benefits", other_annual_benefits),
    ):
        require_finite(value, name)
        if value < 0:
            raise InvalidInputError(f"{name} cannot be negative: {value}")

    annual_benefits = (
        daily_salary * bonus_days
        + daily_salary * vacation_days * Decimal(vacation_premium_percent) / 100
        + other_annual_benefits
    )
    return _cents(daily_salary + annual_benefits / DAYS_PER_YEAR)


def contribution_base(
    sdi: Decimal,
    reference_unit: Decimal,
    cap_units: Decimal = Decimal("25"),
) -> Decimal:
    """Daily contribution base (SBC): the SDI capped at ``cap_units`` reference units."""
    require_finite(sdi, "SDI")
    require_finite(reference_unit, "Reference unit")
    if sdi < 0:
        raise InvalidInputError(f"SDI cannot be negative: {sdi}")
    if reference_unit <= 0:
        raise InvalidInputError(f"Reference unit must be positive: {reference_unit}")
    return _cents(min(sdi, reference_unit * cap_units))


class ContributionCalculator:
    """Computes one line item per configured contribution concept.

    Base slices per concept:
    - SBC: the daily base, capped at cap_units reference units when capped
    - EXCESS_OVER_THRESHOLD: capped base above threshold_units reference units
    - THRESHOLD: threshold_units reference units (fixed-quota base)
    """

    def compute(
        self,
        base: Decimal,
        rate_table: ContributionRateTable,
        days: int = 1,
    ) -> list[ContributionLineItem]:
        """Compute employer and employee amounts for ``days`` days.

        Raises:
            InvalidInputError: Negative base or non-positive days
            InvalidBracketTableError: Malformed table, or a concept needs the
                reference unit and none is configured
        """
        require_finite(base, "Contribution base")
        if base < 0:
            raise InvalidInputError(f"Contribution base cannot be negative: {base}")
        if days <= 0:
            raise InvalidInputError(f"Days must be positive: {days}")

        self.validate(rate_table)

        lines: list[ContributionLineItem] = []
        for rate in rate_table.rates:
            slice_base = self._slice_base(base, rate, rate_table)
            employer_rate, employee_rate = self._rates_for(base, rate, rate_table)

            period_base = slice_base * days
            lines.append(
                ContributionLineItem(
                    concept=rate.concept,
                    base=_cents(slice_base),
                    employer_rate_percent=employer_rate,
                    employee_rate_percent=employee_rate,
                    employer_amount=_cents(period_base * employer_rate / 100),
                    employee_amount=_cents(period_base * employee_rate / 100),
                )
            )
            logger.debug(
                "%s: base=%s employer=%s%% employee=%s%%",
                rate.concept,
                slice_base,
                employer_rate,
                employee_rate,
            )
        return lines

    def validate(self, rate_table: ContributionRateTable) -> None:
        """Check the whole table before anything is computed.

        Raises:
            InvalidBracketTableError: On the first defect found
        """
        if rate_table.reference_unit is not None and rate_table.reference_unit <= 0:
            raise InvalidBracketTableError(
                f"Reference unit must be positive: {rate_table.reference_unit}"
            )
        if rate_table.cap_units <= 0 or rate_table.threshold_units < 0:
            raise InvalidBracketTableError("Cap units must be positive and threshold units non-negative")

        for rate in rate_table.rates:
            if rate.employer_rate_percent < 0 or rate.employee_rate_percent < 0:
                raise InvalidBracketTableError(f"{rate.concept}: negative rate")
            needs_unit = rate.capped or rate.escalating or rate.base != ContributionBase.SBC
            if needs_unit and rate_table.reference_unit is None:
                raise InvalidBracketTableError(
                    f"{rate.concept}: requires a reference unit but the table has none"
                )
            if rate.escalating:
                validate_brackets(rate.brackets, f"{rate.concept} brackets", max_first_lower=Decimal("0"))
                for bracket in rate.brackets:
                    if bracket.employer_rate_percent < 0 or bracket.employee_rate_percent < 0:
                        raise InvalidBracketTableError(f"{rate.concept}: negative bracket rate")

    def _slice_base(
        self,
        base: Decimal,
        rate: ContributionRate,
        table: ContributionRateTable,
    ) -> Decimal:
        unit = table.reference_unit
        capped = min(base, unit * table.cap_units) if unit is not None and rate.capped else base

        if rate.base == ContributionBase.SBC:
            return capped
        assert unit is not None  # checked by validate()
        threshold = unit * table.threshold_units
        if rate.base == ContributionBase.EXCESS_OVER_THRESHOLD:
            return max(Decimal("0"), capped - threshold)
        if rate.base == ContributionBase.THRESHOLD:
            return threshold
        raise ValueError(f"Unhandled contribution base: {rate.base}")

    def _rates_for(
        self,
        base: Decimal,
        rate: ContributionRate,
        table: ContributionRateTable,
    ) -> tuple[Decimal, Decimal]:
        if not rate.escalating:
            return rate.employer_rate_percent, rate.employee_rate_percent

        assert table.reference_unit is not None  # checked by validate()
        capped = min(base, table.reference_unit * table.cap_units) if rate.capped else base
        multiple = capped / table.reference_unit
        bracket = find_bracket(multiple, rate.brackets, f"{rate.concept} brackets")
        return bracket.employer_rate_percent, bracket.employee_rate_percent


def compute_contributions(
    base: Decimal,
    rate_table: ContributionRateTable,
    days: int = 1,
) -> list[ContributionLineItem]:
    """Compute contributions. See ContributionCalculator.compute."""
    return ContributionCalculator().compute(base, rate_table, days)
