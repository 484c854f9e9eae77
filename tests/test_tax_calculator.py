"""Unit tests for ISR and subsidy calculation.

Worked examples use the SAT 2026 monthly table from conftest.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from nomina_engine.calculators.brackets import CENT, find_bracket, validate_brackets
from nomina_engine.calculators.errors import InvalidBracketTableError, InvalidInputError
from nomina_engine.calculators.tables import load_subsidy_table, load_tax_table
from nomina_engine.calculators.tax_calculator import (
    TaxCalculator,
    compute_tax,
    flat_subsidy_table,
    validate_subsidy_table,
)
from nomina_engine.calculators.types import (
    Periodicity,
    SubsidyBracket,
    SubsidyTable,
    TaxBracket,
    TaxTable,
)

from .conftest import ISR_MONTHLY_2026, SUBSIDY_MONTHLY_2026

MONTHLY = Periodicity.MONTHLY


def _consistent_table() -> TaxTable:
    """Small table whose fixed quotas match the tax at each previous upper limit."""
    return TaxTable(
        periodicity=MONTHLY,
        brackets=(
            TaxBracket(Decimal("0.01"), Decimal("1000.00"), Decimal("0"), Decimal("10")),
            TaxBracket(Decimal("1000.01"), Decimal("5000.00"), Decimal("99.999"), Decimal("20")),
            TaxBracket(Decimal("5000.01"), None, Decimal("899.997"), Decimal("30")),
        ),
    )


class TestWorkedExamples:
    """ISR results against the 2026 monthly table."""

    def test_income_with_subsidy(self, isr_monthly, subsidy_monthly):
        """10,000 falls in the 10.88% bracket and still receives the subsidy."""
        result = compute_tax(Decimal("10000"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.lower_limit == Decimal("7168.46")
        assert result.excess == Decimal("2831.54")
        assert result.fixed_quota == Decimal("420.94")
        assert result.marginal_tax == Decimal("308.07")
        assert result.tax == Decimal("729.01")
        assert result.subsidy == Decimal("536.22")
        assert result.net_tax == Decimal("192.79")
        assert result.effective_rate_percent == Decimal("1.93")

    def test_income_above_subsidy_limit(self, isr_monthly, subsidy_monthly):
        """15,000 gets no subsidy."""
        result = compute_tax(Decimal("15000"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.marginal_rate_percent == Decimal("17.92")
        assert result.tax == Decimal("1402.57")
        assert result.subsidy == Decimal("0.00")
        assert result.net_tax == Decimal("1402.57")
        assert result.effective_rate_percent == Decimal("9.35")

    def test_top_bracket(self, isr_monthly, subsidy_monthly):
        """Open-ended top bracket applies above its lower limit."""
        result = compute_tax(Decimal("500000"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.lower_limit == Decimal("425727.72")
        assert result.tax == Decimal("159512.88")

    def test_subsidy_exceeding_tax_gives_zero(self, isr_monthly, subsidy_monthly):
        """Net tax never goes negative."""
        result = compute_tax(Decimal("500"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.tax == Decimal("9.60")
        assert result.subsidy == Decimal("536.22")
        assert result.net_tax == Decimal("0.00")

    def test_subsidy_limit_is_inclusive(self, isr_monthly, subsidy_monthly):
        """Subsidy applies up to and including its income limit."""
        at_limit = compute_tax(Decimal("11492.66"), MONTHLY, isr_monthly, subsidy_monthly)
        above = compute_tax(Decimal("11492.67"), MONTHLY, isr_monthly, subsidy_monthly)

        assert at_limit.subsidy == Decimal("536.22")
        assert above.subsidy == Decimal("0.00")


class TestEdgeCases:
    """Zero, gaps and invalid input."""

    def test_zero_income(self, isr_monthly, subsidy_monthly):
        """Zero income yields an all-zero result."""
        result = compute_tax(Decimal("0"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.tax == Decimal("0")
        assert result.subsidy == Decimal("0")
        assert result.net_tax == Decimal("0")
        assert result.effective_rate_percent == Decimal("0")

    def test_below_first_lower_limit(self, isr_monthly, subsidy_monthly):
        """Less than a cent behaves like zero."""
        result = compute_tax(Decimal("0.004"), MONTHLY, isr_monthly, subsidy_monthly)
        assert result.net_tax == Decimal("0")
        assert result.subsidy == Decimal("0")

    def test_sub_cent_gap_belongs_to_lower_bracket(self, isr_monthly, subsidy_monthly):
        """844.595 sits between 844.59 and 844.60 and uses the first bracket."""
        result = compute_tax(Decimal("844.595"), MONTHLY, isr_monthly, subsidy_monthly)

        assert result.lower_limit == Decimal("0.01")
        assert result.tax == Decimal("16.22")

    def test_negative_income_rejected(self, isr_monthly, subsidy_monthly):
        """Negative income is an input error."""
        with pytest.raises(InvalidInputError):
            compute_tax(Decimal("-1"), MONTHLY, isr_monthly, subsidy_monthly)

    @pytest.mark.parametrize("income", ["NaN", "sNaN", "Infinity", "-Infinity"])
    def test_non_finite_income_rejected(self, isr_monthly, subsidy_monthly, income):
        """NaN and infinities are input errors, not decimal signals."""
        with pytest.raises(InvalidInputError, match="finite"):
            compute_tax(Decimal(income), MONTHLY, isr_monthly, subsidy_monthly)

    def test_periodicity_mismatch_rejected(self, isr_monthly, subsidy_monthly):
        """A monthly table cannot answer a biweekly request."""
        with pytest.raises(InvalidInputError, match="quincenal"):
            compute_tax(Decimal("5000"), Periodicity.BIWEEKLY, isr_monthly, subsidy_monthly)

    def test_malformed_table_rejected(self, subsidy_monthly):
        """Overlapping brackets are a configuration error."""
        table = TaxTable(
            periodicity=MONTHLY,
            brackets=(
                TaxBracket(Decimal("0.01"), Decimal("1000"), Decimal("0"), Decimal("10")),
                TaxBracket(Decimal("900"), None, Decimal("100"), Decimal("20")),
            ),
        )
        with pytest.raises(InvalidBracketTableError, match="overlaps"):
            compute_tax(Decimal("500"), MONTHLY, table, subsidy_monthly)


INCOME = st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2)
ISR_TABLE = load_tax_table(ISR_MONTHLY_2026)
SUBSIDY_TABLE = load_subsidy_table(SUBSIDY_MONTHLY_2026)
CONSISTENT_TABLE = _consistent_table()


class TestProperties:
    """Monotonicity, continuity and determinism."""

    @given(first=INCOME, second=INCOME)
    @settings(max_examples=200)
    def test_monotone_in_income(self, first: Decimal, second: Decimal):
        """More income never means less tax."""
        low, high = sorted((first, second))
        calc = TaxCalculator()
        assert (
            calc.compute(low, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
            <= calc.compute(high, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
        )

    @given(bracket=st.sampled_from(ISR_TABLE.brackets), data=st.data())
    @settings(max_examples=200)
    def test_sat_monotone_within_bracket(self, bracket: TaxBracket, data):
        """Inside one SAT bracket the tax only grows."""
        upper = bracket.upper_limit or bracket.lower_limit * 10
        incomes = st.decimals(min_value=bracket.lower_limit, max_value=upper, places=2)
        low, high = sorted((data.draw(incomes), data.draw(incomes)))
        assert (
            compute_tax(low, MONTHLY, ISR_TABLE, SUBSIDY_TABLE).tax
            <= compute_tax(high, MONTHLY, ISR_TABLE, SUBSIDY_TABLE).tax
        )

    @given(income=INCOME)
    @settings(max_examples=200)
    def test_one_cent_moves_tax_at_most_a_cent(self, income: Decimal):
        """No jumps, bracket boundaries included, when quotas are consistent."""
        calc = TaxCalculator()
        here = calc.compute(income, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
        there = calc.compute(income + CENT, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
        assert Decimal("0") <= there - here <= CENT

    @given(boundary=st.sampled_from(CONSISTENT_TABLE.brackets[:-1]))
    def test_continuous_at_boundaries(self, boundary: TaxBracket):
        """Tax at one bracket's upper limit and the next lower limit differ by at most a cent."""
        below = compute_tax(boundary.upper_limit, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
        above = compute_tax(boundary.upper_limit + CENT, MONTHLY, CONSISTENT_TABLE, SUBSIDY_TABLE).tax
        assert abs(above - below) <= CENT

    def test_sat_first_boundary_continuous(self, isr_monthly, subsidy_monthly):
        """The first SAT boundary is continuous."""
        below = compute_tax(Decimal("844.59"), MONTHLY, isr_monthly, subsidy_monthly)
        above = compute_tax(Decimal("844.60"), MONTHLY, isr_monthly, subsidy_monthly)
        assert below.tax == above.tax == Decimal("16.22")

    @given(income=INCOME)
    @settings(max_examples=100)
    def test_deterministic(self, income: Decimal):
        """Same inputs, same result."""
        first = compute_tax(income, MONTHLY, ISR_TABLE, SUBSIDY_TABLE)
        second = compute_tax(income, MONTHLY, ISR_TABLE, SUBSIDY_TABLE)
        assert first == second
        assert first.to_dict() == second.to_dict()
        assert first.net_tax == max(Decimal("0"), first.tax - first.subsidy)


class TestSubsidyTables:
    """Subsidy table construction and validation."""

    def test_flat_subsidy_table(self):
        """Two rows: the amount up to the limit, nothing above."""
        table = flat_subsidy_table(MONTHLY, Decimal("11492.66"), Decimal("536.22"))

        assert len(table.brackets) == 2
        assert table.brackets[0].upper_limit == Decimal("11492.66")
        assert table.brackets[1].lower_limit == Decimal("11492.67")
        assert table.brackets[1].upper_limit is None
        assert table.brackets[1].subsidy_amount == Decimal("0")

    def test_increasing_subsidy_rejected(self):
        """Subsidy amounts must not increase with income."""
        table = SubsidyTable(
            periodicity=MONTHLY,
            brackets=(
                SubsidyBracket(Decimal("0.01"), Decimal("100"), Decimal("10")),
                SubsidyBracket(Decimal("100.01"), Decimal("200"), Decimal("20")),
                SubsidyBracket(Decimal("200.01"), None, Decimal("0")),
            ),
        )
        with pytest.raises(InvalidBracketTableError, match="increases"):
            validate_subsidy_table(table)

    def test_top_bracket_must_be_zero(self):
        """The open-ended bracket yields no subsidy."""
        table = SubsidyTable(
            periodicity=MONTHLY,
            brackets=(SubsidyBracket(Decimal("0.01"), None, Decimal("10")),),
        )
        with pytest.raises(InvalidBracketTableError, match="top bracket"):
            validate_subsidy_table(table)


class TestBracketLookup:
    """Shared bracket validation and lookup."""

    def test_find_exact_limits(self, isr_monthly):
        """Both limits are inclusive."""
        brackets = isr_monthly.brackets
        assert find_bracket(Decimal("7168.46"), brackets, "t") is brackets[2]
        assert find_bracket(Decimal("12599.66"), brackets, "t") is brackets[2]

    def test_gap_larger_than_cent_rejected(self):
        """A hole in the table is a configuration error."""
        brackets = (
            TaxBracket(Decimal("0.01"), Decimal("100"), Decimal("0"), Decimal("1")),
            TaxBracket(Decimal("100.50"), None, Decimal("1"), Decimal("2")),
        )
        with pytest.raises(InvalidBracketTableError, match="gap"):
            validate_brackets(brackets, "t")

    def test_open_ended_row_must_be_last(self):
        """Only the last row may have no upper limit."""
        brackets = (
            TaxBracket(Decimal("0.01"), None, Decimal("0"), Decimal("1")),
            TaxBracket(Decimal("100.01"), None, Decimal("1"), Decimal("2")),
        )
        with pytest.raises(InvalidBracketTableError, match="not the last"):
            validate_brackets(brackets, "t")

    def test_missing_terminal_bracket_rejected(self):
        """A closed table cannot cover every income."""
        brackets = (TaxBracket(Decimal("0.01"), Decimal("100"), Decimal("0"), Decimal("1")),)
        with pytest.raises(InvalidBracketTableError, match="open-ended"):
            validate_brackets(brackets, "t")

    def test_empty_table_rejected(self):
        """No brackets at all."""
        with pytest.raises(InvalidBracketTableError, match="no brackets"):
            validate_brackets((), "t")
