"""Tests for loading tables and catalogs from JSON payloads."""

import copy
from decimal import Decimal

import pytest

from nomina_engine.calculators.errors import ConfigurationError, InvalidBracketTableError
from nomina_engine.calculators.tables import (
    load_concept_catalog,
    load_contribution_table,
    load_subsidy_table,
    load_tax_table,
)
from nomina_engine.calculators.types import ConceptKind, ContributionBase, Periodicity

from .conftest import IMSS_RATES_2026, ISR_MONTHLY_2026, SUBSIDY_MONTHLY_2026


class TestTaxTablePayloads:
    """ISR table payloads."""

    def test_load(self):
        table = load_tax_table(ISR_MONTHLY_2026)

        assert table.periodicity == Periodicity.MONTHLY
        assert len(table.brackets) == 11
        assert table.brackets[1].fixed_quota == Decimal("16.22")
        assert table.brackets[-1].upper_limit is None

    def test_numbers_may_be_numeric(self):
        payload = {
            "periodicity": "semanal",
            "brackets": [
                {"min": 0.01, "max": 100, "flat": 0, "rate": 1.92},
                {"min": 100.01, "max": None, "flat": 1.92, "rate": 6.4},
            ],
        }
        table = load_tax_table(payload)
        assert table.brackets[1].marginal_rate_percent == Decimal("6.4")

    def test_missing_periodicity(self):
        payload = {"brackets": ISR_MONTHLY_2026["brackets"]}
        with pytest.raises(InvalidBracketTableError, match="periodicity"):
            load_tax_table(payload)

    def test_unknown_periodicity(self):
        payload = {**ISR_MONTHLY_2026, "periodicity": "anual"}
        with pytest.raises(InvalidBracketTableError, match="anual"):
            load_tax_table(payload)

    def test_missing_rate(self):
        payload = copy.deepcopy(ISR_MONTHLY_2026)
        del payload["brackets"][2]["rate"]
        with pytest.raises(InvalidBracketTableError, match="bracket 2"):
            load_tax_table(payload)

    def test_not_a_number(self):
        payload = copy.deepcopy(ISR_MONTHLY_2026)
        payload["brackets"][0]["max"] = "abc"
        with pytest.raises(InvalidBracketTableError, match="not a number"):
            load_tax_table(payload)

    def test_gap_rejected(self):
        payload = copy.deepcopy(ISR_MONTHLY_2026)
        payload["brackets"][3]["min"] = "12700.00"
        with pytest.raises(InvalidBracketTableError, match="gap"):
            load_tax_table(payload)

    def test_brackets_must_be_list(self):
        with pytest.raises(InvalidBracketTableError, match="list"):
            load_tax_table({"periodicity": "mensual", "brackets": None})

    @pytest.mark.parametrize("row", [["0.01", "844.59", "0", "1.92"], "0.01", None])
    def test_row_must_be_object(self, row):
        """A bracket written as a list or scalar is a table error."""
        payload = copy.deepcopy(ISR_MONTHLY_2026)
        payload["brackets"][1] = row
        with pytest.raises(InvalidBracketTableError, match="bracket 1: expected an object"):
            load_tax_table(payload)

    def test_payload_must_be_object(self):
        with pytest.raises(InvalidBracketTableError, match="expected an object"):
            load_tax_table(ISR_MONTHLY_2026["brackets"])


class TestSubsidyTablePayloads:
    """Subsidy table payloads."""

    def test_load(self):
        table = load_subsidy_table(SUBSIDY_MONTHLY_2026)
        assert table.brackets[0].subsidy_amount == Decimal("536.22")

    def test_non_zero_top_rejected(self):
        payload = copy.deepcopy(SUBSIDY_MONTHLY_2026)
        payload["brackets"][1]["amount"] = "10"
        with pytest.raises(InvalidBracketTableError):
            load_subsidy_table(payload)


class TestContributionTablePayloads:
    """Contribution rate payloads."""

    def test_load(self):
        table = load_contribution_table(IMSS_RATES_2026)

        assert table.reference_unit == Decimal("117.31")
        assert table.cap_units == Decimal("25")
        assert table.rates[0].base == ContributionBase.THRESHOLD
        assert table.rates[8].escalating
        assert len(table.rates[8].brackets) == 8

    def test_unknown_base(self):
        payload = copy.deepcopy(IMSS_RATES_2026)
        payload["rates"][0]["base"] = "salary"
        with pytest.raises(InvalidBracketTableError, match="salary"):
            load_contribution_table(payload)

    def test_missing_reference_unit(self):
        payload = copy.deepcopy(IMSS_RATES_2026)
        del payload["reference_unit"]
        with pytest.raises(InvalidBracketTableError, match="reference unit"):
            load_contribution_table(payload)

    def test_missing_concept(self):
        payload = copy.deepcopy(IMSS_RATES_2026)
        del payload["rates"][2]["concept"]
        with pytest.raises(InvalidBracketTableError, match="rate 2"):
            load_contribution_table(payload)

    def test_rate_must_be_object(self):
        payload = copy.deepcopy(IMSS_RATES_2026)
        payload["rates"][2] = ["retiro", "2.00"]
        with pytest.raises(InvalidBracketTableError, match="rate 2: expected an object"):
            load_contribution_table(payload)

    def test_escalating_row_must_be_object(self):
        payload = copy.deepcopy(IMSS_RATES_2026)
        payload["rates"][8]["brackets"][0] = 42
        with pytest.raises(InvalidBracketTableError, match="bracket 0: expected an object"):
            load_contribution_table(payload)


class TestConceptCatalogPayloads:
    """Concept catalog payloads."""

    def test_load(self):
        catalog = load_concept_catalog(
            {
                "concepts": [
                    {
                        "name": "Prima Vacacional",
                        "kind": "earning",
                        "formula": "SALARIO_DIARIO * DIAS_VACACIONES * 25%",
                        "exempt_limit": "15 * UMA_DIARIA",
                    },
                    {"name": "Fonacot", "kind": "deduction", "formula": "DESCUENTO_FONACOT", "taxable": False},
                ]
            }
        )
        assert len(catalog) == 2
        assert catalog["Fonacot"].kind == ConceptKind.DEDUCTION
        assert catalog["Prima Vacacional"].exempt_limit_formula == "15 * UMA_DIARIA"
        assert catalog.variables() == ("SALARIO_DIARIO", "DIAS_VACACIONES", "UMA_DIARIA", "DESCUENTO_FONACOT")

    def test_missing_formula(self):
        with pytest.raises(ConfigurationError, match="formula"):
            load_concept_catalog({"concepts": [{"name": "X"}]})

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError, match="percepcion"):
            load_concept_catalog({"concepts": [{"name": "X", "kind": "percepcion", "formula": "1"}]})

    def test_bad_formula(self):
        with pytest.raises(ConfigurationError):
            load_concept_catalog({"concepts": [{"name": "X", "formula": "1 + * 2"}]})

    def test_concept_must_be_object(self):
        with pytest.raises(ConfigurationError, match="Concept 0: expected an object"):
            load_concept_catalog({"concepts": ["Prima Vacacional"]})
