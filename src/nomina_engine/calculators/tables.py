"""Load tables and concept catalogs from JSON rule payloads.

Tables belong to the owning system, which stores them as plain JSON. The
loaders turn those payloads into validated value objects:

    ISR table:
    {
        "periodicity": "mensual",
        "brackets": [
            {"min": "0.01", "max": "844.59", "flat": "0", "rate": "1.92"},
            ...
            {"min": "425727.72", "max": null, "flat": "133517.58", "rate": "35"}
        ]
    }

    Subsidy table:
    {"periodicity": "mensual", "brackets": [{"min": ..., "max": ..., "amount": ...}]}

    Contribution table:
    {
        "reference_unit": "117.31",
        "cap_units": 25,            // optional
        "threshold_units": 3,       // optional
        "rates": [
            {"concept": "retiro", "employer_rate": "2.00", "employee_rate": "0",
             "base": "sbc", "capped": true, "brackets": [...]}   // base, capped, brackets optional
        ]
    }

    Concept catalog:
    {"concepts": [{"name": ..., "kind": "earning", "formula": ..., "exempt_limit": ...,
                   "category": ..., "taxable": true, "contributes_to_base": false}]}

Rates are percentages. Decimals may be given as strings or numbers.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from nomina_engine.calculators.concepts import PayrollConceptCatalog
from nomina_engine.calculators.contributions import ContributionCalculator
from nomina_engine.calculators.errors import ConfigurationError, InvalidBracketTableError
from nomina_engine.calculators.tax_calculator import validate_subsidy_table, validate_tax_table
from nomina_engine.calculators.types import (
    ConceptKind,
    ContributionBase,
    ContributionBracket,
    ContributionRate,
    ContributionRateTable,
    PayrollConcept,
    Periodicity,
    SubsidyBracket,
    SubsidyTable,
    TaxBracket,
    TaxTable,
)

T = TypeVar("T")


def _decimal(value: Any, field_name: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise InvalidBracketTableError(f"{field_name}: not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidBracketTableError(f"{field_name}: not a finite number: {value!r}")
    return result


def _require_object(
    value: Any,
    where: str,
    error: type[ConfigurationError] = InvalidBracketTableError,
) -> None:
    if not isinstance(value, dict):
        raise error(f"{where}: expected an object, got {type(value).__name__}")


def _optional_decimal(value: Any, field_name: str) -> Decimal | None:
    return None if value is None else _decimal(value, field_name)


def _parse_rows(rows: Any, table_name: str, parse: Callable[[dict[str, Any], str], T]) -> tuple[T, ...]:
    if not isinstance(rows, list):
        raise InvalidBracketTableError(f"{table_name}: 'brackets' must be a list")
    parsed = []
    for i, row in enumerate(rows):
        where = f"{table_name} bracket {i}"
        _require_object(row, where)
        try:
            parsed.append(parse(row, where))
        except KeyError as exc:
            raise InvalidBracketTableError(f"{where}: missing field {exc}") from None
    return tuple(parsed)


def _periodicity(payload: dict[str, Any], table_name: str) -> Periodicity:
    _require_object(payload, table_name)
    try:
        return Periodicity(payload["periodicity"])
    except KeyError:
        raise InvalidBracketTableError(f"{table_name}: missing 'periodicity'") from None
    except ValueError:
        raise InvalidBracketTableError(
            f"{table_name}: unknown periodicity {payload['periodicity']!r}"
        ) from None


def load_tax_table(payload: dict[str, Any]) -> TaxTable:
    """Parse and validate an ISR table payload."""
    periodicity = _periodicity(payload, "ISR table")
    brackets = _parse_rows(
        payload.get("brackets"),
        "ISR table",
        lambda b, where: TaxBracket(
            lower_limit=_decimal(b["min"], f"{where} min"),
            upper_limit=_optional_decimal(b.get("max"), f"{where} max"),
            fixed_quota=_decimal(b.get("flat", 0), f"{where} flat"),
            marginal_rate_percent=_decimal(b["rate"], f"{where} rate"),
        ),
    )
    table = TaxTable(periodicity=periodicity, brackets=brackets)
    validate_tax_table(table)
    return table


def load_subsidy_table(payload: dict[str, Any]) -> SubsidyTable:
    """Parse and validate a subsidy table payload."""
    periodicity = _periodicity(payload, "Subsidy table")
    brackets = _parse_rows(
        payload.get("brackets"),
        "Subsidy table",
        lambda b, where: SubsidyBracket(
            lower_limit=_decimal(b["min"], f"{where} min"),
            upper_limit=_optional_decimal(b.get("max"), f"{where} max"),
            subsidy_amount=_decimal(b["amount"], f"{where} amount"),
        ),
    )
    table = SubsidyTable(periodicity=periodicity, brackets=brackets)
    validate_subsidy_table(table)
    return table


def _contribution_rate(r: dict[str, Any], where: str) -> ContributionRate:
    try:
        base = ContributionBase(r.get("base", ContributionBase.SBC.value))
    except ValueError:
        raise InvalidBracketTableError(f"{where}: unknown base {r.get('base')!r}") from None

    brackets = ()
    if r.get("brackets"):
        brackets = _parse_rows(
            r["brackets"],
            f"{where} ({r['concept']})",
            lambda b, w: ContributionBracket(
                lower_limit=_decimal(b["min"], f"{w} min"),
                upper_limit=_optional_decimal(b.get("max"), f"{w} max"),
                employer_rate_percent=_decimal(b.get("employer_rate", 0), f"{w} employer_rate"),
                employee_rate_percent=_decimal(b.get("employee_rate", 0), f"{w} employee_rate"),
            ),
        )

    return ContributionRate(
        concept=r["concept"],
        employer_rate_percent=_decimal(r.get("employer_rate", 0), f"{where} employer_rate"),
        employee_rate_percent=_decimal(r.get("employee_rate", 0), f"{where} employee_rate"),
        base=base,
        capped=bool(r.get("capped", True)),
        brackets=brackets,
    )


def load_contribution_table(payload: dict[str, Any]) -> ContributionRateTable:
    """Parse and validate a contribution rate table payload."""
    _require_object(payload, "Contribution table")
    rates = payload.get("rates")
    if not isinstance(rates, list):
        raise InvalidBracketTableError("Contribution table: 'rates' must be a list")

    parsed: list[ContributionRate] = []
    for i, r in enumerate(rates):
        where = f"Contribution rate {i}"
        _require_object(r, where)
        try:
            parsed.append(_contribution_rate(r, where))
        except KeyError as exc:
            raise InvalidBracketTableError(f"{where}: missing field {exc}") from None

    table = ContributionRateTable(
        rates=tuple(parsed),
        reference_unit=_optional_decimal(payload.get("reference_unit"), "reference_unit"),
        cap_units=_decimal(payload.get("cap_units", 25), "cap_units"),
        threshold_units=_decimal(payload.get("threshold_units", 3), "threshold_units"),
    )
    ContributionCalculator().validate(table)
    return table


def load_concept_catalog(payload: dict[str, Any]) -> PayrollConceptCatalog:
    """Parse a concept catalog payload; every formula must parse."""
    _require_object(payload, "Concept catalog", ConfigurationError)
    rows = payload.get("concepts")
    if not isinstance(rows, list):
        raise ConfigurationError("Concept catalog: 'concepts' must be a list")

    concepts: list[PayrollConcept] = []
    for i, c in enumerate(rows):
        _require_object(c, f"Concept {i}", ConfigurationError)
        try:
            concepts.append(
                PayrollConcept(
                    name=c["name"],
                    kind=ConceptKind(c.get("kind", ConceptKind.EARNING.value)),
                    formula=c["formula"],
                    category=c.get("category", ""),
                    exempt_limit_formula=c.get("exempt_limit"),
                    taxable=bool(c.get("taxable", True)),
                    contributes_to_base=bool(c.get("contributes_to_base", False)),
                )
            )
        except KeyError as exc:
            raise ConfigurationError(f"Concept {i}: missing field {exc}") from None
        except ValueError:
            raise ConfigurationError(f"Concept {i}: unknown kind {c.get('kind')!r}") from None
    return PayrollConceptCatalog(concepts)
