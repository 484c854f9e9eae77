"""Type definitions for the calculation engine.

Every object here is an immutable value object built fresh per calculation.
Monetary values are Decimal; ``to_dict`` renders them as strings so results
can be serialized without losing precision.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, fields
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


def _jsonable(value: Any) -> Any:
    """Convert a value object field to JSON-serializable data."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class _ValueObject:
    """Mixin providing a canonical dict for dataclass value objects."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _jsonable(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


# ============================================================================
# Enumerations
# ============================================================================


class ConceptKind(str, Enum):
    """Whether a line adds to or subtracts from the amount paid."""

    EARNING = "earning"
    DEDUCTION = "deduction"


class Periodicity(str, Enum):
    """Payroll periodicities with one tax table each."""

    DAILY = "diario"
    WEEKLY = "semanal"
    TEN_DAY = "decenal"
    FOURTEEN_DAY = "catorcenal"
    BIWEEKLY = "quincenal"
    MONTHLY = "mensual"

    @property
    def days(self) -> Decimal:
        """Days covered by one period (monthly uses the SAT 30.4 average)."""
        return _PERIOD_DAYS[self]


_PERIOD_DAYS: dict[Periodicity, Decimal] = {
    Periodicity.DAILY: Decimal("1"),
    Periodicity.WEEKLY: Decimal("7"),
    Periodicity.TEN_DAY: Decimal("10"),
    Periodicity.FOURTEEN_DAY: Decimal("14"),
    Periodicity.BIWEEKLY: Decimal("15"),
    Periodicity.MONTHLY: Decimal("30.4"),
}


class SeparationCategory(str, Enum):
    """Legal consequence class of a termination.

    EMPLOYER_LIABLE: indemnification plus seniority premium (>= 1 year).
    SEPARATED: seniority premium (>= 1 year), no indemnification.
    VOLUNTARY: seniority premium only after 15 completed years.
    ORDINARY: neither.
    """

    EMPLOYER_LIABLE = "employer_liable"
    SEPARATED = "separated"
    VOLUNTARY = "voluntary"
    ORDINARY = "ordinary"


class TerminationType(str, Enum):
    """Closed set of termination types (tipos de baja)."""

    VOLUNTARY_RESIGNATION = "renuncia_voluntaria"
    UNJUSTIFIED_DISMISSAL = "despido_injustificado"
    JUSTIFIED_DISMISSAL = "despido_justificado"
    EMPLOYER_FAULT_RESCISSION = "rescision_imputable_patron"
    EMPLOYEE_FAULT_RESCISSION = "rescision_imputable_trabajador"
    MUTUAL_AGREEMENT = "mutuo_acuerdo"
    ABANDONMENT = "abandono"
    FIXED_TERM_END = "termino_contrato"
    DEATH = "fallecimiento"
    PERMANENT_DISABILITY = "incapacidad_permanente"
    RETIREMENT = "jubilacion"
    ADMINISTRATIVE = "baja_administrativa"

    @property
    def category(self) -> SeparationCategory:
        return _SEPARATION_CATEGORIES[self]


_SEPARATION_CATEGORIES: dict[TerminationType, SeparationCategory] = {
    TerminationType.VOLUNTARY_RESIGNATION: SeparationCategory.VOLUNTARY,
    TerminationType.UNJUSTIFIED_DISMISSAL: SeparationCategory.EMPLOYER_LIABLE,
    TerminationType.JUSTIFIED_DISMISSAL: SeparationCategory.SEPARATED,
    TerminationType.EMPLOYER_FAULT_RESCISSION: SeparationCategory.EMPLOYER_LIABLE,
    TerminationType.EMPLOYEE_FAULT_RESCISSION: SeparationCategory.SEPARATED,
    TerminationType.MUTUAL_AGREEMENT: SeparationCategory.VOLUNTARY,
    TerminationType.ABANDONMENT: SeparationCategory.SEPARATED,
    TerminationType.FIXED_TERM_END: SeparationCategory.ORDINARY,
    TerminationType.DEATH: SeparationCategory.SEPARATED,
    TerminationType.PERMANENT_DISABILITY: SeparationCategory.SEPARATED,
    TerminationType.RETIREMENT: SeparationCategory.VOLUNTARY,
    TerminationType.ADMINISTRATIVE: SeparationCategory.ORDINARY,
}

_unmapped = set(TerminationType) - set(_SEPARATION_CATEGORIES)
if _unmapped:
    raise RuntimeError(f"Termination types without a separation category: {sorted(_unmapped)}")


class DocumentType(str, Enum):
    """Settlement document produced for a termination."""

    FINIQUITO = "finiquito"
    LIQUIDACION = "liquidacion"


class ContributionBase(str, Enum):
    """Which slice of the contribution base a rate applies to."""

    SBC = "sbc"  # full base, capped when the rate is capped
    EXCESS_OVER_THRESHOLD = "excess_over_threshold"  # base above N reference units
    THRESHOLD = "threshold"  # fixed N reference units


# ============================================================================
# Settlement
# ============================================================================


@dataclass(frozen=True)
class EmploymentPeriod(_ValueObject):
    """Salary and dates of one employment relationship."""

    daily_integrated_salary: Decimal
    start_date: date
    termination_date: date


@dataclass(frozen=True)
class SettlementLineItem(_ValueObject):
    """One itemized settlement concept with its derivation."""

    concept: str
    description: str
    calculation_trace: str
    amount: Decimal
    kind: ConceptKind = ConceptKind.EARNING


@dataclass(frozen=True)
class LaborInfo(_ValueObject):
    """Service facts derived from the employment period."""

    daily_salary: Decimal
    years_of_service: Decimal
    completed_years: int
    days_worked: int
    start_date: date
    termination_date: date


@dataclass(frozen=True)
class SettlementBreakdown(_ValueObject):
    subtotal_earnings: Decimal
    subtotal_deductions: Decimal


@dataclass(frozen=True)
class SettlementResult(_ValueObject):
    """Complete settlement: items, subtotals and total."""

    labor_info: LaborInfo
    termination_type: TerminationType
    document_type: DocumentType
    items: tuple[SettlementLineItem, ...]
    breakdown: SettlementBreakdown
    total: Decimal

    def item(self, concept: str) -> SettlementLineItem | None:
        """Return the line item for a concept, if present."""
        return next((i for i in self.items if i.concept == concept), None)

    def amount_of(self, concept: str) -> Decimal:
        """Amount of a concept, zero when the concept is absent."""
        found = self.item(concept)
        return found.amount if found else Decimal("0")

    def fingerprint(self) -> str:
        """Deterministic hash over the canonical dict.

        Identical inputs produce identical fingerprints across runs and
        processes, which makes settlements comparable and auditable.
        """
        json_str = json.dumps(self.to_dict(), sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]


# ============================================================================
# Tax and subsidy
# ============================================================================


@dataclass(frozen=True)
class TaxBracket(_ValueObject):
    """ISR bracket: fixed quota plus a marginal rate over the lower limit."""

    lower_limit: Decimal
    upper_limit: Decimal | None  # None = open-ended, last row only
    fixed_quota: Decimal
    marginal_rate_percent: Decimal


@dataclass(frozen=True)
class SubsidyBracket(_ValueObject):
    """Employment subsidy bracket yielding a flat amount."""

    lower_limit: Decimal
    upper_limit: Decimal | None
    subsidy_amount: Decimal


@dataclass(frozen=True)
class TaxTable(_ValueObject):
    periodicity: Periodicity
    brackets: tuple[TaxBracket, ...]


@dataclass(frozen=True)
class SubsidyTable(_ValueObject):
    periodicity: Periodicity
    brackets: tuple[SubsidyBracket, ...]


@dataclass(frozen=True)
class TaxResult(_ValueObject):
    """ISR computation with its full derivation."""

    taxable_income: Decimal
    lower_limit: Decimal
    excess: Decimal
    fixed_quota: Decimal
    marginal_rate_percent: Decimal
    marginal_tax: Decimal
    tax: Decimal
    subsidy: Decimal
    net_tax: Decimal
    effective_rate_percent: Decimal


# ============================================================================
# Contributions
# ============================================================================


@dataclass(frozen=True)
class ContributionBracket(_ValueObject):
    """Escalating rate bracket; limits are multiples of the reference unit."""

    lower_limit: Decimal
    upper_limit: Decimal | None
    employer_rate_percent: Decimal
    employee_rate_percent: Decimal


@dataclass(frozen=True)
class ContributionRate(_ValueObject):
    """One contribution concept (ramo) with flat or escalating rates."""

    concept: str
    employer_rate_percent: Decimal = Decimal("0")
    employee_rate_percent: Decimal = Decimal("0")
    base: ContributionBase = ContributionBase.SBC
    capped: bool = True
    brackets: tuple[ContributionBracket, ...] = ()

    @property
    def escalating(self) -> bool:
        return len(self.brackets) > 0


@dataclass(frozen=True)
class ContributionRateTable(_ValueObject):
    """Rates plus the reference unit (UMA) that caps and slices the base."""

    rates: tuple[ContributionRate, ...]
    reference_unit: Decimal | None = None
    cap_units: Decimal = Decimal("25")
    threshold_units: Decimal = Decimal("3")


@dataclass(frozen=True)
class ContributionLineItem(_ValueObject):
    concept: str
    base: Decimal
    employer_rate_percent: Decimal
    employee_rate_percent: Decimal
    employer_amount: Decimal
    employee_amount: Decimal


# ============================================================================
# Formulas and concepts
# ============================================================================


@dataclass(frozen=True)
class PayrollConcept(_ValueObject):
    """Configurable earning or deduction driven by a formula."""

    name: str
    kind: ConceptKind
    formula: str
    category: str = ""
    exempt_limit_formula: str | None = None
    taxable: bool = True
    contributes_to_base: bool = False


@dataclass(frozen=True)
class ResolvedConcept(_ValueObject):
    """A concept evaluated against a context, split into exempt/taxable."""

    name: str
    kind: ConceptKind
    category: str
    amount: Decimal
    exempt_amount: Decimal
    taxable_amount: Decimal
    base_amount: Decimal
    exempt_limit: Decimal | None = None


@dataclass(frozen=True)
class ConceptSummary(_ValueObject):
    concepts: tuple[ResolvedConcept, ...]
    total_earnings: Decimal
    taxable_earnings: Decimal
    exempt_earnings: Decimal
    total_deductions: Decimal
    contribution_base: Decimal


@dataclass(frozen=True)
class FormulaVariable(_ValueObject):
    """Documented formula identifier; example values are for previews only."""

    name: str
    description: str
    example_value: Decimal


@dataclass(frozen=True)
class FormulaPreview(_ValueObject):
    substituted: str
    missing: tuple[str, ...] = field(default_factory=tuple)
