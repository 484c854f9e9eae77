"""Configurable payroll concepts: formula resolution with exemption limits.

A concept's formula yields the amount paid. Its optional exemption-limit
formula caps the part that is exempt from income tax; whatever exceeds the
cap is still paid, flagged as taxable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from nomina_engine.calculators.errors import ConfigurationError, InvalidInputError, ParseError
from nomina_engine.calculators.formula import FormulaEvaluator
from nomina_engine.calculators.line_builder import LineItemBuilder
from nomina_engine.calculators.types import (
    ConceptKind,
    ConceptSummary,
    FormulaVariable,
    PayrollConcept,
    ResolvedConcept,
)

logger = logging.getLogger(__name__)


# Documented identifiers. Example values (2026 UMA and minimum wage, a 500/day
# employee on a 15-day period) only feed previews, never real calculations.
STANDARD_VARIABLES: tuple[FormulaVariable, ...] = (
    FormulaVariable("SALARIO_DIARIO", "Daily salary", Decimal("500.00")),
    FormulaVariable("SALARIO_HORA", "Hourly salary (daily salary / 8)", Decimal("62.50")),
    FormulaVariable("SALARIO_PERIODO", "Salary for the payroll period", Decimal("7500.00")),
    FormulaVariable("SDI", "Integrated daily salary", Decimal("524.64")),
    FormulaVariable("SBC", "Daily contribution base (capped SDI)", Decimal("524.64")),
    FormulaVariable("DIAS_TRABAJADOS", "Days worked in the period", Decimal("15")),
    FormulaVariable("DIAS_PERIODO", "Days in the payroll period", Decimal("15")),
    FormulaVariable("DIAS_AGUINALDO", "Annual Christmas bonus days", Decimal("15")),
    FormulaVariable("DIAS_VACACIONES", "Vacation days taken or paid", Decimal("12")),
    FormulaVariable("DOMINGOS_TRABAJADOS", "Sundays worked in the period", Decimal("0")),
    FormulaVariable("DIAS_FESTIVOS_TRABAJADOS", "Rest days worked in the period", Decimal("0")),
    FormulaVariable("HORAS_EXTRA_DOBLES", "Overtime hours paid double", Decimal("0")),
    FormulaVariable("HORAS_EXTRA_TRIPLES", "Overtime hours paid triple", Decimal("0")),
    FormulaVariable("ANTIGUEDAD_ANOS", "Completed years of service", Decimal("1")),
    FormulaVariable("UMA_DIARIA", "Daily UMA", Decimal("117.31")),
    FormulaVariable("UMA_SEMANAL", "Weekly UMA", Decimal("821.17")),
    FormulaVariable("UMA_MENSUAL", "Monthly UMA", Decimal("3566.22")),
    FormulaVariable("UMA_ANUAL", "Annual UMA", Decimal("42818.15")),
    FormulaVariable("SMG_DIARIO", "Daily general minimum wage", Decimal("315.04")),
    FormulaVariable("SMG_MENSUAL", "Monthly general minimum wage", Decimal("9577.22")),
    FormulaVariable("MONTO_VALES", "Grocery voucher amount", Decimal("0")),
    FormulaVariable("MONTO_BONO", "Bonus amount", Decimal("0")),
)


def example_context() -> dict[str, Decimal]:
    """Example values for every standard variable, for previews."""
    return {variable.name: variable.example_value for variable in STANDARD_VARIABLES}


class ConceptResolver:
    """Evaluates concepts and splits their amounts into exempt and taxable parts."""

    def __init__(self, evaluator: FormulaEvaluator | None = None):
        self.evaluator = evaluator or FormulaEvaluator()

    def resolve(self, concept: PayrollConcept, context: Mapping[str, Any]) -> ResolvedConcept:
        """Resolve one concept.

        Args:
            concept: Concept definition
            context: Variable values for its formulas

        Returns:
            ResolvedConcept with exempt + taxable == amount

        Raises:
            InvalidInputError: If the amount or the limit evaluates negative
            FormulaError: If a formula fails to parse or evaluate
        """
        amount = LineItemBuilder.round_to_cents(self.evaluator.evaluate(concept.formula, context))
        if amount < 0:
            raise InvalidInputError(f"Concept {concept.name!r} evaluated to negative amount {amount}")

        limit: Decimal | None = None
        if concept.exempt_limit_formula:
            limit = LineItemBuilder.round_to_cents(
                self.evaluator.evaluate(concept.exempt_limit_formula, context)
            )
            if limit < 0:
                raise InvalidInputError(
                    f"Concept {concept.name!r} exemption limit evaluated negative: {limit}"
                )

        if not concept.taxable:
            exempt = amount
        elif limit is None:
            exempt = Decimal("0.00")
        else:
            exempt = min(amount, limit)

        logger.debug(
            "Resolved %s: amount=%s limit=%s exempt=%s", concept.name, amount, limit, exempt
        )
        return ResolvedConcept(
            name=concept.name,
            kind=concept.kind,
            category=concept.category,
            amount=amount,
            exempt_amount=exempt,
            taxable_amount=amount - exempt,
            base_amount=amount if concept.contributes_to_base else Decimal("0.00"),
            exempt_limit=limit,
        )

    def resolve_all(
        self,
        concepts: Iterable[PayrollConcept],
        context: Mapping[str, Any],
    ) -> ConceptSummary:
        """Resolve several concepts and total them."""
        resolved = tuple(self.resolve(concept, context) for concept in concepts)

        earnings = [r for r in resolved if r.kind == ConceptKind.EARNING]
        deductions = [r for r in resolved if r.kind == ConceptKind.DEDUCTION]

        return ConceptSummary(
            concepts=resolved,
            total_earnings=sum((r.amount for r in earnings), Decimal("0.00")),
            taxable_earnings=sum((r.taxable_amount for r in earnings), Decimal("0.00")),
            exempt_earnings=sum((r.exempt_amount for r in earnings), Decimal("0.00")),
            total_deductions=sum((r.amount for r in deductions), Decimal("0.00")),
            contribution_base=sum((r.base_amount for r in earnings), Decimal("0.00")),
        )


class PayrollConceptCatalog:
    """Immutable, name-keyed collection of concepts.

    Every formula is parsed on construction so a broken catalog fails when it
    is loaded, not in the middle of a payroll run.
    """

    def __init__(self, concepts: Iterable[PayrollConcept], evaluator: FormulaEvaluator | None = None):
        evaluator = evaluator or FormulaEvaluator()
        by_name: dict[str, PayrollConcept] = {}
        variables: dict[str, None] = {}

        for concept in concepts:
            if concept.name in by_name:
                raise ConfigurationError(f"Duplicate concept {concept.name!r}")
            for formula in (concept.formula, concept.exempt_limit_formula):
                if not formula:
                    continue
                try:
                    names = evaluator.variables(formula)
                except ParseError as exc:
                    raise ConfigurationError(f"Concept {concept.name!r}: {exc}") from exc
                for name in names:
                    variables.setdefault(name, None)
            by_name[concept.name] = concept

        self._concepts = MappingProxyType(by_name)
        self._variables = tuple(variables)

    def __len__(self) -> int:
        return len(self._concepts)

    def __iter__(self) -> Iterator[PayrollConcept]:
        return iter(self._concepts.values())

    def __contains__(self, name: object) -> bool:
        return name in self._concepts

    def __getitem__(self, name: str) -> PayrollConcept:
        return self._concepts[name]

    def get(self, name: str) -> PayrollConcept | None:
        return self._concepts.get(name)

    def earnings(self) -> tuple[PayrollConcept, ...]:
        return tuple(c for c in self if c.kind == ConceptKind.EARNING)

    def deductions(self) -> tuple[PayrollConcept, ...]:
        return tuple(c for c in self if c.kind == ConceptKind.DEDUCTION)

    def variables(self) -> tuple[str, ...]:
        """Identifiers referenced by the catalog's formulas, first appearance first."""
        return self._variables


# Statutory earnings with their LISR Art. 93 exemption limits.
STATUTORY_CONCEPTS: tuple[PayrollConcept, ...] = (
    PayrollConcept(
        name="Sueldo Base",
        kind=ConceptKind.EARNING,
        formula="SALARIO_DIARIO * DIAS_TRABAJADOS",
        category="salario",
        contributes_to_base=True,
    ),
    PayrollConcept(
        name="Prima Vacacional",
        kind=ConceptKind.EARNING,
        formula="SALARIO_DIARIO * DIAS_VACACIONES * 25%",
        category="prestacion",
        exempt_limit_formula="15 * UMA_DIARIA",
    ),
    PayrollConcept(
        name="Aguinaldo",
        kind=ConceptKind.EARNING,
        formula="SALARIO_DIARIO * DIAS_AGUINALDO",
        category="prestacion",
        exempt_limit_formula="30 * UMA_DIARIA",
    ),
    PayrollConcept(
        name="Prima Dominical",
        kind=ConceptKind.EARNING,
        formula="SALARIO_DIARIO * DOMINGOS_TRABAJADOS * 25%",
        category="prestacion",
        exempt_limit_formula="UMA_SEMANAL",
    ),
    PayrollConcept(
        name="Horas Extra Dobles",
        kind=ConceptKind.EARNING,
        formula="SALARIO_HORA * HORAS_EXTRA_DOBLES * 2",
        category="tiempo_extra",
        exempt_limit_formula="MIN(SALARIO_HORA * MIN(HORAS_EXTRA_DOBLES, 9) * 2 * 50%, 5 * UMA_SEMANAL)",
    ),
    PayrollConcept(
        name="Horas Extra Triples",
        kind=ConceptKind.EARNING,
        formula="SALARIO_HORA * HORAS_EXTRA_TRIPLES * 3",
        category="tiempo_extra",
    ),
    PayrollConcept(
        name="Dia Festivo Trabajado",
        kind=ConceptKind.EARNING,
        formula="SALARIO_DIARIO * DIAS_FESTIVOS_TRABAJADOS * 2",
        category="tiempo_extra",
    ),
    PayrollConcept(
        name="Vales de Despensa",
        kind=ConceptKind.EARNING,
        formula="MONTO_VALES",
        category="prevision_social",
        exempt_limit_formula="40% * UMA_MENSUAL",
    ),
    PayrollConcept(
        name="Bono de Puntualidad",
        kind=ConceptKind.EARNING,
        formula="MONTO_BONO",
        category="prevision_social",
        exempt_limit_formula="10% * SALARIO_PERIODO",
        contributes_to_base=True,
    ),
)


def statutory_catalog() -> PayrollConceptCatalog:
    """Catalog of the statutory earnings above."""
    return PayrollConceptCatalog(STATUTORY_CONCEPTS)
