"""Payroll calculation engine."""

from nomina_engine.calculators.concepts import (
    STANDARD_VARIABLES,
    ConceptResolver,
    PayrollConceptCatalog,
    example_context,
    statutory_catalog,
)
from nomina_engine.calculators.contributions import (
    ContributionCalculator,
    compute_contributions,
    contribution_base,
    integrated_daily_salary,
)
from nomina_engine.calculators.errors import (
    ConfigurationError,
    DivisionByZeroError,
    FormulaError,
    InputError,
    InvalidBracketTableError,
    InvalidInputError,
    NominaEngineError,
    ParseError,
    UnknownVariableError,
)
from nomina_engine.calculators.formula import FormulaEvaluator, evaluate, preview
from nomina_engine.calculators.line_builder import LineItemBuilder
from nomina_engine.calculators.severance import (
    SettlementPolicy,
    SeveranceCalculator,
    compute_settlement,
)
from nomina_engine.calculators.tax_calculator import (
    TaxCalculator,
    compute_tax,
    flat_subsidy_table,
)

__all__ = [
    "STANDARD_VARIABLES",
    "ConceptResolver",
    "ConfigurationError",
    "ContributionCalculator",
    "DivisionByZeroError",
    "FormulaError",
    "FormulaEvaluator",
    "InputError",
    "InvalidBracketTableError",
    "InvalidInputError",
    "LineItemBuilder",
    "NominaEngineError",
    "ParseError",
    "PayrollConceptCatalog",
    "SettlementPolicy",
    "SeveranceCalculator",
    "TaxCalculator",
    "UnknownVariableError",
    "compute_contributions",
    "compute_settlement",
    "compute_tax",
    "contribution_base",
    "evaluate",
    "example_context",
    "flat_subsidy_table",
    "integrated_daily_salary",
    "preview",
    "statutory_catalog",
]
