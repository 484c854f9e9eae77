"""Pydantic schemas for API request/response models.

Money travels as strings in responses so no precision is lost in JSON.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nomina_engine.calculators.types import Periodicity, TerminationType


# ============================================================================
# Settlement schemas
# ============================================================================


class DeductionInput(BaseModel):
    """Outstanding debt subtracted from a settlement."""

    concept: str
    amount: Decimal
    description: str = ""


class SettlementRequest(BaseModel):
    """Schema for computing a settlement."""

    daily_integrated_salary: Decimal
    start_date: date
    termination_date: date
    termination_type: TerminationType
    already_paid_bonus_days: Decimal = Decimal("0")
    already_paid_vacation_days: Decimal = Decimal("0")
    unpaid_salary_days: Decimal = Decimal("0")
    vacation_balance_days: Decimal | None = None
    minimum_wage: Decimal | None = None
    bonus_days: int | None = None
    vacation_premium_percent: Decimal | None = None
    deductions: list[DeductionInput] = Field(default_factory=list)


class SettlementLineItemResponse(BaseModel):
    """Schema for a settlement line item."""

    concept: str
    description: str
    calculation_trace: str
    amount: str
    kind: str


class LaborInfoResponse(BaseModel):
    """Schema for derived service facts."""

    daily_salary: str
    years_of_service: str
    completed_years: int
    days_worked: int
    start_date: date
    termination_date: date


class SettlementBreakdownResponse(BaseModel):
    subtotal_earnings: str
    subtotal_deductions: str


class SettlementResponse(BaseModel):
    """Schema for settlement response."""

    labor_info: LaborInfoResponse
    termination_type: str
    document_type: str
    items: list[SettlementLineItemResponse]
    breakdown: SettlementBreakdownResponse
    total: str
    fingerprint: str


# ============================================================================
# Tax schemas
# ============================================================================


class TaxRequest(BaseModel):
    """Schema for computing ISR.

    Tables use the JSON rule payload format read by the table loaders.
    """

    taxable_income: Decimal
    periodicity: Periodicity
    tax_table: dict[str, Any]
    subsidy_table: dict[str, Any]


class TaxResponse(BaseModel):
    """Schema for tax response."""

    taxable_income: str
    lower_limit: str
    excess: str
    fixed_quota: str
    marginal_rate_percent: str
    marginal_tax: str
    tax: str
    subsidy: str
    net_tax: str
    effective_rate_percent: str


# ============================================================================
# Contribution schemas
# ============================================================================


class ContributionRequest(BaseModel):
    """Schema for computing contributions over a number of days."""

    base: Decimal
    days: int = 1
    rate_table: dict[str, Any]


class ContributionLineItemResponse(BaseModel):
    concept: str
    base: str
    employer_rate_percent: str
    employee_rate_percent: str
    employer_amount: str
    employee_amount: str


class ContributionResponse(BaseModel):
    """Schema for contribution response."""

    items: list[ContributionLineItemResponse]
    total_employer: str
    total_employee: str


# ============================================================================
# Formula schemas
# ============================================================================


class FormulaEvaluateRequest(BaseModel):
    formula: str
    context: dict[str, Decimal] = Field(default_factory=dict)


class FormulaEvaluateResponse(BaseModel):
    formula: str
    result: str


class FormulaPreviewRequest(BaseModel):
    formula: str
    context: dict[str, Decimal] = Field(default_factory=dict)


class FormulaPreviewResponse(BaseModel):
    """Schema for a formula preview."""

    substituted: str
    missing: list[str]


class FormulaVariableResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    example_value: str


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    kind: str | None = None
    context: dict[str, Any] | None = None
