"""Social security contribution endpoints."""

from decimal import Decimal

from fastapi import APIRouter, status

from nomina_engine.api.schemas import (
    ContributionLineItemResponse,
    ContributionRequest,
    ContributionResponse,
    ErrorResponse,
)
from nomina_engine.calculators.contributions import compute_contributions
from nomina_engine.calculators.tables import load_contribution_table

router = APIRouter(prefix="/contributions", tags=["contributions"])


@router.post(
    "",
    response_model=ContributionResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def calculate_contributions(payload: ContributionRequest) -> ContributionResponse:
    """Compute employer and employee contributions for a daily base."""
    items = compute_contributions(
        payload.base,
        load_contribution_table(payload.rate_table),
        payload.days,
    )
    return ContributionResponse(
        items=[ContributionLineItemResponse.model_validate(item.to_dict()) for item in items],
        total_employer=str(sum((item.employer_amount for item in items), Decimal("0.00"))),
        total_employee=str(sum((item.employee_amount for item in items), Decimal("0.00"))),
    )
