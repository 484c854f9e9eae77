"""ISR endpoints."""

from fastapi import APIRouter, status

from nomina_engine.api.schemas import ErrorResponse, TaxRequest, TaxResponse
from nomina_engine.calculators.tables import load_subsidy_table, load_tax_table
from nomina_engine.calculators.tax_calculator import compute_tax

router = APIRouter(prefix="/tax", tags=["tax"])


@router.post(
    "",
    response_model=TaxResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def calculate_tax(payload: TaxRequest) -> TaxResponse:
    """Compute ISR withholding against the supplied tables."""
    result = compute_tax(
        payload.taxable_income,
        payload.periodicity,
        load_tax_table(payload.tax_table),
        load_subsidy_table(payload.subsidy_table),
    )
    return TaxResponse.model_validate(result.to_dict())
