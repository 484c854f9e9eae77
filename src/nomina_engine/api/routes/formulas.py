"""Formula evaluation and preview endpoints."""

from fastapi import APIRouter, status

from nomina_engine.api.schemas import (
    ErrorResponse,
    FormulaEvaluateRequest,
    FormulaEvaluateResponse,
    FormulaPreviewRequest,
    FormulaPreviewResponse,
    FormulaVariableResponse,
)
from nomina_engine.calculators.concepts import STANDARD_VARIABLES
from nomina_engine.calculators.formula import FormulaEvaluator

router = APIRouter(prefix="/formulas", tags=["formulas"])

evaluator = FormulaEvaluator()


@router.post(
    "/evaluate",
    response_model=FormulaEvaluateResponse,
    responses={400: {"model": ErrorResponse}},
)
async def evaluate_formula(payload: FormulaEvaluateRequest) -> FormulaEvaluateResponse:
    """Evaluate a formula against a complete set of variables."""
    result = evaluator.evaluate(payload.formula, payload.context)
    return FormulaEvaluateResponse(formula=payload.formula, result=str(result))


@router.post(
    "/preview",
    response_model=FormulaPreviewResponse,
    responses={400: {"model": ErrorResponse}},
)
async def preview_formula(payload: FormulaPreviewRequest) -> FormulaPreviewResponse:
    """Substitute the known variables and list the missing ones."""
    result = evaluator.preview(payload.formula, payload.context)
    return FormulaPreviewResponse(substituted=result.substituted, missing=list(result.missing))


@router.get(
    "/variables",
    response_model=list[FormulaVariableResponse],
    status_code=status.HTTP_200_OK,
)
async def list_variables() -> list[FormulaVariableResponse]:
    """Documented formula variables with example values."""
    return [FormulaVariableResponse.model_validate(v.to_dict()) for v in STANDARD_VARIABLES]
