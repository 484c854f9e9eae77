"""Settlement (finiquito / liquidación) endpoints."""

from fastapi import APIRouter, status

from nomina_engine.api.schemas import ErrorResponse, SettlementRequest, SettlementResponse
from nomina_engine.calculators.severance import SettlementPolicy, compute_settlement
from nomina_engine.calculators.types import ConceptKind, EmploymentPeriod, SettlementLineItem

router = APIRouter(prefix="/settlements", tags=["settlements"])


def _policy(payload: SettlementRequest) -> SettlementPolicy:
    overrides = {
        name: value
        for name, value in (
            ("minimum_wage", payload.minimum_wage),
            ("bonus_days", payload.bonus_days),
            ("vacation_premium_percent", payload.vacation_premium_percent),
        )
        if value is not None
    }
    return SettlementPolicy(**overrides)


@router.post(
    "",
    response_model=SettlementResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}},
)
async def create_settlement(payload: SettlementRequest) -> SettlementResponse:
    """Compute an itemized settlement. Nothing is stored."""
    result = compute_settlement(
        EmploymentPeriod(
            daily_integrated_salary=payload.daily_integrated_salary,
            start_date=payload.start_date,
            termination_date=payload.termination_date,
        ),
        payload.termination_type,
        payload.already_paid_bonus_days,
        payload.already_paid_vacation_days,
        policy=_policy(payload),
        unpaid_salary_days=payload.unpaid_salary_days,
        vacation_balance_days=payload.vacation_balance_days,
        deductions=[
            SettlementLineItem(
                concept=d.concept,
                description=d.description,
                calculation_trace="",
                amount=d.amount,
                kind=ConceptKind.DEDUCTION,
            )
            for d in payload.deductions
        ],
    )
    return SettlementResponse.model_validate(
        {**result.to_dict(), "fingerprint": result.fingerprint()}
    )
