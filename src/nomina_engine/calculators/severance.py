"""Settlement (finiquito / liquidación) calculation.

Pattern:
    result = compute_settlement(
        EmploymentPeriod(
            daily_integrated_salary=Decimal("300"),
            start_date=date(2020, 1, 1),
            termination_date=date(2024, 1, 1),
        ),
        TerminationType.VOLUNTARY_RESIGNATION,
        policy=SettlementPolicy(minimum_wage=Decimal("315.04")),
    )

Date convention: the termination date is the first day no longer worked, so
``days = (termination - start).days`` and four calendar years from January 1
to January 1 are exactly four years of service.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from nomina_engine.calculators.errors import InvalidInputError
from nomina_engine.calculators.line_builder import LineItemBuilder, require_finite
from nomina_engine.calculators.types import (
    DocumentType,
    EmploymentPeriod,
    LaborInfo,
    SeparationCategory,
    SettlementLineItem,
    SettlementResult,
    TerminationType,
)

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = Decimal("365.25")
STATUTORY_BONUS_DAYS = 15  # LFT Art. 87
STATUTORY_VACATION_PREMIUM_PERCENT = Decimal("25")  # LFT Art. 80
INDEMNIFICATION_DAYS = 90  # LFT Art. 50 fr. III
DAYS_PER_YEAR_INDEMNIFICATION = 20  # LFT Art. 50 fr. II
SENIORITY_DAYS_PER_YEAR = 12  # LFT Art. 162
VOLUNTARY_SENIORITY_MIN_YEARS = 15

# Line item concepts
BONUS = "aguinaldo"
VACATION = "vacaciones"
VACATION_PREMIUM = "prima_vacacional"
INDEMNIFICATION_90_DAYS = "indemnizacion_90_dias"
INDEMNIFICATION_20_DAYS = "indemnizacion_20_dias_por_ano"
SENIORITY_PREMIUM = "prima_antiguedad"
UNPAID_SALARY = "salario_pendiente"


@dataclass(frozen=True)
class SettlementPolicy:
    """
    Explicit policy inputs for a settlement.

    Attributes:
        minimum_wage: Daily general minimum wage; caps the seniority premium
            salary at twice this amount. Default is the 2026 general zone.
        bonus_days: Annual bonus (aguinaldo) days. At least 15.
        vacation_premium_percent: Vacation premium; values below the
            statutory 25% are raised to 25%.
    """

    minimum_wage: Decimal = Decimal("315.04")
    bonus_days: int = STATUTORY_BONUS_DAYS
    vacation_premium_percent: Decimal = STATUTORY_VACATION_PREMIUM_PERCENT

    def __post_init__(self) -> None:
        """Validate policy."""
        require_finite(self.minimum_wage, "minimum_wage")
        require_finite(self.vacation_premium_percent, "vacation_premium_percent")
        if self.minimum_wage <= 0:
            raise InvalidInputError("minimum_wage must be positive")
        if self.bonus_days < STATUTORY_BONUS_DAYS:
            raise InvalidInputError(
                f"bonus_days must be at least {STATUTORY_BONUS_DAYS}, got {self.bonus_days}"
            )

    @property
    def effective_vacation_premium_percent(self) -> Decimal:
        return max(Decimal(self.vacation_premium_percent), STATUTORY_VACATION_PREMIUM_PERCENT)


def statutory_vacation_days(service_year: int) -> int:
    """Vacation days for a service year under LFT Art. 76 (2023 reform).

    Years 1-5 earn 12, 14, 16, 18, 20 days; from year 6 on, two more days
    per five-year block (22 for years 6-10, 24 for 11-15, ...).
    """
    if service_year < 1:
        raise InvalidInputError(f"Service year must be at least 1, got {service_year}")
    if service_year <= 5:
        return 10 + 2 * service_year
    return 20 + 2 * math.ceil((service_year - 5) / 5)


class SeveranceCalculator:
    """Computes settlements from an employment period and termination type.

    Pure: no ambient state, every policy input is an argument, and the same
    inputs always give the same result.
    """

    def compute(
        self,
        period: EmploymentPeriod,
        termination_type: TerminationType,
        already_paid_bonus_days: Decimal | int = 0,
        already_paid_vacation_days: Decimal | int = 0,
        *,
        policy: SettlementPolicy | None = None,
        unpaid_salary_days: Decimal | int = 0,
        vacation_balance_days: Decimal | int | None = None,
        deductions: Sequence[SettlementLineItem] = (),
    ) -> SettlementResult:
        """Compute an itemized settlement.

        Args:
            period: Salary and dates
            termination_type: Reason for the termination
            already_paid_bonus_days: Bonus days paid during the current year
            already_paid_vacation_days: Vacation days already enjoyed or paid
            policy: Minimum wage and benefit policy
            unpaid_salary_days: Worked days not yet paid
            vacation_balance_days: Pending vacation days from the kardex,
                including days carried over from earlier years. When given it
                replaces the statutory table and already_paid_vacation_days.
            deductions: Outstanding debts to subtract

        Returns:
            SettlementResult with total == earnings - deductions

        Raises:
            InvalidInputError: Invalid salary, dates, day counts or deductions
        """
        policy = policy or SettlementPolicy()
        self._validate(
            period,
            already_paid_bonus_days,
            already_paid_vacation_days,
            unpaid_salary_days,
            vacation_balance_days,
            deductions,
        )

        labor_info = self._labor_info(period)
        salary = labor_info.daily_salary
        category = termination_type.category
        logger.debug(
            "Settlement %s (%s): %d days, %d completed years",
            termination_type.value,
            category.value,
            labor_info.days_worked,
            labor_info.completed_years,
        )

        items: list[SettlementLineItem] = []
        if unpaid_salary_days:
            items.append(
                LineItemBuilder.create_earning_item(
                    UNPAID_SALARY,
                    salary * Decimal(unpaid_salary_days),
                    "Worked days pending payment",
                    f"{unpaid_salary_days} × {LineItemBuilder.money(salary)}",
                )
            )
        items.append(self._bonus(labor_info, policy, Decimal(already_paid_bonus_days)))
        if vacation_balance_days is None:
            items.extend(
                self._vacation(labor_info, policy, Decimal(already_paid_vacation_days))
            )
        else:
            items.extend(
                self._vacation_from_balance(labor_info, policy, Decimal(vacation_balance_days))
            )
        if self._pays_indemnification(category):
            items.extend(self._indemnification(labor_info))
        if self._pays_seniority_premium(category, labor_info.completed_years):
            items.append(self._seniority_premium(labor_info, policy))

        for deduction in deductions:
            items.append(
                LineItemBuilder.create_deduction_item(
                    deduction.concept,
                    deduction.amount,
                    deduction.description,
                    deduction.calculation_trace,
                )
            )

        breakdown = LineItemBuilder.breakdown(items)
        document_type = (
            DocumentType.LIQUIDACION
            if category == SeparationCategory.EMPLOYER_LIABLE
            else DocumentType.FINIQUITO
        )
        return SettlementResult(
            labor_info=labor_info,
            termination_type=termination_type,
            document_type=document_type,
            items=tuple(items),
            breakdown=breakdown,
            total=LineItemBuilder.total(breakdown),
        )

    def _validate(
        self,
        period: EmploymentPeriod,
        paid_bonus_days: Decimal | int,
        paid_vacation_days: Decimal | int,
        unpaid_salary_days: Decimal | int,
        vacation_balance_days: Decimal | int | None,
        deductions: Sequence[SettlementLineItem],
    ) -> None:
        require_finite(period.daily_integrated_salary, "daily_integrated_salary")
        if period.daily_integrated_salary <= 0:
            raise InvalidInputError(
                f"Daily salary must be positive: {period.daily_integrated_salary}"
            )
        if period.termination_date <= period.start_date:
            raise InvalidInputError(
                f"Termination date {period.termination_date} must be after "
                f"start date {period.start_date}"
            )
        for name, value in (
            ("already_paid_bonus_days", paid_bonus_days),
            ("already_paid_vacation_days", paid_vacation_days),
            ("unpaid_salary_days", unpaid_salary_days),
            ("vacation_balance_days", vacation_balance_days),
        ):
            if value is None:
                continue
            require_finite(value, name)
            if value < 0:
                raise InvalidInputError(f"{name} cannot be negative: {value}")
        for deduction in deductions:
            require_finite(deduction.amount, f"Deduction {deduction.concept!r}")
            if deduction.amount < 0:
                raise InvalidInputError(
                    f"Deduction {deduction.concept!r} cannot be negative: {deduction.amount}"
                )

    def _labor_info(self, period: EmploymentPeriod) -> LaborInfo:
        days = (period.termination_date - period.start_date).days
        years = Decimal(days) / DAYS_PER_YEAR
        return LaborInfo(
            daily_salary=period.daily_integrated_salary,
            years_of_service=years.quantize(Decimal("0.0001")),
            completed_years=int(years),  # floor, years is positive
            days_worked=days,
            start_date=period.start_date,
            termination_date=period.termination_date,
        )

    def _bonus(
        self,
        info: LaborInfo,
        policy: SettlementPolicy,
        paid_days: Decimal,
    ) -> SettlementLineItem:
        """Proportional bonus for the calendar year of the last day worked."""
        last_day = info.termination_date - timedelta(days=1)
        bonus_start = max(date(last_day.year, 1, 1), info.start_date)
        days_in_year = (date(last_day.year + 1, 1, 1) - date(last_day.year, 1, 1)).days
        days_in_bonus_year = (info.termination_date - bonus_start).days

        salary = info.daily_salary
        amount = (
            salary * policy.bonus_days * Decimal(days_in_bonus_year) / Decimal(days_in_year)
            - paid_days * salary
        )
        return LineItemBuilder.create_earning_item(
            BONUS,
            amount,
            "Proportional annual bonus (aguinaldo)",
            f"{LineItemBuilder.money(salary)} × {policy.bonus_days} × "
            f"{days_in_bonus_year}/{days_in_year} − {paid_days} × {LineItemBuilder.money(salary)}",
        )

    def _vacation(
        self,
        info: LaborInfo,
        policy: SettlementPolicy,
        paid_days: Decimal,
    ) -> list[SettlementLineItem]:
        """Pending vacation days and their premium."""
        service_year = max(info.completed_years, 1)
        entitled = statutory_vacation_days(service_year)
        pending = max(Decimal(entitled) - paid_days, Decimal("0"))
        salary = info.daily_salary

        return [
            LineItemBuilder.create_earning_item(
                VACATION,
                pending * salary,
                f"Pending vacation days (service year {service_year}: {entitled} days)",
                f"({entitled} − {paid_days}) × {LineItemBuilder.money(salary)}",
            ),
            self._vacation_premium(salary, pending, policy),
        ]

    def _vacation_from_balance(
        self,
        info: LaborInfo,
        policy: SettlementPolicy,
        balance: Decimal,
    ) -> list[SettlementLineItem]:
        """Pending vacation taken from the kardex balance, carryover included."""
        salary = info.daily_salary
        return [
            LineItemBuilder.create_earning_item(
                VACATION,
                balance * salary,
                "Pending vacation days (kardex balance)",
                f"kardex balance {balance} × {LineItemBuilder.money(salary)}",
            ),
            self._vacation_premium(salary, balance, policy, source="kardex balance "),
        ]

    def _vacation_premium(
        self,
        salary: Decimal,
        pending: Decimal,
        policy: SettlementPolicy,
        source: str = "",
    ) -> SettlementLineItem:
        premium_percent = policy.effective_vacation_premium_percent
        return LineItemBuilder.create_earning_item(
            VACATION_PREMIUM,
            pending * salary * premium_percent / 100,
            f"Vacation premium ({premium_percent}%)",
            f"{source}{pending} × {LineItemBuilder.money(salary)} × {premium_percent}%",
        )

    def _pays_indemnification(self, category: SeparationCategory) -> bool:
        if category == SeparationCategory.EMPLOYER_LIABLE:
            return True
        if category in (
            SeparationCategory.SEPARATED,
            SeparationCategory.VOLUNTARY,
            SeparationCategory.ORDINARY,
        ):
            return False
        raise ValueError(f"Unhandled separation category: {category}")

    def _pays_seniority_premium(self, category: SeparationCategory, completed_years: int) -> bool:
        if category == SeparationCategory.VOLUNTARY:
            return completed_years >= VOLUNTARY_SENIORITY_MIN_YEARS
        if category in (SeparationCategory.EMPLOYER_LIABLE, SeparationCategory.SEPARATED):
            return completed_years >= 1
        if category == SeparationCategory.ORDINARY:
            return False
        raise ValueError(f"Unhandled separation category: {category}")

    def _indemnification(self, info: LaborInfo) -> list[SettlementLineItem]:
        salary = info.daily_salary
        money = LineItemBuilder.money(salary)
        return [
            LineItemBuilder.create_earning_item(
                INDEMNIFICATION_90_DAYS,
                salary * INDEMNIFICATION_DAYS,
                "Constitutional indemnification (90 days)",
                f"{INDEMNIFICATION_DAYS} × {money}",
            ),
            LineItemBuilder.create_earning_item(
                INDEMNIFICATION_20_DAYS,
                salary * DAYS_PER_YEAR_INDEMNIFICATION * info.completed_years,
                "Indemnification (20 days per year of service)",
                f"{DAYS_PER_YEAR_INDEMNIFICATION} × {info.completed_years} × {money}",
            ),
        ]

    def _seniority_premium(self, info: LaborInfo, policy: SettlementPolicy) -> SettlementLineItem:
        cap = policy.minimum_wage * 2
        base_salary = min(info.daily_salary, cap)
        return LineItemBuilder.create_earning_item(
            SENIORITY_PREMIUM,
            base_salary * SENIORITY_DAYS_PER_YEAR * info.completed_years,
            "Seniority premium (12 days per year, salary capped at 2 minimum wages)",
            f"min({LineItemBuilder.money(info.daily_salary)}, {LineItemBuilder.money(cap)}) × "
            f"{SENIORITY_DAYS_PER_YEAR} × {info.completed_years}",
        )


def compute_settlement(
    period: EmploymentPeriod,
    termination_type: TerminationType,
    already_paid_bonus_days: Decimal | int = 0,
    already_paid_vacation_days: Decimal | int = 0,
    *,
    policy: SettlementPolicy | None = None,
    unpaid_salary_days: Decimal | int = 0,
    vacation_balance_days: Decimal | int | None = None,
    deductions: Sequence[SettlementLineItem] = (),
) -> SettlementResult:
    """Compute a settlement. See SeveranceCalculator.compute."""
    return SeveranceCalculator().compute(
        period,
        termination_type,
        already_paid_bonus_days,
        already_paid_vacation_days,
        policy=policy,
        unpaid_salary_days=unpaid_salary_days,
        vacation_balance_days=vacation_balance_days,
        deductions=deductions,
    )
