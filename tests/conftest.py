"""Pytest fixtures for nomina engine tests.

Tables are kept as JSON rule payloads, the way the owning system stores
them, and loaded through the table loaders.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from nomina_engine.api.app import create_app
from nomina_engine.calculators.tables import (
    load_contribution_table,
    load_subsidy_table,
    load_tax_table,
)
from nomina_engine.calculators.types import (
    ContributionRateTable,
    SubsidyTable,
    TaxTable,
)

UMA_DAILY_2026 = Decimal("117.31")
MINIMUM_WAGE_2026 = Decimal("315.04")
SUBSIDY_MONTHLY_LIMIT_2026 = Decimal("11492.66")
SUBSIDY_MONTHLY_AMOUNT_2026 = Decimal("536.22")


# SAT 2026 monthly ISR table
ISR_MONTHLY_2026: dict[str, Any] = {
    "periodicity": "mensual",
    "brackets": [
        {"min": "0.01", "max": "844.59", "flat": "0", "rate": "1.92"},
        {"min": "844.60", "max": "7168.45", "flat": "16.22", "rate": "6.40"},
        {"min": "7168.46", "max": "12599.66", "flat": "420.94", "rate": "10.88"},
        {"min": "12599.67", "max": "14643.97", "flat": "1011.68", "rate": "16.00"},
        {"min": "14643.98", "max": "17529.77", "flat": "1338.77", "rate": "17.92"},
        {"min": "17529.78", "max": "35360.60", "flat": "1856.47", "rate": "21.36"},
        {"min": "35360.61", "max": "55741.63", "flat": "5665.17", "rate": "23.52"},
        {"min": "55741.64", "max": "106431.92", "flat": "10459.38", "rate": "30.00"},
        {"min": "106431.93", "max": "141909.23", "flat": "25666.46", "rate": "32.00"},
        {"min": "141909.24", "max": "425727.71", "flat": "37019.30", "rate": "34.00"},
        {"min": "425727.72", "max": None, "flat": "133517.58", "rate": "35.00"},
    ],
}

# Flat employment subsidy, monthly, 2026
SUBSIDY_MONTHLY_2026: dict[str, Any] = {
    "periodicity": "mensual",
    "brackets": [
        {"min": "0.01", "max": "11492.66", "amount": "536.22"},
        {"min": "11492.67", "max": None, "amount": "0"},
    ],
}

# IMSS and INFONAVIT rates (percent), UMA 2026
IMSS_RATES_2026: dict[str, Any] = {
    "reference_unit": "117.31",
    "cap_units": 25,
    "threshold_units": 3,
    "rates": [
        {"concept": "enfermedad_maternidad_cuota_fija", "employer_rate": "20.40", "base": "threshold"},
        {
            "concept": "enfermedad_maternidad_excedente",
            "employer_rate": "1.10",
            "employee_rate": "0.40",
            "base": "excess_over_threshold",
        },
        {"concept": "prestaciones_en_dinero", "employer_rate": "0.70", "employee_rate": "0.25"},
        {"concept": "gastos_medicos_pensionados", "employer_rate": "1.05", "employee_rate": "0.375"},
        {"concept": "invalidez_y_vida", "employer_rate": "1.75", "employee_rate": "0.625"},
        {"concept": "riesgo_de_trabajo", "employer_rate": "0.54355"},
        {"concept": "guarderias", "employer_rate": "1.00"},
        {"concept": "retiro", "employer_rate": "2.00"},
        {
            "concept": "cesantia_y_vejez",
            "brackets": [
                {"min": "0", "max": "1.0", "employer_rate": "3.15", "employee_rate": "1.125"},
                {"min": "1.0001", "max": "1.5", "employer_rate": "3.54", "employee_rate": "1.125"},
                {"min": "1.5001", "max": "2.0", "employer_rate": "4.43", "employee_rate": "1.125"},
                {"min": "2.0001", "max": "2.5", "employer_rate": "4.95", "employee_rate": "1.125"},
                {"min": "2.5001", "max": "3.0", "employer_rate": "5.31", "employee_rate": "1.125"},
                {"min": "3.0001", "max": "3.5", "employer_rate": "5.56", "employee_rate": "1.125"},
                {"min": "3.5001", "max": "4.0", "employer_rate": "5.75", "employee_rate": "1.125"},
                {"min": "4.0001", "max": None, "employer_rate": "6.42", "employee_rate": "1.125"},
            ],
        },
        {"concept": "infonavit", "employer_rate": "5.00"},
    ],
}


@pytest.fixture
def isr_monthly() -> TaxTable:
    """2026 monthly ISR table."""
    return load_tax_table(ISR_MONTHLY_2026)


@pytest.fixture
def subsidy_monthly() -> SubsidyTable:
    """2026 monthly flat employment subsidy."""
    return load_subsidy_table(SUBSIDY_MONTHLY_2026)


@pytest.fixture
def imss_rates() -> ContributionRateTable:
    """2026 IMSS/INFONAVIT rate table."""
    return load_contribution_table(IMSS_RATES_2026)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
