"""API routes."""

from nomina_engine.api.routes.contributions import router as contributions_router
from nomina_engine.api.routes.formulas import router as formulas_router
from nomina_engine.api.routes.health import router as health_router
from nomina_engine.api.routes.settlements import router as settlements_router
from nomina_engine.api.routes.tax import router as tax_router

__all__ = [
    "contributions_router",
    "formulas_router",
    "health_router",
    "settlements_router",
    "tax_router",
]
