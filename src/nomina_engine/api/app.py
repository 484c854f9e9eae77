"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nomina_engine.api.routes import (
    contributions_router,
    formulas_router,
    health_router,
    settlements_router,
    tax_router,
)
from nomina_engine.calculators.errors import (
    ConfigurationError,
    InputError,
    ParseError,
    UnknownVariableError,
)
from nomina_engine.config import get_settings

logger = logging.getLogger(__name__)


def _error_context(exc: Exception) -> dict[str, object] | None:
    if isinstance(exc, ParseError):
        return {"position": exc.position}
    if isinstance(exc, UnknownVariableError):
        return {"names": list(exc.names)}
    return None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Nomina Engine API",
        description="Mexican payroll calculations: settlements, ISR, contributions, formulas",
        version=settings.engine_version,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError) -> JSONResponse:
        """Caller supplied invalid facts or formulas."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": str(exc),
                "code": "INPUT_ERROR",
                "kind": exc.kind,
                "context": _error_context(exc),
            },
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Externally owned tables or catalogs are malformed."""
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": str(exc),
                "code": "CONFIGURATION_ERROR",
                "kind": exc.kind,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(settlements_router, prefix="/api/v1")
    app.include_router(tax_router, prefix="/api/v1")
    app.include_router(contributions_router, prefix="/api/v1")
    app.include_router(formulas_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
