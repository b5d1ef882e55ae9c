from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    ConfigurationError,
    ConstraintError,
    LedgerError,
    MigrationError,
    NotFoundError,
    SeedError,
    ValidationError,
)


logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConstraintError)
    async def constraint_handler(request: Request, exc: ConstraintError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(MigrationError)
    @app.exception_handler(SeedError)
    @app.exception_handler(ConfigurationError)
    async def setup_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        logger.error("request.setup_error", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=500, content={"detail": str(exc)})
