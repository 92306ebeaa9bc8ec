"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from spa_operations.api.operations import router as operations_router
from spa_operations.api.reports import router as reports_router
from spa_operations.api.system import router as system_router
from spa_operations.app_logging import configure_logging
from spa_operations.containers import AppContainer
from spa_operations.errors import (
    AppError,
    AuthenticationError,
    BusinessRuleError,
    ErrorCategory,
    NotFoundError,
    ValidationError,
)


def create_app(container: AppContainer, *, start_background: bool = True) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            state_container.day_service.load()
        except Exception as exc:
            state_container.error_handler.handle(exc, context="Initial load")
        if start_background:
            for task in state_container.periodic_tasks:
                task.start()
        yield
        await state_container.close_resources()
        logger.info("Shut down")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(operations_router)
    app.include_router(reports_router)
    app.include_router(system_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        state_container: AppContainer = request.app.state.container
        error = state_container.error_handler.handle(
            exc, context=f"{request.method} {request.url.path}"
        )
        return JSONResponse(
            status_code=status_for(error), content={"error": error.to_dict()}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def status_for(error: AppError) -> int:
    """Map an application error to an HTTP status code."""
    if isinstance(error, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, BusinessRuleError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if error.retryable and error.category in {
        ErrorCategory.NETWORK,
        ErrorCategory.EXTERNAL_SERVICE,
    }:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR
