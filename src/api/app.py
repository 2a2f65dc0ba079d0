"""FastAPI application factory.

The app only sees the request-serving Database. The recurring sync task, if
given, is started and stopped with the app's lifespan so both share the
server's event loop.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.middleware import RequestLoggingMiddleware
from src.api.routers import github, health
from src.application.scheduler import RecurringTask
from src.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from src.infrastructure.database import Database

logger = logging.getLogger(__name__)


def create_app(database: Database, scheduler: Optional[RecurringTask] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if scheduler is not None:
            scheduler.start()
        yield
        if scheduler is not None:
            await scheduler.stop()
        logger.info("API shut down")

    app = FastAPI(
        title=health.SERVICE_NAME,
        version=health.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.database = database

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router)
    app.include_router(github.router)

    _register_error_handlers(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} - Invalid request")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(ValidationError)
    async def invalid_payload(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(PersistenceError)
    async def storage_failure(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} - Database error: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})
