"""Health check and route listing, served outside the /api prefix."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from src.api.dependencies import ApiDatabase
from src.domain.exceptions import PersistenceError

router = APIRouter(tags=["system"])
logger = logging.getLogger(__name__)

SERVICE_NAME = "GitHub Insights API"
SERVICE_VERSION = "1.0.0"


@router.get("/health")
async def health_check(database: ApiDatabase) -> JSONResponse:
    """Health check endpoint - verifies database connectivity."""
    try:
        await database.ping()
    except PersistenceError as exc:
        logger.error(f"Health check DB probe failed: {exc}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "disconnected", "error": str(exc)},
        )
    return JSONResponse(content={"status": "healthy", "database": "connected"})


@router.get("/routes")
async def list_routes(request: Request) -> dict:
    """Lists all available API endpoints."""
    endpoints = []
    for route in request.app.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in sorted(route.methods):
            endpoints.append({
                "path": route.path,
                "method": method,
                "description": route.description,
            })
    return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "endpoints": endpoints}
