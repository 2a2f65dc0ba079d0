"""Shared FastAPI dependencies injected into route handlers."""

from typing import Annotated

from fastapi import Depends, Path, Request

from src.infrastructure.database import Database

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


def get_database(request: Request) -> Database:
    """The request-serving Database; background tasks hold their own."""
    return request.app.state.database


ApiDatabase = Annotated[Database, Depends(get_database)]
EntityId = Annotated[str, Path(pattern=UUID_PATTERN, description="Must be a valid UUID")]
