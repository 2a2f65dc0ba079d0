"""CRUD endpoints for tracked GitHub accounts and repositories.

Storage errors are not handled here: NotFoundError and PersistenceError
propagate to the exception handlers registered in ``src.api.app``.
"""

import logging
from typing import List

from fastapi import APIRouter

from src.api.dependencies import ApiDatabase, EntityId
from src.api.schemas import (
    AccountOut,
    CreateAccountSchema,
    CreateRepositorySchema,
    RepositoryOut,
    UpdateAccountSchema,
    UpdateRepositorySchema,
    changed_fields,
)
from src.domain.exceptions import ValidationError
from src.domain.models import Account, Repository

router = APIRouter(prefix="/api/github", tags=["github"])
logger = logging.getLogger(__name__)


# ---------- Accounts ----------

@router.get("/accounts", response_model=List[AccountOut])
async def list_accounts(database: ApiDatabase) -> List[AccountOut]:
    """Get all github accounts."""
    accounts = await database.list_all(Account)
    return [AccountOut.from_entity(account) for account in accounts]


@router.post("/accounts", response_model=AccountOut, status_code=201)
async def create_account(body: CreateAccountSchema, database: ApiDatabase) -> AccountOut:
    """Create a new github account."""
    account = await database.create(Account(name=body.name, followers=body.followers or 0))
    logger.info(f"Created account '{account.name}' with ID: {account.id}")
    return AccountOut.from_entity(account)


@router.get("/accounts/{account_id}", response_model=AccountOut)
async def get_account(account_id: EntityId, database: ApiDatabase) -> AccountOut:
    """Get a specific github account by ID."""
    return AccountOut.from_entity(await database.get(Account, account_id))


@router.patch("/accounts/{account_id}", response_model=AccountOut)
async def update_account(
    account_id: EntityId, body: UpdateAccountSchema, database: ApiDatabase
) -> AccountOut:
    """Update a github account by ID."""
    changes = changed_fields(body)
    if not changes:
        raise ValidationError("No fields to update")

    current = await database.get(Account, account_id)
    account = await database.update(current.model_copy(update=changes))
    logger.info(f"Updated account '{account.name}'")
    return AccountOut.from_entity(account)


@router.delete("/accounts/{account_id}", response_model=AccountOut)
async def delete_account(account_id: EntityId, database: ApiDatabase) -> AccountOut:
    """Soft delete a github account by ID."""
    account = await database.remove(Account, account_id)
    logger.info(f"Deleted account '{account.name}'")
    return AccountOut.from_entity(account)


# ---------- Repositories ----------

@router.get("/repos", response_model=List[RepositoryOut])
async def list_repositories(database: ApiDatabase) -> List[RepositoryOut]:
    """Get all github repositories."""
    repositories = await database.list_all(Repository)
    return [RepositoryOut.from_entity(repository) for repository in repositories]


@router.post("/repos", response_model=RepositoryOut, status_code=201)
async def create_repository(body: CreateRepositorySchema, database: ApiDatabase) -> RepositoryOut:
    """Create a new github repository."""
    repository = await database.create(
        Repository(
            name=body.name,
            account_id=body.account_id,
            clones=body.clones or 0,
            forks=body.forks or 0,
            stars=body.stars or 0,
            subscribers=body.subscribers or 0,
            views=body.views or 0,
        )
    )
    logger.info(f"Created repository '{repository.name}' with ID: {repository.id}")
    return RepositoryOut.from_entity(repository)


@router.get("/repos/{repo_id}", response_model=RepositoryOut)
async def get_repository(repo_id: EntityId, database: ApiDatabase) -> RepositoryOut:
    """Get a specific github repository by ID."""
    return RepositoryOut.from_entity(await database.get(Repository, repo_id))


@router.patch("/repos/{repo_id}", response_model=RepositoryOut)
async def update_repository(
    repo_id: EntityId, body: UpdateRepositorySchema, database: ApiDatabase
) -> RepositoryOut:
    """Update a github repository by ID."""
    changes = changed_fields(body)
    if not changes:
        raise ValidationError("No fields to update")

    current = await database.get(Repository, repo_id)
    repository = await database.update(current.model_copy(update=changes))
    logger.info(f"Updated repository '{repository.name}'")
    return RepositoryOut.from_entity(repository)


@router.delete("/repos/{repo_id}", response_model=RepositoryOut)
async def delete_repository(repo_id: EntityId, database: ApiDatabase) -> RepositoryOut:
    """Soft delete a github repository by ID."""
    repository = await database.remove(Repository, repo_id)
    logger.info(f"Deleted repository '{repository.name}'")
    return RepositoryOut.from_entity(repository)
