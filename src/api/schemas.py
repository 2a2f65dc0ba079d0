"""Request and response bodies for the GitHub API routes."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.api.dependencies import UUID_PATTERN
from src.domain.models import Account, Repository


class _Body(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _NamedBody(_Body):
    name: str = Field(..., min_length=1, max_length=255)

    # Length limits apply to the stored form of the name.
    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class CreateAccountSchema(_NamedBody):
    followers: Optional[int] = Field(None, ge=0)


class UpdateAccountSchema(_Body):
    followers: Optional[int] = Field(None, ge=0)


class CreateRepositorySchema(_NamedBody):
    account_id: str = Field(..., pattern=UUID_PATTERN)
    clones: Optional[int] = Field(None, ge=0)
    forks: Optional[int] = Field(None, ge=0)
    stars: Optional[int] = Field(None, ge=0)
    subscribers: Optional[int] = Field(None, ge=0)
    views: Optional[int] = Field(None, ge=0)


class UpdateRepositorySchema(_Body):
    clones: Optional[int] = Field(None, ge=0)
    forks: Optional[int] = Field(None, ge=0)
    stars: Optional[int] = Field(None, ge=0)
    subscribers: Optional[int] = Field(None, ge=0)
    views: Optional[int] = Field(None, ge=0)


def changed_fields(body: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent with a value."""
    return body.model_dump(exclude_unset=True, exclude_none=True)


class AccountOut(BaseModel):
    id: str
    name: str
    followers: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, account: Account) -> "AccountOut":
        return cls.model_validate(account.model_dump())


class RepositoryOut(BaseModel):
    id: str
    name: str
    account_id: str
    clones: int
    forks: int
    stars: int
    subscribers: int
    views: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, repository: Repository) -> "RepositoryOut":
        return cls.model_validate(repository.model_dump())
