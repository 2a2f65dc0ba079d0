from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class Entity(BaseModel):
    """
    Common shape of every tracked entity.
    Identifier and timestamps are assigned by the database; they are unset on
    entities that have not been persisted yet.
    """
    # Enforces immutability: changes go through model_copy(update=...).
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Server-generated UUID")
    name: str = Field(..., min_length=1, description="Natural key, stored lowercase")
    created_at: Optional[datetime] = Field(None, description="Insertion timestamp")
    updated_at: Optional[datetime] = Field(None, description="Timestamp of the last update")
    deleted_at: Optional[datetime] = Field(None, description="Soft-delete marker")

    @field_validator('name', mode='before')
    @classmethod
    def _lowercase_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Account(Entity):
    """A GitHub organization account owning zero or more repositories."""

    followers: int = Field(0, ge=0, description="Follower count")


class Repository(Entity):
    """A GitHub repository tracked under an Account."""

    account_id: str = Field(..., description="Identifier of the owning Account")
    clones: int = Field(0, ge=0)
    forks: int = Field(0, ge=0)
    stars: int = Field(0, ge=0)
    subscribers: int = Field(0, ge=0)
    views: int = Field(0, ge=0)
