from typing import Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.domain.exceptions import ParseError


class _GitHubResponse(BaseModel):
    # GitHub returns far more keys than we read.
    model_config = ConfigDict(extra='ignore', frozen=True)


class RepoStats(_GitHubResponse):
    """Subset of GET /repos/{owner}/{repo}."""
    stargazers_count: int = Field(..., ge=0)
    forks_count: int = Field(..., ge=0)
    subscribers_count: int = Field(..., ge=0)


class TrafficStats(_GitHubResponse):
    """Subset of GET /repos/{owner}/{repo}/traffic/{clones,views}."""
    count: int = Field(..., ge=0)
    uniques: int = Field(0, ge=0)


class OrgStats(_GitHubResponse):
    """Subset of GET /orgs/{org}."""
    followers: int = Field(..., ge=0)


R = TypeVar('R', bound=_GitHubResponse)


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST response bodies into typed metric snapshots.
    """

    @staticmethod
    def to_repo_stats(raw_body: str) -> RepoStats:
        return GitHubTranslator._parse(RepoStats, raw_body)

    @staticmethod
    def to_traffic(raw_body: str) -> TrafficStats:
        return GitHubTranslator._parse(TrafficStats, raw_body)

    @staticmethod
    def to_org_stats(raw_body: str) -> OrgStats:
        return GitHubTranslator._parse(OrgStats, raw_body)

    @staticmethod
    def _parse(model: Type[R], raw_body: str) -> R:
        """
        Validates a raw JSON body against a response model.

        Raises:
            ParseError: If the body is not JSON or lacks a required field.
        """
        try:
            return model.model_validate_json(raw_body)
        except PydanticValidationError as e:
            raise ParseError(f"Parse failed for {model.__name__}: {e.errors()[0].get('msg', e)}") from e
