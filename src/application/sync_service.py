import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import aiohttp

from src.domain.exceptions import ClientInitError, ParseError, PersistenceError, RemoteAPIError
from src.domain.models import Account, Repository
from src.infrastructure.acl import GitHubTranslator
from src.infrastructure.database import Database
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

# Failures that cost a single entity its update; the stage moves on.
ITEM_ERRORS = (RemoteAPIError, ParseError, PersistenceError)


@dataclass
class StageReport:
    """Per-entity outcome of one pipeline stage."""
    stage: str
    updated: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    # Set when the stage could not even list its entities.
    error: Optional[str] = None

    def record_failure(self, entity_id: str, reason: str) -> None:
        self.failures.append((entity_id, reason))

    def summary(self) -> str:
        if self.error:
            return f"{self.stage}: aborted ({self.error})"
        return f"{self.stage}: {len(self.updated)} updated, {len(self.failures)} failed"


@dataclass
class SyncReport:
    repositories: StageReport
    accounts: StageReport

    @property
    def failures(self) -> List[Tuple[str, str]]:
        return self.repositories.failures + self.accounts.failures


class SyncService:
    """
    Service responsible for reconciling stored metrics with the GitHub REST API.

    A run has two sequential stages: repositories first, then accounts. A
    failure on one entity is logged and recorded, and the stage continues
    with the next one. Observed values are added to the stored counters.
    """

    def __init__(
            self,
            database: Database,
            github_token: str,
            ca_file: Optional[str] = None,
            client_factory: Callable[..., GitHubRestClient] = GitHubRestClient,
    ):
        self.database = database
        self.github_token = github_token
        self.ca_file = ca_file
        self.client_factory = client_factory

    async def sync_stats(self) -> SyncReport:
        """
        Runs the full pipeline: Repositories -> Accounts.

        Raises:
            ClientInitError: If the GitHub client cannot be built; no stage runs.
        """
        client = self.client_factory(token=self.github_token, ca_file=self.ca_file)

        async with client.open_session() as session:
            repo_report = await self.update_repositories(client, session)
            account_report = await self.update_accounts(client, session)

        report = SyncReport(repositories=repo_report, accounts=account_report)
        logger.info(f"Sync finished. {repo_report.summary()}; {account_report.summary()}.")
        for entity_id, reason in report.failures:
            logger.warning(f"Sync failure for {entity_id}: {reason}")
        return report

    async def update_repositories(
        self, client: Optional[GitHubRestClient], session: aiohttp.ClientSession,
    ) -> StageReport:
        """Adds fresh stars/forks/subscribers/clones/views to every live repository."""
        if client is None:
            logger.error("HTTP client is not initialized.")
            raise ClientInitError("Client initialization failed")

        report = StageReport(stage="repositories")
        try:
            repositories = await self.database.list_all(Repository)
        except PersistenceError as e:
            logger.error(f"Could not list repositories: {e}")
            report.error = str(e)
            return report

        for repository in repositories:
            try:
                account = await self.database.get(Account, repository.account_id)
            except PersistenceError as e:
                logger.warning(f"Skipping repository {repository.id} ({repository.name}): {e}")
                report.record_failure(repository.id, str(e))
                continue

            try:
                updated = await self._sync_repository(client, session, account, repository)
            except ITEM_ERRORS as e:
                logger.error(f"Repository {account.name}/{repository.name} not updated: {e}")
                report.record_failure(repository.id, str(e))
                continue

            logger.info(
                f"Repo: ID: {updated.id}, Name: {updated.name}, AccountId: {updated.account_id}, "
                f"Clones: {updated.clones}, Forks: {updated.forks}, Stars: {updated.stars}, "
                f"Subscribers: {updated.subscribers}, Views: {updated.views}"
            )
            report.updated.append(updated.id)

        return report

    async def update_accounts(
        self, client: Optional[GitHubRestClient], session: aiohttp.ClientSession,
    ) -> StageReport:
        """Adds fresh follower counts to every live account."""
        if client is None:
            logger.error("HTTP client is not initialized.")
            raise ClientInitError("Client initialization failed")

        report = StageReport(stage="accounts")
        try:
            accounts = await self.database.list_all(Account)
        except PersistenceError as e:
            logger.error(f"Could not list accounts: {e}")
            report.error = str(e)
            return report

        for account in accounts:
            try:
                body = await client.fetch(session, client.org_url(account.name))
                stats = GitHubTranslator.to_org_stats(body)
                updated = await self.database.update(
                    account.model_copy(update={'followers': account.followers + stats.followers})
                )
            except ITEM_ERRORS as e:
                logger.error(f"Account {account.name} not updated: {e}")
                report.record_failure(account.id, str(e))
                continue

            logger.info(f"Account: ID: {updated.id}, Name: {updated.name}, Followers: {updated.followers}")
            report.updated.append(updated.id)

        return report

    async def _sync_repository(
        self,
        client: GitHubRestClient,
        session: aiohttp.ClientSession,
        account: Account,
        repository: Repository,
    ) -> Repository:
        stats = GitHubTranslator.to_repo_stats(
            await client.fetch(session, client.repo_url(account.name, repository.name))
        )
        clones = GitHubTranslator.to_traffic(
            await client.fetch(session, client.clones_url(account.name, repository.name))
        )
        views = GitHubTranslator.to_traffic(
            await client.fetch(session, client.views_url(account.name, repository.name))
        )

        merged = repository.model_copy(update={
            'forks': repository.forks + stats.forks_count,
            'stars': repository.stars + stats.stargazers_count,
            'subscribers': repository.subscribers + stats.subscribers_count,
            'clones': repository.clones + clones.count,
            'views': repository.views + views.count,
        })
        return await self.database.update(merged)
