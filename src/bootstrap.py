"""Seed the database from a component catalog.

Usage::

    python -m src.bootstrap data/components.json --account icicle-ai --create-schema

The catalog looks like ``{"components": [{"name": "core"}, ...]}``. One
repository is created per component under the given account; the account is
created unless a live one with that name exists.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.config import Settings
from src.domain.exceptions import ConfigError, DatabaseConnectionError, PersistenceError
from src.domain.models import Account, Repository
from src.infrastructure.database import Database
from src.logging_config import configure_logging

logger = logging.getLogger(__name__)


class Component(BaseModel):
    name: str


class Catalog(BaseModel):
    components: List[Component]


def load_catalog(path: Path) -> Catalog:
    try:
        return Catalog.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
        raise ConfigError(f"Could not read catalog {path}: {e}") from e


async def ensure_account(database: Database, name: str) -> Account:
    wanted = Account(name=name)
    for account in await database.list_all(Account):
        if account.name == wanted.name:
            logger.info(f"Reusing account '{account.name}' ({account.id})")
            return account
    account = await database.create(wanted)
    logger.info(f"Created account '{account.name}' ({account.id})")
    return account


async def import_catalog(database: Database, catalog: Catalog, account_name: str) -> List[Repository]:
    """Creates one repository per component; failures are logged and skipped."""
    account = await ensure_account(database, account_name)
    created = []
    for component in catalog.components:
        try:
            repository = await database.create(Repository(name=component.name, account_id=account.id))
        except PersistenceError as e:
            logger.warning(f"Skipping component '{component.name}': {e}")
            continue
        logger.info(f"Created repository '{repository.name}' ({repository.id})")
        created.append(repository)
    logger.info(f"Imported {len(created)}/{len(catalog.components)} components.")
    return created


async def run(args: argparse.Namespace) -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_dir)
    catalog = load_catalog(Path(args.catalog))

    database = await Database.connect(settings.database_url)
    try:
        if args.create_schema:
            await database.create_schema()
        await import_catalog(database, catalog, args.account)
    finally:
        await database.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import a component catalog into the insights database.")
    parser.add_argument("catalog", help="Path to the catalog JSON file")
    parser.add_argument("--account", required=True, help="GitHub organization owning the components")
    parser.add_argument("--create-schema", action="store_true", help="Create the tables first")
    args = parser.parse_args(argv)

    try:
        asyncio.run(run(args))
    except (ConfigError, DatabaseConnectionError, PersistenceError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
