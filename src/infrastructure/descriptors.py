from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Mapping, Tuple, Type, TypeVar

from sqlalchemy import (
    BigInteger, Column, DateTime, ForeignKey, Integer, MetaData, String, Table, UniqueConstraint, text,
)
from sqlalchemy.dialects.postgresql import UUID

from src.domain.models import Account, Entity, Repository

# SQLAlchemy core Table definitions
metadata = MetaData()


def _audit_columns():
    return [
        Column('created_at', DateTime(timezone=True), nullable=False, server_default=text('NOW()')),
        Column('updated_at', DateTime(timezone=True), nullable=False, server_default=text('NOW()')),
        Column('deleted_at', DateTime(timezone=True), nullable=True),
    ]


accounts_table = Table(
    'github_accounts', metadata,
    Column('id', UUID(as_uuid=False), primary_key=True, server_default=text('gen_random_uuid()')),
    Column('name', String(255), nullable=False, unique=True),
    Column('followers', Integer, nullable=False, server_default=text('0')),
    *_audit_columns(),
)

repos_table = Table(
    'github_repositories', metadata,
    Column('id', UUID(as_uuid=False), primary_key=True, server_default=text('gen_random_uuid()')),
    Column('name', String(255), nullable=False),
    Column('account_id', UUID(as_uuid=False), ForeignKey('github_accounts.id'), nullable=False),
    Column('clones', Integer, nullable=False, server_default=text('0')),
    Column('forks', Integer, nullable=False, server_default=text('0')),
    Column('stars', Integer, nullable=False, server_default=text('0')),
    Column('subscribers', Integer, nullable=False, server_default=text('0')),
    Column('views', BigInteger, nullable=False, server_default=text('0')),
    *_audit_columns(),
    UniqueConstraint('name', 'account_id'),
)

E = TypeVar('E', bound=Entity)


class EntityDescriptor(ABC, Generic[E]):
    """
    Static storage metadata for one entity kind.

    `columns` lists the mutable columns in the order used by both `to_params`
    and `update_set`; id and timestamps are owned by the database.
    """

    entity: Type[E]
    table: Table
    columns: Tuple[str, ...]

    @property
    def table_name(self) -> str:
        return self.table.name

    @abstractmethod
    def to_params(self, entity: E) -> Tuple[Any, ...]:
        """Ordered parameter tuple matching `columns`."""

    @abstractmethod
    def from_row(self, row: Mapping[str, Any]) -> E:
        """Builds a fully populated entity from a table row."""

    def update_set(self, entity: E) -> Dict[str, Any]:
        """Column assignments for an UPDATE, in column order."""
        return dict(zip(self.columns, self.to_params(entity)))

    @staticmethod
    def _audit_fields(row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            'id': str(row['id']),
            'created_at': row['created_at'],
            'updated_at': row['updated_at'],
            'deleted_at': row['deleted_at'],
        }


class AccountDescriptor(EntityDescriptor[Account]):
    entity = Account
    table = accounts_table
    columns = ('name', 'followers')

    def to_params(self, entity: Account) -> Tuple[Any, ...]:
        return (entity.name, entity.followers)

    def from_row(self, row: Mapping[str, Any]) -> Account:
        return Account(
            name=row['name'],
            followers=row['followers'],
            **self._audit_fields(row),
        )


class RepositoryDescriptor(EntityDescriptor[Repository]):
    entity = Repository
    table = repos_table
    columns = ('name', 'account_id', 'clones', 'forks', 'stars', 'subscribers', 'views')

    def to_params(self, entity: Repository) -> Tuple[Any, ...]:
        return (
            entity.name,
            entity.account_id,
            entity.clones,
            entity.forks,
            entity.stars,
            entity.subscribers,
            entity.views,
        )

    def from_row(self, row: Mapping[str, Any]) -> Repository:
        return Repository(
            name=row['name'],
            account_id=str(row['account_id']),
            clones=row['clones'],
            forks=row['forks'],
            stars=row['stars'],
            subscribers=row['subscribers'],
            views=row['views'],
            **self._audit_fields(row),
        )


DESCRIPTORS: Dict[type, EntityDescriptor] = {
    Account: AccountDescriptor(),
    Repository: RepositoryDescriptor(),
}


def descriptor_for(kind: Type[E]) -> EntityDescriptor[E]:
    """Looks up the descriptor registered for an entity class."""
    try:
        return DESCRIPTORS[kind]
    except KeyError:
        raise TypeError(f"No storage descriptor registered for {kind.__name__}.") from None
