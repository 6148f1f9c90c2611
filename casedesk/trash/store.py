"""
Entity store backed by SQLAlchemy.

All reads and writes of trash-managed tables go through this module. Every
call on ``EntityStore`` runs in its own committed transaction; callers that
need several calls to succeed or fail together use ``EntityStore.transaction()``
and issue them on the yielded ``UnitOfWork``.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, List, Optional, Type, Union

from sqlalchemy import and_, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .entities import ENTITY_MODELS, MODELS_BY_TABLE, Base, User
from .exceptions import NotFoundError, StorageError, StorageUnavailableError
from .mixins import as_utc
from .models import EntityKind, EntityRecord

logger = logging.getLogger(__name__)

# A predicate receives the mapped class and returns a SQL criterion.
Predicate = Callable[[Any], Any]
Target = Union[EntityKind, str]


def trashed() -> Predicate:
    """Rows whose deleted-at marker is set."""
    return lambda model: model.deleted_at.isnot(None)


def active() -> Predicate:
    """Rows whose deleted-at marker is NULL."""
    return lambda model: model.deleted_at.is_(None)


def ids_in(ids: Iterable[str]) -> Predicate:
    """Rows whose primary key is in ``ids``."""
    values = list(ids)
    return lambda model: model.id.in_(values)


def foreign_key_in(field: str, ids: Iterable[str]) -> Predicate:
    """Rows whose foreign key ``field`` points at one of ``ids``."""
    values = list(ids)
    return lambda model: getattr(model, field).in_(values)


def status_in(values: Iterable[str]) -> Predicate:
    statuses = list(values)
    return lambda model: model.status.in_(statuses)


def status_not_in(values: Iterable[str]) -> Predicate:
    statuses = list(values)
    return lambda model: model.status.notin_(statuses)


def deleted_before(cutoff: datetime) -> Predicate:
    """Trashed rows whose marker is older than ``cutoff``."""
    return lambda model: and_(model.deleted_at.isnot(None), model.deleted_at < cutoff)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda model: and_(*(predicate(model) for predicate in predicates))


def model_for(target: Target) -> Type[Any]:
    """
    Resolve an entity kind or table name to its mapped class.

    Args:
        target: Entity kind, kind string, or table name

    Returns:
        Mapped SQLAlchemy class

    Raises:
        InvalidEntityKindError: If the target names neither a table nor a kind
    """
    if isinstance(target, EntityKind):
        return ENTITY_MODELS[target]
    model = MODELS_BY_TABLE.get(target)
    if model is not None:
        return model
    return ENTITY_MODELS[EntityKind.parse(target)]


def _to_record(kind: EntityKind, row: Any) -> EntityRecord:
    attributes = row.to_dict(include_deleted_fields=False)
    attributes.pop("id", None)
    return EntityRecord(
        kind=kind,
        id=row.id,
        deleted_at=as_utc(row.deleted_at) if row.deleted_at is not None else None,
        attributes=attributes,
    )


class UnitOfWork:
    """Store operations bound to one open transaction."""

    def __init__(self, session: Session):
        self.session = session

    def _get_row(self, kind: EntityKind, entity_id: str, for_update: bool) -> Any:
        model = ENTITY_MODELS[kind]
        query = self.session.query(model).filter(model.id == entity_id)
        if for_update:
            query = query.with_for_update()
        row = query.one_or_none()
        if row is None:
            raise NotFoundError(kind.value, entity_id)
        return row

    def find(
        self, kind: Target, entity_id: str, for_update: bool = False
    ) -> EntityRecord:
        """
        Read a top-level row.

        Args:
            kind: Entity kind
            entity_id: Row identifier
            for_update: Lock the row until the transaction ends

        Returns:
            Snapshot of the row

        Raises:
            NotFoundError: If no row has that identifier
        """
        entity_kind = EntityKind.parse(kind)
        row = self._get_row(entity_kind, entity_id, for_update)
        return _to_record(entity_kind, row)

    def set_deleted_at(
        self, kind: Target, entity_id: str, timestamp: Optional[datetime]
    ) -> EntityRecord:
        """Overwrite the deleted-at marker of a row."""
        entity_kind = EntityKind.parse(kind)
        row = self._get_row(entity_kind, entity_id, for_update=True)
        row.deleted_at = timestamp
        self.session.flush()
        return _to_record(entity_kind, row)

    def delete_where(self, target: Target, predicate: Predicate) -> int:
        """Remove matching rows and return how many were removed."""
        model = model_for(target)
        count = (
            self.session.query(model)
            .filter(predicate(model))
            .delete(synchronize_session=False)
        )
        return int(count or 0)

    def count_where(self, target: Target, predicate: Predicate) -> int:
        model = model_for(target)
        return int(self.session.query(model).filter(predicate(model)).count())

    def select_ids(
        self, target: Target, predicate: Predicate, for_update: bool = False
    ) -> List[str]:
        """Return primary keys of matching rows."""
        model = model_for(target)
        query = self.session.query(model.id).filter(predicate(model))
        if for_update:
            query = query.with_for_update()
        return [row[0] for row in query.all()]

    def list_where(self, kind: Target, predicate: Predicate) -> List[EntityRecord]:
        """Return snapshots of matching rows, most recently trashed first."""
        entity_kind = EntityKind.parse(kind)
        model = ENTITY_MODELS[entity_kind]
        rows = (
            self.session.query(model)
            .filter(predicate(model))
            .order_by(model.deleted_at.desc())
            .all()
        )
        return [_to_record(entity_kind, row) for row in rows]

    def lookup_role(self, user_id: str) -> Optional[str]:
        user = self.session.get(User, user_id)
        return user.role if user else None

    def add_all(self, objects: Iterable[Any]) -> None:
        self.session.add_all(list(objects))
        self.session.flush()


class EntityStore:
    """Durable storage of domain records with a nullable deleted-at marker."""

    def __init__(self, engine: Engine):
        """
        Initialize the entity store.

        Args:
            engine: SQLAlchemy engine for the backing database
        """
        self.engine = engine
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    def init_schema(self) -> None:
        """Create all tables that do not exist yet."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                f"Failed to create schema: {e}", operation="init_schema"
            ) from e

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Iterator[UnitOfWork]:
        """
        Open a transaction scope.

        Commits when the block completes and rolls back on every other exit,
        including cancellation. SQLAlchemy errors are translated into
        ``StorageUnavailableError`` or ``StorageError``.

        Args:
            operation: Label used in error messages and logs
        """
        session = self.SessionLocal()
        try:
            yield UnitOfWork(session)
            session.commit()
        except (OperationalError, InterfaceError, DisconnectionError) as e:
            self._rollback(session, operation)
            raise StorageUnavailableError(
                f"Storage unavailable during {operation}: {e}", operation=operation
            ) from e
        except SQLAlchemyError as e:
            self._rollback(session, operation)
            raise StorageError(
                f"Storage error during {operation}: {e}", operation=operation
            ) from e
        except BaseException:
            self._rollback(session, operation)
            raise
        finally:
            session.close()

    @staticmethod
    def _rollback(session: Session, operation: str) -> None:
        try:
            session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed during {operation}: {e}")

    def find(self, kind: Target, entity_id: str) -> EntityRecord:
        with self.transaction("find") as tx:
            return tx.find(kind, entity_id)

    def set_deleted_at(
        self, kind: Target, entity_id: str, timestamp: Optional[datetime]
    ) -> EntityRecord:
        with self.transaction("set_deleted_at") as tx:
            return tx.set_deleted_at(kind, entity_id, timestamp)

    def delete_where(self, target: Target, predicate: Predicate) -> int:
        with self.transaction("delete_where") as tx:
            return tx.delete_where(target, predicate)

    def count_where(self, target: Target, predicate: Predicate) -> int:
        with self.transaction("count_where") as tx:
            return tx.count_where(target, predicate)

    def select_ids(self, target: Target, predicate: Predicate) -> List[str]:
        with self.transaction("select_ids") as tx:
            return tx.select_ids(target, predicate)

    def list_where(self, kind: Target, predicate: Predicate) -> List[EntityRecord]:
        with self.transaction("list_where") as tx:
            return tx.list_where(kind, predicate)

    def lookup_role(self, user_id: str) -> Optional[str]:
        with self.transaction("lookup_role") as tx:
            return tx.lookup_role(user_id)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store(database_url: str, echo: bool = False) -> EntityStore:
    """
    Create an entity store for a database URL.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Entity store (schema not yet created)
    """
    if database_url.startswith("sqlite"):
        # SQLite doesn't support pool_size and max_overflow
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        # PostgreSQL, MySQL, etc.
        engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )

    logger.debug(f"Created entity store for {engine.url.render_as_string()}")
    return EntityStore(engine)
