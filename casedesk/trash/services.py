"""
Service layer for the trash lifecycle.

Provides soft delete, restore, permanent purge and batch emptying of the
trash. Authorization is checked before any store access, and every
check-then-mutate sequence runs inside a single store transaction so the
deleted-at marker is read fresh right before it is acted on.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from ..access_control import Actor, Permission, ensure_permission
from ..config import CaseDeskConfig, get_config
from .cascade import CascadeResolver, default_resolver, execute_plan
from .exceptions import (
    EmptyTrashError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    TrashError,
)
from .mixins import as_utc, utcnow
from .models import (
    EmptyTrashResult,
    EntityKind,
    EntityRecord,
    PurgeResult,
    TrashedItem,
)
from .store import (
    EntityStore,
    Predicate,
    all_of,
    deleted_before,
    ids_in,
    trashed,
)

logger = logging.getLogger(__name__)


def _display(record: EntityRecord) -> Dict[str, Optional[str]]:
    """Name and description shown for a trashed record."""
    attrs = record.attributes
    if record.kind is EntityKind.CASE:
        return {
            "name": f"#{attrs.get('case_number', '')}",
            "description": attrs.get("patient_name"),
        }
    if record.kind is EntityKind.INVOICE:
        total = attrs.get("total") or 0
        return {
            "name": f"#{attrs.get('invoice_number', '')}",
            "description": f"{float(total):.2f}",
        }
    if record.kind is EntityKind.PARTNER:
        return {"name": attrs.get("name") or "", "description": None}
    if record.kind is EntityKind.OUR_COMPANY:
        return {
            "name": attrs.get("name") or "",
            "description": attrs.get("legal_name") or None,
        }
    raise AssertionError(f"Unhandled entity kind: {record.kind}")


class TrashService:
    """
    Trash lifecycle manager.

    The only component permitted to change deleted-at markers or to remove
    rows permanently.
    """

    def __init__(
        self,
        store: EntityStore,
        resolver: CascadeResolver = default_resolver,
        config: Optional[CaseDeskConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the trash service.

        Args:
            store: Entity store
            resolver: Cascade resolver used by every purge path
            config: Configuration (global configuration when omitted)
            clock: Source of the current time
        """
        self.store = store
        self.resolver = resolver
        self.config = config or get_config()
        self.clock = clock

    def _authorize(self, actor: Optional[Actor], permission: Permission) -> Actor:
        return ensure_permission(actor, permission, self.config)

    def soft_delete(
        self, kind: Union[EntityKind, str], entity_id: str, actor: Optional[Actor]
    ) -> EntityRecord:
        """
        Move an entity to the trash.

        Re-invoking on an already trashed entity is a no-op.

        Raises:
            UnauthorizedError / ForbiddenError: Actor may not trash records
            InvalidEntityKindError: Unknown kind
            NotFoundError: No entity with that id
        """
        actor = self._authorize(actor, Permission.SOFT_DELETE)
        entity_kind = EntityKind.parse(kind)

        with self.store.transaction("soft_delete") as tx:
            record = tx.find(entity_kind, entity_id, for_update=True)
            if record.is_trashed:
                return record
            record = tx.set_deleted_at(entity_kind, entity_id, self.clock())

        logger.info(f"User {actor.id} trashed {entity_kind.value} {entity_id}")
        return record

    def restore(
        self, kind: Union[EntityKind, str], entity_id: str, actor: Optional[Actor]
    ) -> EntityRecord:
        """
        Take an entity out of the trash.

        Restoring an active entity is a no-op.

        Raises:
            UnauthorizedError / ForbiddenError: Actor may not restore records
            InvalidEntityKindError: Unknown kind
            NotFoundError: No entity with that id
        """
        actor = self._authorize(actor, Permission.RESTORE)
        entity_kind = EntityKind.parse(kind)

        with self.store.transaction("restore") as tx:
            record = tx.find(entity_kind, entity_id, for_update=True)
            if not record.is_trashed:
                return record
            record = tx.set_deleted_at(entity_kind, entity_id, None)

        logger.info(f"User {actor.id} restored {entity_kind.value} {entity_id}")
        return record

    def purge_one(
        self, kind: Union[EntityKind, str], entity_id: str, actor: Optional[Actor]
    ) -> PurgeResult:
        """
        Permanently delete a trashed entity and its dependent rows.

        Dependents and the root row are removed in one transaction; either all
        of them disappear or none do.

        Raises:
            UnauthorizedError / ForbiddenError: Actor may not purge records
            InvalidEntityKindError: Unknown kind
            NotFoundError: No entity with that id (including a lost race
                against another purge)
            InvalidStateError: The entity is not in the trash
            StorageError: The store failed; nothing was removed
        """
        actor = self._authorize(actor, Permission.PURGE)
        entity_kind = EntityKind.parse(kind)
        plan = self.resolver.plan_for(entity_kind)

        try:
            with self.store.transaction("purge_one") as tx:
                record = tx.find(entity_kind, entity_id, for_update=True)
                if not record.is_trashed:
                    logger.warning(
                        f"Rejected purge of active {entity_kind.value} {entity_id}"
                    )
                    raise InvalidStateError(
                        entity_kind.value,
                        entity_id,
                        "only trashed items can be permanently deleted",
                    )

                cascade_counts = execute_plan(
                    tx, plan, [entity_id], self.config.purge_batch_size
                )
                removed = tx.delete_where(
                    entity_kind, all_of(ids_in([entity_id]), trashed())
                )
                if removed != 1:
                    raise NotFoundError(entity_kind.value, entity_id)
        except StorageError:
            logger.exception(f"Purge of {entity_kind.value} {entity_id} failed")
            raise

        logger.info(
            f"User {actor.id} permanently deleted {entity_kind.value} {entity_id} "
            f"(cascade: {cascade_counts})"
        )
        return PurgeResult(
            entity_type=entity_kind, id=entity_id, cascade_deleted=cascade_counts
        )

    def empty_trash(self, actor: Optional[Actor]) -> EmptyTrashResult:
        """
        Permanently delete every trashed row across all kinds.

        Each kind is purged in its own transaction. Rows trashed after a
        kind's trash set was captured survive until the next run.

        Raises:
            UnauthorizedError / ForbiddenError: Actor may not empty the trash
            EmptyTrashError: One or more kinds failed (and were rolled back)
        """
        actor = self._authorize(actor, Permission.EMPTY_TRASH)
        result = self._purge_matching(trashed(), "empty_trash")
        logger.info(f"User {actor.id} emptied the trash: {result.purged}")
        return result

    def purge_expired(self, actor: Optional[Actor]) -> EmptyTrashResult:
        """
        Permanently delete trashed rows older than the retention window.

        Raises:
            UnauthorizedError / ForbiddenError: Actor may not empty the trash
            EmptyTrashError: One or more kinds failed (and were rolled back)
        """
        actor = self._authorize(actor, Permission.EMPTY_TRASH)
        cutoff = self.clock() - timedelta(days=self.config.trash_retention_days)
        result = self._purge_matching(deleted_before(cutoff), "purge_expired")
        logger.info(
            f"User {actor.id} purged items trashed before {cutoff.isoformat()}: "
            f"{result.purged}"
        )
        return result

    def _purge_matching(self, predicate: Predicate, operation: str) -> EmptyTrashResult:
        result = EmptyTrashResult()
        failures: Dict[str, str] = {}
        batch = self.config.purge_batch_size

        for kind in EntityKind:
            plan = self.resolver.plan_for(kind)
            try:
                with self.store.transaction(f"{operation}:{kind.value}") as tx:
                    # The trash set is fixed here; later deletions wait for
                    # the next run.
                    captured = tx.select_ids(kind, predicate, for_update=True)
                    cascade_counts = execute_plan(tx, plan, captured, batch)
                    removed = 0
                    for start in range(0, len(captured), batch):
                        chunk = captured[start : start + batch]
                        removed += tx.delete_where(
                            kind, all_of(ids_in(chunk), trashed())
                        )
            except TrashError as e:
                logger.exception(f"{operation} failed for {kind.value}")
                failures[kind.value] = e.message
                continue

            result.purged[kind.value] = removed
            for table, count in cascade_counts.items():
                result.cascade_deleted[table] = (
                    result.cascade_deleted.get(table, 0) + count
                )

        if failures:
            raise EmptyTrashError(failures=failures, purged=dict(result.purged))
        return result

    def list_trash(
        self,
        actor: Optional[Actor],
        kind: Optional[Union[EntityKind, str]] = None,
    ) -> List[TrashedItem]:
        """
        List trashed items still inside the retention window.

        Args:
            actor: Acting principal
            kind: Restrict the listing to one kind

        Returns:
            Trashed items, most recently deleted first
        """
        self._authorize(actor, Permission.VIEW_TRASH)
        kinds = [EntityKind.parse(kind)] if kind is not None else list(EntityKind)
        now = as_utc(self.clock())
        retention = self.config.trash_retention_days

        items: List[TrashedItem] = []
        with self.store.transaction("list_trash") as tx:
            for entity_kind in kinds:
                for record in tx.list_where(entity_kind, trashed()):
                    if record.deleted_at is None:
                        continue
                    age_days = (now - record.deleted_at).days
                    days_remaining = retention - age_days
                    if days_remaining <= 0:
                        continue
                    items.append(
                        TrashedItem(
                            id=record.id,
                            entity_type=entity_kind,
                            deleted_at=record.deleted_at,
                            days_remaining=days_remaining,
                            **_display(record),
                        )
                    )

        items.sort(key=lambda item: item.deleted_at, reverse=True)
        return items
