"""Aggregate counts over the entity store for badges and dashboards."""

import logging
from typing import Dict, Optional

from ..config import CaseDeskConfig, get_config
from .models import EntityKind, TrashSummary
from .store import (
    EntityStore,
    UnitOfWork,
    active,
    all_of,
    status_in,
    status_not_in,
    trashed,
)

logger = logging.getLogger(__name__)


class AggregateCounter:
    """Read-only summary counts; recomputed on every call."""

    def __init__(self, store: EntityStore, config: Optional[CaseDeskConfig] = None):
        self.store = store
        self.config = config or get_config()

    def compute_summary(self) -> TrashSummary:
        """
        Count active cases, unpaid invoices and trashed items.

        All counts are taken inside one read transaction so they describe the
        same snapshot where the database provides one.

        Returns:
            Summary with zero for empty categories
        """
        with self.store.transaction("compute_summary") as tx:
            active_cases = tx.count_where(
                EntityKind.CASE,
                all_of(active(), status_not_in(self.config.terminal_case_statuses)),
            )
            unpaid_invoices = tx.count_where(
                EntityKind.INVOICE,
                all_of(active(), status_in(self.config.unpaid_invoice_statuses)),
            )
            trashed_items = sum(self._trashed_by_kind(tx).values())

        summary = TrashSummary(
            active_cases=active_cases,
            unpaid_invoices=unpaid_invoices,
            trashed_items=trashed_items,
        )
        logger.debug(f"Computed summary {summary.model_dump()}")
        return summary

    def trashed_by_kind(self) -> Dict[str, int]:
        """Trashed row counts keyed by entity kind."""
        with self.store.transaction("trashed_by_kind") as tx:
            return self._trashed_by_kind(tx)

    @staticmethod
    def _trashed_by_kind(tx: UnitOfWork) -> Dict[str, int]:
        return {kind.value: tx.count_where(kind, trashed()) for kind in EntityKind}
