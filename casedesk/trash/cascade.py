"""
Cascade resolution for permanent deletion.

Dependent rows are declared as static edges (parent table, child table,
foreign key). Each entity kind gets a precomputed plan listing the child tables
leaves-first, and every purge path runs those plans through
``execute_plan`` so that deletion order cannot diverge between call sites.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .models import EntityKind
from .store import UnitOfWork, foreign_key_in

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyEdge:
    """Child table rows reference parent table rows through ``foreign_key``."""

    parent_table: str
    child_table: str
    foreign_key: str


@dataclass(frozen=True)
class CascadeStep:
    """Delete rows of ``table`` whose ``foreign_key`` points into ``parent_table``."""

    table: str
    foreign_key: str
    parent_table: str


@dataclass(frozen=True)
class CascadePlan:
    """Ordered deletion steps for one root table, leaves first."""

    root_table: str
    steps: Tuple[CascadeStep, ...]

    @property
    def tables(self) -> List[str]:
        return [step.table for step in self.steps]


DEPENDENCY_EDGES: Tuple[DependencyEdge, ...] = (
    DependencyEdge("cases", "case_actions", "case_id"),
    DependencyEdge("cases", "case_documents", "case_id"),
)


class CascadeResolver:
    """Resolves the ordered set of dependent tables for each entity kind."""

    def __init__(self, edges: Iterable[DependencyEdge] = DEPENDENCY_EDGES):
        """
        Build and validate the dependency graph.

        Args:
            edges: Declared parent/child relationships

        Raises:
            ValueError: If the edges contain a self-reference or a cycle
        """
        self.edges: Tuple[DependencyEdge, ...] = tuple(edges)
        self._children: Dict[str, List[DependencyEdge]] = {}
        for edge in self.edges:
            if edge.parent_table == edge.child_table:
                raise ValueError(f"Table {edge.parent_table} cannot depend on itself")
            self._children.setdefault(edge.parent_table, []).append(edge)

        self._check_acyclic()
        self._plans: Dict[EntityKind, CascadePlan] = {
            kind: self._build_plan(kind.table) for kind in EntityKind
        }

    def _check_acyclic(self) -> None:
        visiting: Set[str] = set()
        done: Set[str] = set()

        def visit(table: str, path: Tuple[str, ...]) -> None:
            if table in done:
                return
            if table in visiting:
                cycle = " -> ".join(path + (table,))
                raise ValueError(f"Dependency cycle detected: {cycle}")
            visiting.add(table)
            for edge in self._children.get(table, []):
                visit(edge.child_table, path + (table,))
            visiting.discard(table)
            done.add(table)

        for table in list(self._children):
            visit(table, ())

    def _build_plan(self, root_table: str) -> CascadePlan:
        # Post-order walk: a step is emitted only after all of its own
        # descendants, so the list runs leaves first.
        ordered: List[CascadeStep] = []
        seen: Set[Tuple[str, str, str]] = set()

        def walk(table: str) -> None:
            for edge in self._children.get(table, []):
                walk(edge.child_table)
                key = (edge.child_table, edge.foreign_key, edge.parent_table)
                if key not in seen:
                    seen.add(key)
                    ordered.append(
                        CascadeStep(edge.child_table, edge.foreign_key, table)
                    )

        walk(root_table)
        return CascadePlan(root_table=root_table, steps=tuple(ordered))

    def plan_for(self, kind: EntityKind) -> CascadePlan:
        """Return the precomputed cascade plan for ``kind``."""
        return self._plans[EntityKind.parse(kind)]

    def resolve(self, kind: EntityKind) -> List[Tuple[str, str]]:
        """Return ``(child_table, foreign_key)`` pairs for ``kind``, leaves first."""
        return [(step.table, step.foreign_key) for step in self.plan_for(kind).steps]


default_resolver = CascadeResolver(DEPENDENCY_EDGES)


def _chunks(ids: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def execute_plan(
    tx: UnitOfWork,
    plan: CascadePlan,
    root_ids: Sequence[str],
    batch_size: int = 500,
) -> Dict[str, int]:
    """
    Delete every dependent row of ``root_ids`` following ``plan``.

    The root rows themselves are left for the caller to delete within the same
    transaction.

    Args:
        tx: Open unit of work
        plan: Cascade plan for the root table
        root_ids: Identifiers of the root rows being purged
        batch_size: Maximum identifiers per IN clause

    Returns:
        Rows removed per dependent table
    """
    counts: Dict[str, int] = {step.table: 0 for step in plan.steps}
    if not root_ids or not plan.steps:
        return counts

    # Collect ids of intermediate tables top-down (reversed leaves-first order
    # is a topological order) so grandchildren can be found before their
    # parents disappear.
    parent_tables = {step.parent_table for step in plan.steps}
    ids_by_table: Dict[str, List[str]] = {plan.root_table: list(root_ids)}
    for step in reversed(plan.steps):
        if step.table not in parent_tables:
            continue
        known = ids_by_table.setdefault(step.table, [])
        seen = set(known)
        for chunk in _chunks(ids_by_table.get(step.parent_table, []), batch_size):
            for child_id in tx.select_ids(
                step.table, foreign_key_in(step.foreign_key, chunk)
            ):
                if child_id not in seen:
                    seen.add(child_id)
                    known.append(child_id)

    for step in plan.steps:
        parent_ids = ids_by_table.get(step.parent_table, [])
        for chunk in _chunks(parent_ids, batch_size):
            counts[step.table] += tx.delete_where(
                step.table, foreign_key_in(step.foreign_key, chunk)
            )

    logger.debug(f"Cascade for {plan.root_table} removed {counts}")
    return counts
