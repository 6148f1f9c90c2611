"""
Data models for trash lifecycle operations.

These models define entity kinds, the records handed back by the entity store,
and the result shapes returned to callers of the trash service.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidEntityKindError


class EntityKind(str, Enum):
    """Top-level deletable domain types."""

    CASE = "case"
    INVOICE = "invoice"
    PARTNER = "partner"
    OUR_COMPANY = "our_company"

    @classmethod
    def parse(cls, value: Any) -> "EntityKind":
        """
        Parse an entity type string into a kind.

        Args:
            value: Kind or raw entity type string

        Returns:
            Matching entity kind

        Raises:
            InvalidEntityKindError: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidEntityKindError(value) from None

    @property
    def table(self) -> str:
        """Name of the storage table holding rows of this kind."""
        return ENTITY_TABLES[self]


ENTITY_TABLES: Dict[EntityKind, str] = {
    EntityKind.CASE: "cases",
    EntityKind.INVOICE: "invoices",
    EntityKind.PARTNER: "partners",
    EntityKind.OUR_COMPANY: "our_companies",
}

_unmapped = set(EntityKind) - set(ENTITY_TABLES)
if _unmapped:
    raise RuntimeError(f"Entity kinds without a table: {sorted(_unmapped)}")


class EntityRecord(BaseModel):
    """Detached snapshot of a top-level row read from the entity store."""

    kind: EntityKind
    id: str
    deleted_at: Optional[datetime] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None


class TrashedItem(BaseModel):
    """Listing entry for a soft-deleted record."""

    id: str
    entity_type: EntityKind
    name: str
    description: Optional[str] = None
    deleted_at: datetime
    days_remaining: int


class PurgeResult(BaseModel):
    """Outcome of permanently deleting a single entity."""

    entity_type: EntityKind
    id: str
    cascade_deleted: Dict[str, int] = Field(default_factory=dict)


class EmptyTrashResult(BaseModel):
    """Outcome of purging trashed rows across all kinds."""

    purged: Dict[str, int] = Field(default_factory=dict)
    cascade_deleted: Dict[str, int] = Field(default_factory=dict)

    @property
    def total_purged(self) -> int:
        return sum(self.purged.values())


class TrashSummary(BaseModel):
    """Aggregate counts feeding sidebar badges and dashboards."""

    model_config = ConfigDict(populate_by_name=True)

    active_cases: int = Field(0, alias="activeCases", ge=0)
    unpaid_invoices: int = Field(0, alias="unpaidInvoices", ge=0)
    trashed_items: int = Field(0, alias="trashedItems", ge=0)


class ApiError(BaseModel):
    """Error payload returned at the request boundary."""

    code: str
    message: str


class ApiResponse(BaseModel):
    """Transport-independent response envelope."""

    success: bool
    data: Optional[Any] = None
    error: Optional[ApiError] = None
    status_code: int = Field(200, exclude=True)

    def body(self) -> Dict[str, Any]:
        """Return the JSON-ready response body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def ok(cls, data: Optional[Any] = None) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str, status_code: int) -> "ApiResponse":
        return cls(
            success=False,
            error=ApiError(code=code, message=message),
            status_code=status_code,
        )


def serialize(value: Any) -> Any:
    """Convert models (or lists of models) into plain camelCase-aware dicts."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        items: List[Any] = [serialize(item) for item in value]
        return items
    return value
