"""
SQLAlchemy mixins for soft delete functionality.

A row is trashed when its ``deleted_at`` marker is set and active when the
marker is NULL. The marker is the single source of truth for lifecycle state.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SoftDeleteMixin:
    """
    Mixin to add soft delete functionality to SQLAlchemy models.

    Provides:
    - Nullable ``deleted_at`` marker (indexed for trash scans)
    - Column snapshot via ``to_dict``

    Usage:
        class Partner(Base, SoftDeleteMixin):
            __tablename__ = "partners"
            id = mapped_column(String(36), primary_key=True)
            name = mapped_column(String(200))
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    def to_dict(self, include_deleted_fields: bool = True) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Args:
            include_deleted_fields: Whether to include the ``deleted_at`` marker

        Returns:
            Dictionary representation of the model
        """
        result: Dict[str, Any] = {}

        table = getattr(self, "__table__", None)
        if table is None:
            return result

        for column in table.columns:
            if hasattr(self, column.name):
                result[column.name] = getattr(self, column.name)

        if not include_deleted_fields:
            result.pop("deleted_at", None)

        return result
