"""
Trash Module - soft delete, restore and permanent purge.

Provides the entity store, cascade resolution, the trash lifecycle service,
aggregate counters and request handlers for trashed case-management records.
"""

from .api import TrashAPI
from .cascade import CascadeResolver, DependencyEdge, default_resolver
from .counters import AggregateCounter
from .exceptions import (
    EmptyTrashError,
    ForbiddenError,
    InvalidEntityKindError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
    TrashError,
    UnauthorizedError,
)
from .mixins import SoftDeleteMixin
from .models import (
    ApiResponse,
    EmptyTrashResult,
    EntityKind,
    EntityRecord,
    PurgeResult,
    TrashedItem,
    TrashSummary,
)
from .services import TrashService
from .store import EntityStore, create_store

__all__ = [
    # Store
    "EntityStore",
    "create_store",
    "SoftDeleteMixin",
    # Cascade
    "CascadeResolver",
    "DependencyEdge",
    "default_resolver",
    # Services
    "TrashService",
    "AggregateCounter",
    "TrashAPI",
    # Models
    "EntityKind",
    "EntityRecord",
    "TrashedItem",
    "PurgeResult",
    "EmptyTrashResult",
    "TrashSummary",
    "ApiResponse",
    # Exceptions
    "TrashError",
    "UnauthorizedError",
    "ForbiddenError",
    "InvalidEntityKindError",
    "NotFoundError",
    "InvalidStateError",
    "StorageError",
    "StorageUnavailableError",
    "EmptyTrashError",
]
