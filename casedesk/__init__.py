"""
CaseDesk Trash - soft delete, restore and permanent purge for case management.

This package implements the trash lifecycle of the CaseDesk back office:
cases, invoices, partners and issuing companies are never removed outright.
They are first moved to the trash, where they can be restored, and only
administrators may purge them for good together with their dependent rows.

Key Features
------------
* **Soft Delete**: Reversible deletion through a nullable ``deleted_at`` marker
* **Cascade Purge**: Dependent rows removed leaves-first in one transaction
* **Empty Trash**: Batch purge across kinds with per-kind atomicity
* **Retention**: Trash listing with days remaining and expired-item sweeps
* **Summary Counts**: Active cases, unpaid invoices and trashed items
* **Access Control**: Role-based permissions for every trash operation

Quick Start
-----------
>>> from casedesk import Actor, TrashService, create_store
>>>
>>> store = create_store("sqlite:///casedesk.db")
>>> store.init_schema()
>>> service = TrashService(store)
>>>
>>> admin = Actor(id="u-1", role="super_admin")
>>> service.soft_delete("case", case_id, admin)
>>> service.restore("case", case_id, admin)
>>> service.soft_delete("case", case_id, admin)
>>> service.purge_one("case", case_id, admin)

Documentation
-------------
See the /examples directory for usage examples.
"""

__version__ = "1.0.0"

# The trash package must be initialized before access_control, which raises
# trash exceptions.
from .trash import (  # isort: skip
    AggregateCounter,
    EntityKind,
    EntityStore,
    SoftDeleteMixin,
    TrashAPI,
    TrashError,
    TrashService,
    create_store,
)
from .access_control import Actor, Permission, Role, authenticate, check_permission
from .config import CaseDeskConfig, configure, get_config

__all__ = [
    # Trash lifecycle
    "TrashService",
    "TrashAPI",
    "AggregateCounter",
    "EntityKind",
    "TrashError",
    # Storage
    "EntityStore",
    "create_store",
    "SoftDeleteMixin",
    # Access Control
    "Actor",
    "Role",
    "Permission",
    "authenticate",
    "check_permission",
    # Configuration
    "CaseDeskConfig",
    "configure",
    "get_config",
]
