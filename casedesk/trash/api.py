"""
Request/response handlers for the trash lifecycle.

Each handler returns an ``ApiResponse`` envelope instead of raising, so any
transport (HTTP routes, CLI, RPC) can forward ``status_code`` and ``body()``
unchanged. Authentication is checked first, then permission, then the entity
type, and only then is the store touched.
"""

import logging
from typing import Any, Callable, Optional

from ..access_control import Actor
from .counters import AggregateCounter
from .exceptions import TrashError, UnauthorizedError
from .models import ApiResponse, serialize
from .services import TrashService

logger = logging.getLogger(__name__)


class TrashAPI:
    """Transport-independent boundary over the trash service and counters."""

    def __init__(self, service: TrashService, counter: AggregateCounter):
        self.service = service
        self.counter = counter

    def _handle(self, operation: str, func: Callable[[], Any]) -> ApiResponse:
        try:
            data = func()
        except TrashError as e:
            if e.status_code >= 500:
                logger.error(f"{operation} failed: {e.message}")
            return ApiResponse.fail(e.code, e.message, e.status_code)
        except Exception:
            logger.exception(f"Unexpected error in {operation}")
            return ApiResponse.fail("SERVER_ERROR", f"Failed to {operation}", 500)

        return ApiResponse.ok(serialize(data))

    def soft_delete(
        self, entity_type: str, entity_id: str, actor: Optional[Actor]
    ) -> ApiResponse:
        """Move an item to the trash."""

        def run() -> None:
            self.service.soft_delete(entity_type, entity_id, actor)

        return self._handle("delete item", run)

    def restore(
        self, entity_type: str, entity_id: str, actor: Optional[Actor]
    ) -> ApiResponse:
        """Restore a trashed item."""

        def run() -> None:
            self.service.restore(entity_type, entity_id, actor)

        return self._handle("restore item", run)

    def permanent_delete(
        self, entity_type: str, entity_id: str, actor: Optional[Actor]
    ) -> ApiResponse:
        """Permanently delete a trashed item and its dependents."""
        return self._handle(
            "delete item",
            lambda: self.service.purge_one(entity_type, entity_id, actor),
        )

    def empty_trash(self, actor: Optional[Actor]) -> ApiResponse:
        """Permanently delete everything in the trash."""
        return self._handle("empty trash", lambda: self.service.empty_trash(actor))

    def list_trash(
        self, actor: Optional[Actor], entity_type: Optional[str] = None
    ) -> ApiResponse:
        """List trashed items, optionally for a single entity type."""
        return self._handle(
            "fetch trash", lambda: self.service.list_trash(actor, entity_type or None)
        )

    def get_summary_counts(self, actor: Optional[Actor]) -> ApiResponse:
        """Counts for sidebar badges: active cases, unpaid invoices, trash."""

        def run() -> Any:
            if actor is None:
                raise UnauthorizedError()
            return self.counter.compute_summary()

        return self._handle("fetch counts", run)
