"""Exceptions for trash lifecycle operations."""

from typing import Dict, Optional


class TrashError(Exception):
    """Base exception for trash lifecycle operations."""

    code = "SERVER_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message)


class UnauthorizedError(TrashError):
    """Raised when no authenticated actor is present."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(TrashError):
    """Raised when the actor's role does not grant the required permission."""

    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, role: Optional[str], permission: str):
        self.role = role
        self.permission = permission
        super().__init__(f"Role {role!r} is not allowed to perform {permission}")


class InvalidEntityKindError(TrashError):
    """Raised when an entity type string does not name a known kind."""

    code = "INVALID_ENTITY"
    status_code = 400

    def __init__(self, value: object):
        super().__init__(f"Invalid entity type: {value!r}", entity_type=str(value))


class NotFoundError(TrashError):
    """Raised when the identifier does not exist for the given kind."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(
            f"{entity_type} {entity_id} not found",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class InvalidStateError(TrashError):
    """Raised when a transition is not allowed from the entity's current state."""

    code = "INVALID_STATE"
    status_code = 409

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        super().__init__(
            f"{entity_type} {entity_id}: {reason}",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class StorageError(TrashError):
    """Raised when the backing store rejects or aborts an operation."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class StorageUnavailableError(StorageError):
    """Raised when the backing store cannot be reached."""


class EmptyTrashError(TrashError):
    """Raised when one or more kinds failed to purge during a batch run.

    Kinds listed in ``purged`` were committed; kinds listed in ``failures``
    were rolled back and still hold their trashed rows.
    """

    def __init__(self, failures: Dict[str, str], purged: Dict[str, int]):
        self.failures = failures
        self.purged = purged
        kinds = ", ".join(sorted(failures))
        super().__init__(f"Failed to empty trash for: {kinds}")
