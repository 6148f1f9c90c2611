"""
Access control for trash lifecycle operations.

Resolves the acting principal from a bearer token and maps application roles
to trash permissions. Role-to-permission policy comes from configuration:
every known role may view, trash and restore records, while only
``trash_admin_roles`` may purge records or empty the trash.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Union

import jwt
from pydantic import BaseModel, field_validator

from .config import CaseDeskConfig, get_config
from .trash.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Application roles, highest privilege first."""

    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"
    ASSISTANT = "assistant"
    ACCOUNTANT = "accountant"


class Permission(str, Enum):
    """Trash lifecycle permissions."""

    VIEW_TRASH = "trash.view"
    SOFT_DELETE = "trash.soft_delete"
    RESTORE = "trash.restore"
    PURGE = "trash.purge"
    EMPTY_TRASH = "trash.empty"


BASE_PERMISSIONS = [Permission.VIEW_TRASH, Permission.SOFT_DELETE, Permission.RESTORE]
ADMIN_PERMISSIONS = [Permission.PURGE, Permission.EMPTY_TRASH]


@dataclass(frozen=True)
class Actor:
    """The authenticated principal performing an operation."""

    id: str
    role: str
    email: Optional[str] = None


class RoleDefinition(BaseModel):
    """Role definition with permissions."""

    name: str
    description: str
    permissions: List[Permission]

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v: List[Permission]) -> List[Permission]:
        """Remove duplicate permissions, keeping declaration order."""
        return list(dict.fromkeys(v))


def load_role_mappings(
    config: Optional[CaseDeskConfig] = None,
) -> Dict[str, RoleDefinition]:
    """
    Build role to permission mappings from configuration.

    Args:
        config: Configuration to read ``trash_admin_roles`` from

    Returns:
        Role definitions keyed by role name
    """
    config = config or get_config()
    admin_roles = set(config.trash_admin_roles)

    mappings: Dict[str, RoleDefinition] = {}
    for role in Role:
        permissions = list(BASE_PERMISSIONS)
        if role.value in admin_roles:
            permissions.extend(ADMIN_PERMISSIONS)
        mappings[role.value] = RoleDefinition(
            name=role.value,
            description="Trash administration" if role.value in admin_roles else "",
            permissions=permissions,
        )
    return mappings


def permissions_for(
    role: Optional[str], config: Optional[CaseDeskConfig] = None
) -> Set[Permission]:
    """Return the permissions granted to ``role`` (empty for unknown roles)."""
    if not role:
        return set()
    definition = load_role_mappings(config).get(role)
    if definition is None:
        logger.warning(f"Unknown role: {role}")
        return set()
    return set(definition.permissions)


def check_permission(
    actor: Optional[Actor],
    permission: Union[str, Permission],
    config: Optional[CaseDeskConfig] = None,
) -> bool:
    """
    Check if an actor holds a permission.

    Args:
        actor: Acting principal, or None when unauthenticated
        permission: Permission to check
        config: Configuration supplying the role policy

    Returns:
        True if the actor's role grants the permission
    """
    if actor is None:
        return False
    return Permission(permission) in permissions_for(actor.role, config)


def ensure_permission(
    actor: Optional[Actor],
    permission: Union[str, Permission],
    config: Optional[CaseDeskConfig] = None,
) -> Actor:
    """
    Require a permission before touching any data.

    Raises:
        UnauthorizedError: If no actor is present
        ForbiddenError: If the actor's role lacks the permission
    """
    if actor is None:
        raise UnauthorizedError()

    perm = Permission(permission)
    if not check_permission(actor, perm, config):
        logger.warning(f"Denied {perm.value} to user {actor.id} with role {actor.role}")
        raise ForbiddenError(actor.role, perm.value)
    return actor


def authenticate(
    token: Optional[str],
    role_lookup: Callable[[str], Optional[str]],
    config: Optional[CaseDeskConfig] = None,
) -> Actor:
    """
    Authenticate a bearer token and resolve the actor's role.

    Args:
        token: Encoded access token
        role_lookup: Returns the stored role for a user id, or None if unknown
        config: Configuration with token verification settings

    Returns:
        Authenticated actor

    Raises:
        UnauthorizedError: Token missing, invalid, expired, or user unknown
        RuntimeError: Token verification is not configured
    """
    config = config or get_config()
    if not token:
        raise UnauthorizedError()
    if not config.jwt_secret:
        raise RuntimeError("jwt_secret is not configured")

    try:
        claims = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=config.jwt_algorithms,
            audience=config.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise UnauthorizedError("Invalid token") from None

    user_id = str(claims["sub"])
    role = role_lookup(user_id)
    if role is None:
        raise UnauthorizedError("Unknown user")

    return Actor(id=user_id, role=role, email=claims.get("email"))


__all__ = [
    "Role",
    "Permission",
    "Actor",
    "RoleDefinition",
    "load_role_mappings",
    "permissions_for",
    "check_permission",
    "ensure_permission",
    "authenticate",
]
