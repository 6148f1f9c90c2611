"""
Tests for access control: role policy and token authentication.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from casedesk.access_control import (
    ADMIN_PERMISSIONS,
    Actor,
    Permission,
    Role,
    RoleDefinition,
    authenticate,
    check_permission,
    ensure_permission,
    load_role_mappings,
    permissions_for,
)
from casedesk.config import CaseDeskConfig
from casedesk.trash import ForbiddenError, UnauthorizedError

SECRET = "test-secret-with-enough-length-for-hs256"


@pytest.fixture
def token_config():
    return CaseDeskConfig(environment="test", jwt_secret=SECRET)


def make_token(sub="user-admin", audience="authenticated", expires_in=3600, **extra):
    claims = {
        "sub": sub,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        **extra,
    }
    return jwt.encode(claims, SECRET, algorithm="HS256")


def role_lookup(user_id):
    return {"user-admin": "super_admin", "user-assistant": "assistant"}.get(user_id)


class TestRolePolicy:
    """Test role to permission mappings."""

    def test_every_role_can_trash_and_restore(self, config):
        for role in Role:
            granted = permissions_for(role.value, config)
            assert Permission.VIEW_TRASH in granted
            assert Permission.SOFT_DELETE in granted
            assert Permission.RESTORE in granted

    @pytest.mark.parametrize("role", ["super_admin", "manager"])
    def test_admin_roles_can_purge(self, config, role):
        granted = permissions_for(role, config)
        assert set(ADMIN_PERMISSIONS) <= granted

    @pytest.mark.parametrize("role", ["assistant", "accountant"])
    def test_other_roles_cannot_purge(self, config, role):
        granted = permissions_for(role, config)
        assert Permission.PURGE not in granted
        assert Permission.EMPTY_TRASH not in granted

    def test_admin_roles_come_from_config(self):
        config = CaseDeskConfig(trash_admin_roles=["accountant"])

        assert check_permission(Actor("u1", "accountant"), Permission.PURGE, config)
        assert not check_permission(Actor("u2", "manager"), "trash.purge", config)

    def test_unknown_role_has_no_permissions(self, config):
        assert permissions_for("intern", config) == set()
        assert permissions_for(None, config) == set()

    def test_role_mappings(self, config):
        mappings = load_role_mappings(config)
        assert set(mappings) == {role.value for role in Role}
        assert mappings["super_admin"].description == "Trash administration"

    def test_role_definition_deduplicates(self):
        definition = RoleDefinition(
            name="test",
            description="",
            permissions=[Permission.RESTORE, Permission.RESTORE, Permission.PURGE],
        )
        assert definition.permissions == [Permission.RESTORE, Permission.PURGE]


class TestEnsurePermission:
    """Test permission enforcement."""

    def test_missing_actor(self, config):
        with pytest.raises(UnauthorizedError):
            ensure_permission(None, Permission.VIEW_TRASH, config)
        assert not check_permission(None, Permission.VIEW_TRASH, config)

    def test_missing_permission(self, config):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_permission(Actor("u", "assistant"), Permission.EMPTY_TRASH, config)

        assert exc_info.value.role == "assistant"
        assert exc_info.value.permission == "trash.empty"

    def test_granted_returns_actor(self, config):
        actor = Actor("u", "manager")
        assert ensure_permission(actor, Permission.EMPTY_TRASH, config) is actor


class TestAuthenticate:
    """Test bearer token authentication."""

    def test_valid_token(self, token_config):
        token = make_token(email="admin@example.com")

        actor = authenticate(token, role_lookup, token_config)

        assert actor == Actor("user-admin", "super_admin", "admin@example.com")

    def test_role_comes_from_lookup(self, token_config):
        token = make_token(sub="user-assistant")
        actor = authenticate(token, role_lookup, token_config)
        assert actor.role == "assistant"

    def test_role_lookup_from_store(self, token_config, store, seeded):
        actor = authenticate(make_token(), store.lookup_role, token_config)
        assert actor.role == "super_admin"

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token_config, token):
        with pytest.raises(UnauthorizedError):
            authenticate(token, role_lookup, token_config)

    def test_expired_token(self, token_config):
        with pytest.raises(UnauthorizedError, match="expired"):
            authenticate(make_token(expires_in=-60), role_lookup, token_config)

    def test_wrong_audience(self, token_config):
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            authenticate(make_token(audience="anon"), role_lookup, token_config)

    def test_tampered_token(self, token_config):
        token = jwt.encode(
            {"sub": "user-admin", "aud": "authenticated", "exp": 9999999999},
            "another-secret-with-enough-length-too",
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError):
            authenticate(token, role_lookup, token_config)

    def test_unknown_user(self, token_config):
        with pytest.raises(UnauthorizedError, match="Unknown user"):
            authenticate(make_token(sub="ghost"), role_lookup, token_config)

    def test_secret_not_configured(self, config):
        with pytest.raises(RuntimeError):
            authenticate(make_token(), role_lookup, config)
