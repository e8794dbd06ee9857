"""
Tests for tenant resolution and firm-scoped store access.

Run with: uv run pytest tests/test_tenant.py -v
"""
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from clients import ClientRegistry
from db.store import MemoryStore
from errors import (
    CrossTenantAccessDenied,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ProfileNotFound,
    ValidationError,
)
from tenant import (
    ProfileDirectory,
    TenantContextManager,
    TenantScopedStore,
    get_current_context,
    onboard_firm,
    resolve_tenant,
)


class LeakyStore(MemoryStore):
    """A broken backend that ignores firm_id on reads."""

    def select(self, table, firm_id, filters=None, order_by=None, descending=False, limit=None):
        return [dict(row) for row in self._tables[table].values()]


# ============================================================================
# Resolution
# ============================================================================

class TestResolveTenant:
    """Tests for resolving an actor to a firm."""

    def test_missing_identity_is_not_authenticated(self, store):
        with pytest.raises(NotAuthenticated):
            resolve_tenant(store, None)

    def test_unknown_user_is_profile_not_found(self, store):
        with pytest.raises(ProfileNotFound) as exc_info:
            resolve_tenant(store, "ghost")
        assert exc_info.value.user_id == "ghost"

    def test_resolves_firm_and_role(self, store, firm_a):
        context = resolve_tenant(store, "user-a")

        assert context.firm_id == firm_a.firm_id
        assert context.role == "admin"
        assert context.full_name == "Ana Alvarez"

    def test_onboarding_twice_is_rejected(self, store, firm_a):
        with pytest.raises(ValidationError):
            onboard_firm(store, "Otro Despacho", "user-a", "Ana Alvarez")

    def test_onboarding_requires_firm_name(self, store):
        with pytest.raises(ValidationError) as exc_info:
            onboard_firm(store, "  ", "user-x", "Xavier")
        assert exc_info.value.field == "name"


class TestContextVariable:
    """Tests for the request-scoped tenant context."""

    def test_no_context_raises(self):
        with pytest.raises(NotAuthenticated):
            get_current_context()

    def test_context_manager_sets_and_resets(self, store, firm_a):
        with TenantContextManager(firm_a):
            assert get_current_context() is firm_a
            registry = ClientRegistry(store)
            client = registry.create(type="individual", full_name="Maria Lopez")
            assert client.firm_id == firm_a.firm_id

        with pytest.raises(NotAuthenticated):
            get_current_context()


# ============================================================================
# Scoped store
# ============================================================================

class TestTenantScopedStore:
    """Tests for the single firm-scoping wrapper."""

    def test_insert_stamps_firm_and_timestamps(self, store, firm_a):
        scoped = TenantScopedStore(store, firm_a)
        row = scoped.insert("clients", {"type": "individual", "full_name": "Luis"})

        assert row["firm_id"] == firm_a.firm_id
        assert row["id"]
        assert row["created_at"] is not None
        assert row["updated_at"] is not None

    def test_insert_for_other_firm_is_a_breach(self, store, firm_a, firm_b):
        scoped = TenantScopedStore(store, firm_a)

        with pytest.raises(CrossTenantAccessDenied):
            scoped.insert("clients", {"type": "individual", "full_name": "Luis", "firm_id": firm_b.firm_id})
        assert store.count("clients", firm_b.firm_id) == 0

    def test_update_cannot_move_row_to_other_firm(self, store, firm_a, firm_b):
        scoped = TenantScopedStore(store, firm_a)
        row = scoped.insert("clients", {"type": "individual", "full_name": "Luis"})

        with pytest.raises(CrossTenantAccessDenied):
            scoped.update("clients", row["id"], {"firm_id": firm_b.firm_id})
        assert scoped.get("clients", row["id"])["firm_id"] == firm_a.firm_id

    def test_other_firm_row_is_not_found(self, store, firm_a, firm_b):
        row = TenantScopedStore(store, firm_b).insert("clients", {"type": "individual", "full_name": "Luis"})
        scoped = TenantScopedStore(store, firm_a)

        with pytest.raises(NotFound):
            scoped.get("clients", row["id"])
        with pytest.raises(NotFound):
            scoped.update("clients", row["id"], {"notes": "x"})
        with pytest.raises(NotFound):
            scoped.delete("clients", row["id"])
        assert scoped.list("clients") == []

    def test_leaked_row_raises_and_logs(self, caplog):
        store = LeakyStore()
        firm_a = onboard_firm(store, "Despacho Alfa", "user-a", "Ana")
        firm_b = onboard_firm(store, "Bufete Beta", "user-b", "Bruno")
        TenantScopedStore(store, firm_b).insert("clients", {"type": "individual", "full_name": "Luis"})

        with caplog.at_level(logging.ERROR, logger="tenant"):
            with pytest.raises(CrossTenantAccessDenied) as exc_info:
                TenantScopedStore(store, firm_a).list("clients")

        assert exc_info.value.entity == "Client"
        assert exc_info.value.expected_firm_id == firm_a.firm_id
        assert exc_info.value.actual_firm_id == firm_b.firm_id
        assert "Invariant breach" in caplog.text

    def test_optional_reference(self, store, firm_a):
        scoped = TenantScopedStore(store, firm_a)

        assert scoped.require_reference("cases", None) is None
        with pytest.raises(NotFound):
            scoped.require_reference("cases", "missing")


# ============================================================================
# Members
# ============================================================================

class TestProfileDirectory:
    """Tests for firm membership."""

    def test_admin_adds_lawyer(self, store, firm_a):
        directory = ProfileDirectory(store, firm_a)
        directory.add_member("lawyer-1", "Laura Lara", role="lawyer")

        context = resolve_tenant(store, "lawyer-1")
        assert context.firm_id == firm_a.firm_id
        assert context.role == "lawyer"
        assert [p["id"] for p in directory.list_members(role="lawyer")] == ["lawyer-1"]

    def test_lawyer_cannot_add_members(self, store, firm_a):
        ProfileDirectory(store, firm_a).add_member("lawyer-1", "Laura Lara", role="lawyer")
        lawyer = resolve_tenant(store, "lawyer-1")

        with pytest.raises(PermissionDenied):
            ProfileDirectory(store, lawyer).add_member("staff-1", "Sergio", role="staff")

    def test_role_hierarchy(self, firm_a):
        assert firm_a.has_role("lawyer")
        assert firm_a.has_role("staff")

    def test_unknown_role_rejected(self, store, firm_a):
        with pytest.raises(ValidationError):
            ProfileDirectory(store, firm_a).add_member("x-1", "Xavier", role="partner")

    def test_members_are_firm_scoped(self, store, firm_a, firm_b):
        ids = [p["id"] for p in ProfileDirectory(store, firm_a).list_members()]
        assert ids == ["user-a"]
