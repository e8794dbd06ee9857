"""
Multi-Tenant Context Management

Resolves the authenticated actor to a firm and keeps that firm in a
request-scoped context variable. TenantScopedStore is the single wrapper
every registry uses to reach the store, so no call site ever filters by
firm_id on its own.
"""
import logging
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from db.schema import TABLE_COLUMNS
from db.store import Store, scope_column
from errors import (
    CrossTenantAccessDenied,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    ProfileNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


class Role(Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"
    STAFF = "staff"


ROLE_HIERARCHY = {
    "admin": 3,
    "lawyer": 2,
    "staff": 1,
}

ENTITY_NAMES = {
    "firms": "Firm",
    "profiles": "Profile",
    "clients": "Client",
    "cases": "Case",
    "time_entries": "TimeEntry",
    "calendar_events": "CalendarEvent",
    "documents": "Document",
    "invoices": "Invoice",
    "invoice_items": "InvoiceItem",
}


@dataclass
class TenantContext:
    """Resolved actor: who is calling and which firm they belong to."""
    firm_id: str
    user_id: str
    role: str  # 'admin', 'lawyer', 'staff'
    full_name: Optional[str] = None
    email: Optional[str] = None

    def has_role(self, minimum_role: str) -> bool:
        return ROLE_HIERARCHY.get(self.role, 0) >= ROLE_HIERARCHY.get(minimum_role, 0)

    def require_role(self, minimum_role: str) -> None:
        if not self.has_role(minimum_role):
            raise PermissionDenied(minimum_role, self.role)


# Set by the entry point, read anywhere
current_context: ContextVar[Optional[TenantContext]] = ContextVar('current_context', default=None)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_tenant(store: Store, user_id: Optional[str]) -> TenantContext:
    """
    Resolve an authenticated actor to exactly one firm.

    Raises:
        NotAuthenticated: no actor identity
        ProfileNotFound: actor has no profile yet (onboarding state)
    """
    if not user_id:
        raise NotAuthenticated()

    profile = store.find_profile(user_id)
    if not profile:
        raise ProfileNotFound(user_id)

    return TenantContext(
        firm_id=profile["firm_id"],
        user_id=profile["id"],
        role=profile.get("role") or Role.STAFF.value,
        full_name=profile.get("full_name"),
        email=profile.get("email"),
    )


def onboard_firm(store: Store, firm_name: str, user_id: str, full_name: str,
                 email: str = None) -> TenantContext:
    """Create a firm and its first (admin) profile."""
    if not firm_name or not firm_name.strip():
        raise ValidationError("name", "firm name is required")
    if not full_name or not full_name.strip():
        raise ValidationError("full_name", "is required")
    if store.find_profile(user_id):
        raise ValidationError("user_id", "already belongs to a firm")

    firm_id = new_id()
    store.insert("firms", {"id": firm_id, "name": firm_name.strip(), "created_at": utcnow()})
    store.insert("profiles", {
        "id": user_id,
        "firm_id": firm_id,
        "full_name": full_name.strip(),
        "email": email,
        "role": Role.ADMIN.value,
        "created_at": utcnow(),
    })
    logger.info("Onboarded firm %s with admin %s", firm_id, user_id)
    return resolve_tenant(store, user_id)


def get_current_context() -> TenantContext:
    """
    Get the full current tenant context.

    Raises:
        NotAuthenticated: If no tenant context is set
    """
    ctx = current_context.get()
    if ctx is None:
        raise NotAuthenticated()
    return ctx


def set_tenant_context(context: TenantContext):
    """Set the tenant context for the current request. Returns a reset token."""
    return current_context.set(context)


def reset_tenant_context(token) -> None:
    current_context.reset(token)


class TenantContextManager:
    """
    Context manager for temporarily setting tenant context.

    Usage:
        with TenantContextManager(context):
            clients = ClientRegistry(store)  # Uses current tenant automatically
    """

    def __init__(self, context: TenantContext):
        self.context = context
        self.token = None

    def __enter__(self):
        self.token = set_tenant_context(self.context)
        return self.context

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            reset_tenant_context(self.token)
        return False


class TenantScopedStore:
    """
    Store access bound to one firm.

    - inserts are stamped with the firm's id
    - updates may never move a row to another firm
    - every row coming back is checked against the firm
    - a missing row (or one owned by another firm) is NotFound
    """

    def __init__(self, store: Store, context: TenantContext = None):
        self.store = store
        self.context = context or get_current_context()

    @property
    def firm_id(self) -> str:
        return self.context.firm_id

    def _breach(self, table: str, actual_firm_id) -> CrossTenantAccessDenied:
        error = CrossTenantAccessDenied(ENTITY_NAMES.get(table, table), self.firm_id, actual_firm_id)
        logger.error("Invariant breach: %s", error)
        return error

    def _guard(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        actual = row.get(scope_column(table))
        if actual != self.firm_id:
            raise self._breach(table, actual)
        return row

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(row)
        if row.get("firm_id") not in (None, self.firm_id):
            raise self._breach(table, row["firm_id"])
        row["firm_id"] = self.firm_id
        row["id"] = row.get("id") or new_id()
        now = utcnow()
        for column in ("created_at", "updated_at"):
            if column in TABLE_COLUMNS[table] and row.get(column) is None:
                row[column] = now
        return self._guard(table, self.store.insert(table, row))

    def find(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        if not row_id:
            return None
        rows = self.store.select(table, self.firm_id, {"id": row_id})
        return self._guard(table, rows[0]) if rows else None

    def get(self, table: str, row_id: str) -> Dict[str, Any]:
        row = self.find(table, row_id)
        if row is None:
            raise NotFound(ENTITY_NAMES.get(table, table), row_id)
        return row

    def require_reference(self, table: str, row_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Check an optional cross-entity reference resolves in this firm."""
        if row_id is None:
            return None
        return self.get(table, row_id)

    def update(self, table: str, row_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        fields = dict(fields)
        if fields.get("firm_id") not in (None, self.firm_id):
            raise self._breach(table, fields["firm_id"])
        fields.pop("firm_id", None)
        fields.pop("id", None)
        if "updated_at" in TABLE_COLUMNS[table]:
            fields["updated_at"] = utcnow()
        row = self.store.update(table, self.firm_id, row_id, fields)
        if row is None:
            raise NotFound(ENTITY_NAMES.get(table, table), row_id)
        return self._guard(table, row)

    def delete(self, table: str, row_id: str) -> None:
        if not self.store.delete(table, self.firm_id, row_id):
            raise NotFound(ENTITY_NAMES.get(table, table), row_id)

    def list(self, table: str, filters: Dict[str, Any] = None, order_by: str = None,
             descending: bool = False, limit: int = None) -> List[Dict[str, Any]]:
        rows = self.store.select(table, self.firm_id, filters, order_by, descending, limit)
        return [self._guard(table, row) for row in rows]

    def count(self, table: str, filters: Dict[str, Any] = None) -> int:
        return self.store.count(table, self.firm_id, filters)

    def transaction(self):
        """Group several writes so a failure part way leaves nothing behind."""
        return self.store.transaction()


class ProfileDirectory:
    """Members of the current firm."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def add_member(self, user_id: str, full_name: str, role: str = "staff",
                   email: str = None) -> Dict[str, Any]:
        """Register another actor in this firm. Admin only."""
        self.scoped.context.require_role(Role.ADMIN.value)
        if role not in ROLE_HIERARCHY:
            raise ValidationError("role", f"must be one of {', '.join(ROLE_HIERARCHY)}")
        if not full_name or not full_name.strip():
            raise ValidationError("full_name", "is required")
        if self.scoped.store.find_profile(user_id):
            raise ValidationError("user_id", "already belongs to a firm")
        row = self.scoped.insert("profiles", {
            "id": user_id,
            "full_name": full_name.strip(),
            "email": email,
            "role": role,
        })
        logger.info("Added %s %s to firm %s", role, user_id, self.scoped.firm_id)
        return row

    def list_members(self, role: str = None) -> List[Dict[str, Any]]:
        filters = {"role": role} if role else None
        return self.scoped.list("profiles", filters, order_by="full_name")
