"""
Practice Errors

Every failure raised by the registries derives from PracticeError so the
CLI (or any other caller) can report it with a single handler.
"""
from typing import Optional


class PracticeError(Exception):
    """Base error for the practice core."""


class ValidationError(PracticeError):
    """Malformed or missing field. User-correctable."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class InvalidTimeRange(ValidationError):
    """Calendar event ends at or before it starts."""

    def __init__(self, start_time, end_time):
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(
            "end_time",
            f"must be after start_time ({end_time} <= {start_time})",
        )


class NotFound(PracticeError):
    """
    Id does not resolve within the caller's firm.

    Raised both when the row does not exist and when it belongs to
    another firm, so callers can't discover other tenants' records.
    """

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class CrossTenantAccessDenied(PracticeError):
    """A row from another firm reached the tenant guard. Never user-facing."""

    def __init__(self, entity: str, expected_firm_id: str, actual_firm_id: Optional[str]):
        self.entity = entity
        self.expected_firm_id = expected_firm_id
        self.actual_firm_id = actual_firm_id
        super().__init__(
            f"Tenant isolation breach on {entity}: expected firm {expected_firm_id}, "
            f"got {actual_firm_id}"
        )


class NotAuthenticated(PracticeError):
    """No actor identity was supplied."""

    def __init__(self):
        super().__init__("Not authenticated")


class ProfileNotFound(PracticeError):
    """Actor is authenticated but has no firm profile yet (onboarding)."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No profile registered for user {user_id}")


class PermissionDenied(PracticeError):
    """Actor's role is below the one an operation requires."""

    def __init__(self, required_role: str, actual_role: str):
        self.required_role = required_role
        self.actual_role = actual_role
        super().__init__(f"Requires {required_role} role or higher (current: {actual_role})")
