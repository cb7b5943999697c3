"""Exception hierarchy for bundle loading, stacking and shared memory."""

from __future__ import annotations


class BundleStackError(Exception):
    """Base class for all bundlestack errors."""


class ValidationError(BundleStackError):
    """A bundle descriptor is malformed or missing a required field."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Bundle must have {field}")


class DuplicateBundleError(BundleStackError):
    """The bundle is already active in the stack."""

    def __init__(self, bundle_id: str) -> None:
        self.bundle_id = bundle_id
        super().__init__(f"Bundle {bundle_id} is already in the stack")


class RoleConflictError(BundleStackError):
    """An agent role is already declared by an active bundle."""

    def __init__(self, role: str, bundle_id: str) -> None:
        self.role = role
        self.bundle_id = bundle_id
        super().__init__(
            f"Agent role conflict: {role} already exists in stack (declared by {bundle_id}). "
            "Use unique agent roles or remove the conflicting bundle."
        )


class NotFoundError(BundleStackError):
    """The bundle is not active (or not known to the loader)."""

    def __init__(self, bundle_id: str, where: str = "stack") -> None:
        self.bundle_id = bundle_id
        super().__init__(f"Bundle {bundle_id} is not in the {where}")


class OwnershipError(BundleStackError):
    """A write targeted a category the writing bundle does not own."""

    def __init__(self, bundle_id: str, category: str) -> None:
        self.bundle_id = bundle_id
        self.category = category
        super().__init__(f"Bundle {bundle_id} does not own memory category '{category}'")
