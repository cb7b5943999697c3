"""bundlestack — compose capability bundles into one stack with shared memory."""

from bundlestack.bundles import AgentSpec, AutomationSpec, Bundle, BundleLoader, WidgetSpec
from bundlestack.core import BundleStack
from bundlestack.errors import (
    BundleStackError,
    DuplicateBundleError,
    NotFoundError,
    OwnershipError,
    RoleConflictError,
    ValidationError,
)
from bundlestack.memory import MemoryEntry, MemorySnapshot, MemoryStats, SharedMemoryStore
from bundlestack.stack import StackManager

__version__ = "0.1.0"

__all__ = [
    "AgentSpec",
    "AutomationSpec",
    "Bundle",
    "BundleLoader",
    "BundleStack",
    "BundleStackError",
    "DuplicateBundleError",
    "MemoryEntry",
    "MemorySnapshot",
    "MemoryStats",
    "NotFoundError",
    "OwnershipError",
    "RoleConflictError",
    "SharedMemoryStore",
    "StackManager",
    "ValidationError",
    "WidgetSpec",
]
