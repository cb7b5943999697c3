"""Shared memory — an indexed, in-process store that bundles in one stack read and write.

    SharedMemoryStore
    ├── entries        id → MemoryEntry
    ├── by category    category → {id}
    ├── by bundle      bundle id → {id}
    └── owners         category → {bundle id}   (maintained by the stack manager)
"""

from bundlestack.memory.base import MemoryEntry, MemorySnapshot, MemoryStats
from bundlestack.memory.store import SharedMemoryStore

__all__ = ["MemoryEntry", "MemorySnapshot", "MemoryStats", "SharedMemoryStore"]
