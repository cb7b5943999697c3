"""Agent-facing tools for shared memory access.

These functions are designed to be exposed as tools to the agents of one
bundle, letting them read the stack's shared memory and write under their
own bundle id.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from bundlestack.memory.base import MemoryEntry
    from bundlestack.memory.store import SharedMemoryStore


def _format_entry(entry: MemoryEntry) -> str:
    payload = entry.payload if isinstance(entry.payload, str) else json.dumps(
        entry.payload, ensure_ascii=False, default=str
    )
    ts = entry.timestamp.isoformat(timespec="seconds")
    return f"- [{ts}] ({entry.category} · {entry.bundle_id}) {entry.id}: {payload}"


def get_memory_tools(store: SharedMemoryStore, bundle_id: str) -> dict[str, Callable[..., Any]]:
    """Return a dict of tool_name -> callable bound to ``bundle_id``.

    These can be registered as agent tools or called directly.
    """

    def remember(category: str, payload: Any, metadata: dict | None = None) -> str:
        """Store a memory under ``category``, written by this bundle."""
        entry_id = store.store(category, bundle_id, payload, metadata)
        return f"Stored {entry_id} in {category}"

    def recall(category: str | None = None, limit: int = 10) -> str:
        """List recent memories, newest first (optionally within one category)."""
        entries = store.query(category=category, limit=limit)
        if not entries:
            return "(no memories found)"
        return "\n".join(_format_entry(e) for e in entries)

    def forget(entry_id: str) -> str:
        """Delete a memory this bundle wrote."""
        entry = store.get(entry_id)
        if entry is None:
            return f"No memory {entry_id}"
        if entry.bundle_id != bundle_id:
            return f"Memory {entry_id} belongs to {entry.bundle_id}; not deleted"
        if not store.delete(entry_id, bundle_id=bundle_id):
            return f"Memory {entry_id} changed before it could be deleted; not deleted"
        return f"Deleted {entry_id}"

    def categories() -> str:
        """List the memory categories this bundle owns in the stack."""
        return ", ".join(store.get_owned_categories(bundle_id)) or "(none)"

    return {
        "remember": remember,
        "recall": recall,
        "forget": forget,
        "categories": categories,
    }
