"""Shared memory entry types and snapshot format."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def to_local_naive(value: datetime | str) -> datetime:
    """Entries carry naive local time; aware or ``Z``-suffixed values are converted."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


@dataclass
class MemoryEntry:
    """One shared memory record, written by ``bundle_id`` under ``category``."""

    id: str
    category: str
    bundle_id: str
    payload: Any
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "bundleId": self.bundle_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryEntry:
        return cls(
            id=data["id"],
            category=data["category"],
            bundle_id=data["bundleId"],
            payload=data.get("payload"),
            timestamp=to_local_naive(data["timestamp"]),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class MemoryStats:
    total_entries: int
    category_counts: dict[str, int]
    bundle_counts: dict[str, int]
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None


@dataclass
class MemorySnapshot:
    """Full store state. Ownership is carried separately from the entries."""

    entries: list[MemoryEntry] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    category_owners: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form (payloads must themselves be JSON-safe)."""
        return {
            "entries": [e.to_dict() for e in self.entries],
            "categories": list(self.categories),
            "categoryOwners": {c: list(o) for c, o in self.category_owners.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemorySnapshot:
        return cls(
            entries=[MemoryEntry.from_dict(e) for e in data.get("entries", [])],
            categories=list(data.get("categories", [])),
            category_owners={c: list(o) for c, o in data.get("categoryOwners", {}).items()},
        )
