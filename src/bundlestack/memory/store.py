"""Shared memory store — one table, two secondary indexes, one ownership registry.

Entries live in a primary table keyed by id. Two indexes (category → ids,
bundle id → ids) make the common queries cheap. The indexes are private:
every mutation goes through this class, under one lock, so the table and
both indexes always change together.

The ownership registry (category → bundle ids) is bookkeeping maintained by
the stack manager. It is independent of which entries exist. Writes are only
checked against it when ``enforce_ownership`` is on.
"""

from __future__ import annotations

import itertools
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any

from bundlestack.errors import OwnershipError
from bundlestack.memory.base import MemoryEntry, MemorySnapshot, MemoryStats, to_local_naive

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _generate_id() -> str:
    return f"mem_{uuid.uuid4().hex}"


class SharedMemoryStore:
    """In-process memory shared across the bundles of a stack."""

    def __init__(self, enforce_ownership: bool = False) -> None:
        self.enforce_ownership = enforce_ownership
        self._entries: dict[str, MemoryEntry] = {}
        self._seq: dict[str, int] = {}  # id → insertion order, breaks timestamp ties
        self._by_category: dict[str, set[str]] = {}
        self._by_bundle: dict[str, set[str]] = {}
        self._owners: dict[str, set[str]] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Index helpers (caller holds the lock) ────────────────

    @staticmethod
    def _index_add(index: dict[str, set[str]], key: str, entry_id: str) -> None:
        index.setdefault(key, set()).add(entry_id)

    @staticmethod
    def _index_discard(index: dict[str, set[str]], key: str, entry_id: str) -> None:
        ids = index.get(key)
        if ids is None:
            return
        ids.discard(entry_id)
        if not ids:
            del index[key]

    def _insert(self, entry: MemoryEntry) -> None:
        self._entries[entry.id] = entry
        self._seq[entry.id] = next(self._counter)
        self._index_add(self._by_category, entry.category, entry.id)
        self._index_add(self._by_bundle, entry.bundle_id, entry.id)

    def _remove(self, entry: MemoryEntry) -> None:
        del self._entries[entry.id]
        del self._seq[entry.id]
        self._index_discard(self._by_category, entry.category, entry.id)
        self._index_discard(self._by_bundle, entry.bundle_id, entry.id)

    def _check_owner(self, bundle_id: str, category: str) -> None:
        if self.enforce_ownership and bundle_id not in self._owners.get(category, ()):
            raise OwnershipError(bundle_id, category)

    @staticmethod
    def _copy(entry: MemoryEntry) -> MemoryEntry:
        return replace(entry, metadata=dict(entry.metadata))

    # ── Category ownership ───────────────────────────────────

    def register_category(self, category: str, bundle_id: str) -> None:
        with self._lock:
            self._owners.setdefault(category, set()).add(bundle_id)

    def unregister_category(self, category: str, bundle_id: str) -> None:
        with self._lock:
            owners = self._owners.get(category)
            if owners is None:
                return
            owners.discard(bundle_id)
            if not owners:
                del self._owners[category]

    def get_category_owners(self, category: str) -> list[str]:
        with self._lock:
            return sorted(self._owners.get(category, ()))

    def has_access(self, bundle_id: str, category: str) -> bool:
        with self._lock:
            return bundle_id in self._owners.get(category, ())

    def get_owned_categories(self, bundle_id: str) -> list[str]:
        with self._lock:
            return sorted(c for c, owners in self._owners.items() if bundle_id in owners)

    def get_categories(self) -> list[str]:
        """Categories that currently hold at least one entry."""
        with self._lock:
            return list(self._by_category)

    # ── Entry CRUD ───────────────────────────────────────────

    def store(
        self,
        category: str,
        bundle_id: str,
        payload: Any,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Insert a new entry and return its generated id."""
        with self._lock:
            self._check_owner(bundle_id, category)
            entry = MemoryEntry(
                id=_generate_id(),
                category=category,
                bundle_id=bundle_id,
                payload=payload,
                timestamp=datetime.now(),
                metadata=dict(metadata or {}),
            )
            self._insert(entry)
        logger.debug("Stored %s (category=%s, bundle=%s)", entry.id, category, bundle_id)
        return entry.id

    def get(self, entry_id: str) -> MemoryEntry | None:
        with self._lock:
            entry = self._entries.get(entry_id)
            return self._copy(entry) if entry is not None else None

    def update(
        self,
        entry_id: str,
        *,
        category: str | None = None,
        bundle_id: str | None = None,
        payload: Any = _UNSET,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Apply a partial update. Returns False if ``entry_id`` is unknown.

        A changed category or bundle id is reindexed before the other fields
        are applied. ``id`` and ``timestamp`` never change.
        """
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return False

            new_category = entry.category if category is None else category
            new_bundle = entry.bundle_id if bundle_id is None else bundle_id
            if (new_category, new_bundle) != (entry.category, entry.bundle_id):
                self._check_owner(new_bundle, new_category)

            if new_category != entry.category:
                self._index_discard(self._by_category, entry.category, entry_id)
                self._index_add(self._by_category, new_category, entry_id)
                entry.category = new_category
            if new_bundle != entry.bundle_id:
                self._index_discard(self._by_bundle, entry.bundle_id, entry_id)
                self._index_add(self._by_bundle, new_bundle, entry_id)
                entry.bundle_id = new_bundle

            if payload is not _UNSET:
                entry.payload = payload
            if metadata is not None:
                entry.metadata = dict(metadata)
        logger.debug("Updated %s", entry_id)
        return True

    def delete(self, entry_id: str, *, bundle_id: str | None = None) -> bool:
        """Remove an entry. With ``bundle_id``, only if that bundle wrote it."""
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return False
            if bundle_id is not None and entry.bundle_id != bundle_id:
                return False
            self._remove(entry)
        return True

    # ── Query ────────────────────────────────────────────────

    def query(
        self,
        *,
        category: str | None = None,
        bundle_id: str | None = None,
        after: datetime | None = None,
        before: datetime | None = None,
        limit: int | None = None,
    ) -> list[MemoryEntry]:
        """Return matching entries, newest first.

        ``category`` selects from the category index, else ``bundle_id`` from
        the bundle index, else the whole table. Only one of the two keys is
        used. Time bounds are inclusive; aware bounds are converted to local
        time. ``limit`` applies when > 0.
        """
        with self._lock:
            if category is not None:
                ids: Any = self._by_category.get(category, ())
            elif bundle_id is not None:
                ids = self._by_bundle.get(bundle_id, ())
            else:
                ids = self._entries.keys()

            results = [self._entries[i] for i in ids]
            if after is not None:
                after = to_local_naive(after)
                results = [e for e in results if e.timestamp >= after]
            if before is not None:
                before = to_local_naive(before)
                results = [e for e in results if e.timestamp <= before]

            results.sort(key=lambda e: (e.timestamp, self._seq[e.id]), reverse=True)
            if limit and limit > 0:
                results = results[:limit]
            return [self._copy(e) for e in results]

    def get_stats(self) -> MemoryStats:
        with self._lock:
            timestamps = [e.timestamp for e in self._entries.values()]
            return MemoryStats(
                total_entries=len(self._entries),
                category_counts={c: len(ids) for c, ids in self._by_category.items()},
                bundle_counts={b: len(ids) for b, ids in self._by_bundle.items()},
                oldest_entry=min(timestamps) if timestamps else None,
                newest_entry=max(timestamps) if timestamps else None,
            )

    # ── Bulk removal ─────────────────────────────────────────

    def clear_for_bundle(self, bundle_id: str) -> int:
        """Delete every entry written by ``bundle_id``. Returns count removed."""
        with self._lock:
            ids = self._by_bundle.pop(bundle_id, set())
            for entry_id in ids:
                entry = self._entries.pop(entry_id)
                del self._seq[entry_id]
                self._index_discard(self._by_category, entry.category, entry_id)
        if ids:
            logger.info("Cleared %d entries for bundle %s", len(ids), bundle_id)
        return len(ids)

    def clear_for_category(self, category: str) -> int:
        """Delete every entry under ``category``. Returns count removed."""
        with self._lock:
            ids = self._by_category.pop(category, set())
            for entry_id in ids:
                entry = self._entries.pop(entry_id)
                del self._seq[entry_id]
                self._index_discard(self._by_bundle, entry.bundle_id, entry_id)
        if ids:
            logger.info("Cleared %d entries in category %s", len(ids), category)
        return len(ids)

    def clear(self) -> None:
        """Drop all entries, both indexes and the ownership registry."""
        with self._lock:
            self._entries.clear()
            self._seq.clear()
            self._by_category.clear()
            self._by_bundle.clear()
            self._owners.clear()

    # ── Snapshots ────────────────────────────────────────────

    def export(self) -> MemorySnapshot:
        with self._lock:
            return MemorySnapshot(
                entries=[self._copy(e) for e in self._entries.values()],
                categories=list(self._by_category),
                category_owners={c: sorted(o) for c, o in self._owners.items()},
            )

    def import_snapshot(self, snapshot: MemorySnapshot | dict[str, Any]) -> None:
        """Replace all state with ``snapshot``.

        Indexes are rebuilt from the entries; ownership is restored verbatim,
        not derived from the entries' bundle ids.
        """
        if isinstance(snapshot, dict):
            snapshot = MemorySnapshot.from_dict(snapshot)
        with self._lock:
            self.clear()
            for category, owners in snapshot.category_owners.items():
                self._owners[category] = set(owners)
            for entry in snapshot.entries:
                if entry.id in self._entries:
                    self._remove(self._entries[entry.id])
                restored = replace(self._copy(entry), timestamp=to_local_naive(entry.timestamp))
                self._insert(restored)
        logger.info(
            "Imported %d entries, %d owned categories",
            len(snapshot.entries),
            len(snapshot.category_owners),
        )
