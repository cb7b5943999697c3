"""Tests for the bundle-scoped memory tools."""

import pytest

from bundlestack.memory.store import SharedMemoryStore
from bundlestack.tools.memory_tools import get_memory_tools


@pytest.fixture
def store() -> SharedMemoryStore:
    s = SharedMemoryStore()
    s.register_category("notes", "writer")
    s.register_category("drafts", "writer")
    return s


@pytest.fixture
def tools(store: SharedMemoryStore) -> dict:
    return get_memory_tools(store, "writer")


class TestMemoryTools:
    def test_remember_writes_under_bundle(self, store: SharedMemoryStore, tools: dict):
        result = tools["remember"]("notes", "outline ready", {"v": 1})
        assert result.startswith("Stored mem_")
        entry = store.query(category="notes")[0]
        assert entry.bundle_id == "writer"
        assert entry.metadata == {"v": 1}

    def test_recall_reads_other_bundles(self, store: SharedMemoryStore, tools: dict):
        store.store("notes", "researcher", {"source": "paper"})
        out = tools["recall"]("notes")
        assert "researcher" in out
        assert '"source": "paper"' in out

    def test_recall_empty(self, tools: dict):
        assert tools["recall"]() == "(no memories found)"

    def test_recall_limit(self, store: SharedMemoryStore, tools: dict):
        for i in range(5):
            store.store("notes", "writer", f"n{i}")
        assert len(tools["recall"](limit=2).splitlines()) == 2

    def test_forget_own_entry(self, store: SharedMemoryStore, tools: dict):
        entry_id = store.store("notes", "writer", "x")
        assert tools["forget"](entry_id) == f"Deleted {entry_id}"
        assert store.get(entry_id) is None

    def test_forget_other_bundles_entry_refused(self, store: SharedMemoryStore, tools: dict):
        entry_id = store.store("notes", "researcher", "x")
        assert "not deleted" in tools["forget"](entry_id)
        assert store.get(entry_id) is not None

    def test_forget_entry_reassigned_after_check(
        self, store: SharedMemoryStore, tools: dict, monkeypatch
    ):
        entry_id = store.store("notes", "writer", "x")
        real_get = store.get

        def get_then_reassign(eid):
            entry = real_get(eid)
            store.update(eid, bundle_id="researcher")
            return entry

        monkeypatch.setattr(store, "get", get_then_reassign)
        assert "not deleted" in tools["forget"](entry_id)
        assert real_get(entry_id).bundle_id == "researcher"

    def test_forget_unknown(self, tools: dict):
        assert tools["forget"]("mem_missing") == "No memory mem_missing"

    def test_categories(self, store: SharedMemoryStore, tools: dict):
        assert tools["categories"]() == "drafts, notes"
        assert get_memory_tools(store, "nobody")["categories"]() == "(none)"
