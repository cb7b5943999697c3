"""Tests for the BundleStack composition root and the entry point."""

import json
import sys
from pathlib import Path

import pytest

from bundlestack.__main__ import main
from bundlestack.config import BundleStackConfig, LoaderConfig, MemoryConfig, StackConfig
from bundlestack.core import BundleStack
from bundlestack.errors import NotFoundError, OwnershipError, RoleConflictError


@pytest.fixture
def config(tmp_path: Path) -> BundleStackConfig:
    return BundleStackConfig(loader=LoaderConfig(bundle_dir=tmp_path / "bundles"))


@pytest.fixture
def bs(config: BundleStackConfig) -> BundleStack:
    return BundleStack(config)


def write_custom(directory: Path, bundle_id: str, roles: list[str]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{bundle_id}.json").write_text(
        json.dumps(
            {
                "id": bundle_id,
                "name": bundle_id.title(),
                "type": "custom",
                "agents": [{"role": r} for r in roles],
                "skills": [],
                "automations": [],
                "dashboardWidgets": [],
                "memoryCategories": ["notes"],
            }
        ),
        encoding="utf-8",
    )


class TestBundleStack:
    def test_builtins_loaded(self, bs: BundleStack):
        assert bs.loader.has_bundle("ask-os")

    def test_builtins_optional(self, tmp_path: Path):
        bs = BundleStack(BundleStackConfig(loader=LoaderConfig(load_builtins=False)))
        assert len(bs.loader) == 0

    def test_activate_shares_memory_category(self, bs: BundleStack):
        bs.activate("ask-os")
        bs.activate("learning-os")

        assert bs.memory.get_category_owners("notes") == ["ask-os", "learning-os"]
        assert [b.id for b in bs.stack.get_active_bundles()] == ["ask-os", "learning-os"]

    def test_builtin_role_conflict(self, bs: BundleStack):
        bs.activate("business-os")
        with pytest.raises(RoleConflictError) as exc:
            bs.activate("finance-os")
        assert exc.value.role == "financial-analyst"
        assert not bs.stack.is_active("finance-os")

    def test_activate_unknown(self, bs: BundleStack):
        with pytest.raises(NotFoundError, match="catalog"):
            bs.activate("nope-os")

    def test_deactivate(self, bs: BundleStack):
        bs.activate("ask-os")
        bs.deactivate("ask-os")
        assert len(bs.stack) == 0
        with pytest.raises(NotFoundError):
            bs.deactivate("ask-os")

    def test_load_custom_bundles(self, bs: BundleStack, config: BundleStackConfig):
        write_custom(config.loader.bundle_dir, "my-kit", ["scribe"])
        loaded = bs.load_custom_bundles()
        assert [b.id for b in loaded] == ["my-kit"]
        bs.activate("my-kit")
        assert bs.stack.find_agent_by_role("scribe").bundle_id == "my-kit"

    def test_load_custom_bundles_without_dir(self, bs: BundleStack):
        assert bs.load_custom_bundles() == []

    def test_toggles_from_config(self, tmp_path: Path):
        bs = BundleStack(
            BundleStackConfig(
                stack=StackConfig(shared_memory_enabled=False, cross_bundle_automations=False)
            )
        )
        bs.activate("ask-os")
        assert bs.memory.get_category_owners("notes") == []
        assert bs.stack.get_stack_config().cross_bundle_automations_enabled is False

    def test_enforced_ownership(self):
        bs = BundleStack(BundleStackConfig(memory=MemoryConfig(enforce_ownership=True)))
        bs.activate("ask-os")
        bs.memory.store("notes", "ask-os", "allowed")
        with pytest.raises(OwnershipError):
            bs.memory.store("notes", "dev-os", "denied")

    def test_memory_tools_require_active_bundle(self, bs: BundleStack):
        with pytest.raises(NotFoundError):
            bs.memory_tools("ask-os")
        bs.activate("ask-os")
        tools = bs.memory_tools("ask-os")
        assert set(tools) == {"remember", "recall", "forget", "categories"}

    def test_separate_instances_do_not_share_state(self, config: BundleStackConfig):
        first = BundleStack(config)
        second = BundleStack(config)
        first.activate("ask-os")
        first.memory.store("notes", "ask-os", "x")
        assert len(second.stack) == 0
        assert len(second.memory) == 0


class TestEntryPoint:
    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("BUNDLESTACK_BUNDLE_DIR", str(tmp_path / "bundles"))
        monkeypatch.setenv("BUNDLESTACK_LOG_LEVEL", "WARNING")

    def test_list(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["bundlestack", "list"])
        main()
        out = capsys.readouterr().out
        assert "dev-os" in out
        assert "Human OS" in out

    def test_show(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["bundlestack", "show", "ask-os"])
        main()
        out = capsys.readouterr().out
        assert "researcher" in out
        assert "notes" in out

    def test_stack_reports_conflict(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["bundlestack", "stack", "business-os", "finance-os"])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
        captured = capsys.readouterr()
        assert "financial-analyst" in captured.err
        assert "Active: business-os" in captured.out

    def test_usage(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["bundlestack", "bogus"])
        with pytest.raises(SystemExit):
            main()
        assert "Usage" in capsys.readouterr().out
