"""Entry point: python -m bundlestack [list|search|show|stack]

- No args / "list":   List every bundle in the catalog
- "search <query>":   Match name, description or tags
- "show <id>":        Print one bundle's agents, skills and memory categories
- "stack <id> ...":   Compose bundles in order and report the resulting stack
"""

from __future__ import annotations

import logging
import sys

from bundlestack.config import load_config
from bundlestack.errors import BundleStackError


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build():
    config = load_config()
    _setup_logging(config.log_level)

    from bundlestack.core import BundleStack

    bs = BundleStack(config)
    bs.load_custom_bundles()
    return bs


def _print_bundle_line(bundle) -> None:
    print(f"{bundle.id:<16} {bundle.type:<10} {bundle.name} ({len(bundle.agents)} agents)")


def _run_list() -> None:
    bs = _build()
    for bundle in bs.loader.get_all():
        _print_bundle_line(bundle)


def _run_search(query: str) -> None:
    bs = _build()
    seen: set[str] = set()
    for bundle in bs.loader.search(query) + bs.loader.search_by_tag(query):
        if bundle.id not in seen:
            seen.add(bundle.id)
            _print_bundle_line(bundle)


def _run_show(bundle_id: str) -> None:
    bs = _build()
    bundle = bs.loader.get_bundle(bundle_id)
    if bundle is None:
        print(f"Unknown bundle: {bundle_id}", file=sys.stderr)
        sys.exit(1)
    print(f"{bundle.name} [{bundle.id}] — {bundle.type}")
    if bundle.description:
        print(bundle.description)
    print(f"Tags: {', '.join(bundle.tags)}")
    print("Agents:")
    for agent in bundle.agents:
        print(f"  - {agent.role}: {agent.name}")
    print(f"Skills: {', '.join(bundle.skills)}")
    print(f"Memory categories: {', '.join(bundle.memory_categories)}")


def _run_stack(bundle_ids: list[str]) -> None:
    bs = _build()
    failed = False
    for bundle_id in bundle_ids:
        try:
            bs.activate(bundle_id)
            print(f"+ {bundle_id}")
        except BundleStackError as e:
            print(f"! {bundle_id}: {e}", file=sys.stderr)
            failed = True

    print(f"\nActive: {', '.join(b.id for b in bs.stack.get_active_bundles())}")
    print("Agents:")
    for stacked in bs.stack.get_all_agents():
        print(f"  - {stacked.agent.role} ({stacked.bundle_id})")
    print(f"Skills: {', '.join(sorted(bs.stack.get_all_skills()))}")
    print("Automations:")
    for stacked in bs.stack.get_all_automations():
        print(f"  - {stacked.automation.name} [{stacked.automation.trigger_type}] ({stacked.bundle_id})")
    print("Memory owners:")
    categories = dict.fromkeys(
        c for b in bs.stack.get_active_bundles() for c in b.memory_categories
    )
    for category in categories:
        owners = bs.memory.get_category_owners(category)
        print(f"  - {category}: {', '.join(owners)}")
    if failed:
        sys.exit(1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "list"
    args = sys.argv[2:]

    if cmd == "list":
        _run_list()
    elif cmd == "search" and args:
        _run_search(" ".join(args))
    elif cmd == "show" and len(args) == 1:
        _run_show(args[0])
    elif cmd == "stack" and args:
        _run_stack(args)
    else:
        print("Usage: python -m bundlestack [list|search|show|stack]")
        print("  list               — List bundles in the catalog (default)")
        print("  search <query>     — Search by name, description or tag")
        print("  show <id>          — Show one bundle")
        print("  stack <id> [...]   — Compose bundles and print the resulting stack")
        sys.exit(1)


if __name__ == "__main__":
    main()
