"""BundleStack — wires the loader, the stack manager and the shared memory store.

Responsibilities:
1. Build one catalog (BundleLoader) and load built-in / custom bundles
2. Build one shared store and one stack manager that writes ownership into it
3. Activate / deactivate bundles by id
4. Hand out bundle-scoped memory tools to agent code
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from bundlestack.bundles.loader import BundleLoader
from bundlestack.config import BundleStackConfig
from bundlestack.errors import NotFoundError
from bundlestack.memory.store import SharedMemoryStore
from bundlestack.stack.manager import StackManager

if TYPE_CHECKING:
    from bundlestack.bundles.base import Bundle
    from bundlestack.stack.base import AutomationResolver

logger = logging.getLogger(__name__)


class BundleStack:
    """Composition root — every instance owns its own catalog, stack and memory."""

    def __init__(
        self,
        config: BundleStackConfig,
        resolver: AutomationResolver | None = None,
    ) -> None:
        self.config = config
        self.loader = BundleLoader()
        self.memory = SharedMemoryStore(enforce_ownership=config.memory.enforce_ownership)
        self.stack = StackManager(
            self.memory,
            resolver=resolver,
            shared_memory_enabled=config.stack.shared_memory_enabled,
            cross_bundle_automations_enabled=config.stack.cross_bundle_automations,
        )
        if config.loader.load_builtins:
            self.loader.load_builtins()

    # ── Catalog ──────────────────────────────────────────────

    def load_custom_bundles(self) -> list[Bundle]:
        """Load descriptors from the configured bundle directory, if it exists."""
        bundle_dir = self.config.loader.bundle_dir
        if not bundle_dir or not bundle_dir.is_dir():
            logger.debug("No custom bundle directory at %s", bundle_dir)
            return []
        bundles = self.loader.load_custom_bundles_from_dir(bundle_dir)
        logger.info("Loaded %d custom bundles from %s", len(bundles), bundle_dir)
        return bundles

    # ── Activation ───────────────────────────────────────────

    def activate(self, bundle_id: str) -> Bundle:
        """Look a bundle up in the catalog and add it to the stack."""
        bundle = self.loader.get_bundle(bundle_id)
        if bundle is None:
            raise NotFoundError(bundle_id, where="catalog")
        self.stack.add_to_stack(bundle)
        return bundle

    def deactivate(self, bundle_id: str) -> None:
        self.stack.remove_from_stack(bundle_id)

    # ── Agent access ─────────────────────────────────────────

    def memory_tools(self, bundle_id: str) -> dict[str, Callable[..., Any]]:
        """Memory tools for agents running inside an active bundle."""
        if not self.stack.is_active(bundle_id):
            raise NotFoundError(bundle_id)
        from bundlestack.tools.memory_tools import get_memory_tools

        return get_memory_tools(self.memory, bundle_id)
