"""Stack manager — which bundles are active together, and the invariants between them.

Adding a bundle checks it against every active bundle (duplicate id, agent
role collision), then appends it and registers its memory categories as
owned in the shared store. Either all of that happens or none of it does.
"""

from __future__ import annotations

import logging
import threading

from bundlestack.bundles.base import Bundle
from bundlestack.errors import DuplicateBundleError, NotFoundError, RoleConflictError
from bundlestack.memory.store import SharedMemoryStore
from bundlestack.stack.base import (
    ActiveStack,
    AutomationResolver,
    PassthroughResolver,
    StackedAgent,
    StackedAutomation,
)

logger = logging.getLogger(__name__)


class StackManager:
    """Owns the ordered set of active bundles and their shared memory registrations."""

    def __init__(
        self,
        shared_memory: SharedMemoryStore | None = None,
        resolver: AutomationResolver | None = None,
        shared_memory_enabled: bool = True,
        cross_bundle_automations_enabled: bool = True,
    ) -> None:
        self._memory = shared_memory if shared_memory is not None else SharedMemoryStore()
        self._resolver: AutomationResolver = resolver or PassthroughResolver()
        self._order: list[str] = []
        self._bundles: dict[str, Bundle] = {}
        self._shared_memory_enabled = shared_memory_enabled
        self._cross_bundle_automations = cross_bundle_automations_enabled
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    @property
    def shared_memory(self) -> SharedMemoryStore:
        return self._memory

    # ── Composition ──────────────────────────────────────────

    def add_to_stack(self, bundle: Bundle) -> None:
        """Activate ``bundle``.

        Raises DuplicateBundleError or RoleConflictError; on failure the stack,
        and the shared store's ownership registry, are left unchanged.
        """
        with self._lock:
            if bundle.id in self._bundles:
                raise DuplicateBundleError(bundle.id)
            self._check_conflicts(bundle)

            if self._cross_bundle_automations:
                self._resolver.merge(bundle, self._stacked_automations())

            self._order.append(bundle.id)
            self._bundles[bundle.id] = bundle
            if self._shared_memory_enabled:
                for category in bundle.memory_categories:
                    self._memory.register_category(category, bundle.id)

        logger.info(
            "Added bundle %s to stack (%d agents, %d memory categories)",
            bundle.id,
            len(bundle.agents),
            len(bundle.memory_categories),
        )

    def remove_from_stack(self, bundle_id: str) -> None:
        """Deactivate a bundle. Its memory entries stay; only ownership is dropped."""
        with self._lock:
            bundle = self._bundles.get(bundle_id)
            if bundle is None:
                raise NotFoundError(bundle_id)

            if self._shared_memory_enabled:
                for category in bundle.memory_categories:
                    self._memory.unregister_category(category, bundle_id)

            self._order.remove(bundle_id)
            del self._bundles[bundle_id]
        logger.info("Removed bundle %s from stack", bundle_id)

    def clear_stack(self) -> None:
        """Deactivate everything and wipe the whole shared store."""
        with self._lock:
            self._order.clear()
            self._bundles.clear()
            self._memory.clear()
        logger.info("Stack cleared")

    def _check_conflicts(self, bundle: Bundle) -> None:
        existing: dict[str, str] = {}  # role → bundle id
        for bundle_id in self._order:
            for agent in self._bundles[bundle_id].agents:
                existing.setdefault(agent.role, bundle_id)

        for agent in bundle.agents:
            if agent.role in existing:
                raise RoleConflictError(agent.role, existing[agent.role])

    # ── Toggles ──────────────────────────────────────────────

    def set_shared_memory_enabled(self, enabled: bool) -> None:
        """Applies to later add/remove calls only; existing registrations are kept."""
        with self._lock:
            self._shared_memory_enabled = enabled

    def set_cross_bundle_automations_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._cross_bundle_automations = enabled

    def get_stack_config(self) -> ActiveStack:
        with self._lock:
            return ActiveStack(
                bundle_ids=list(self._order),
                shared_memory_enabled=self._shared_memory_enabled,
                cross_bundle_automations_enabled=self._cross_bundle_automations,
            )

    # ── Queries ──────────────────────────────────────────────

    def is_active(self, bundle_id: str) -> bool:
        with self._lock:
            return bundle_id in self._bundles

    def get_active_bundles(self) -> list[Bundle]:
        with self._lock:
            return [self._bundles[i] for i in self._order]

    def get_all_agents(self) -> list[StackedAgent]:
        with self._lock:
            return [
                StackedAgent(bundle_id, agent)
                for bundle_id in self._order
                for agent in self._bundles[bundle_id].agents
            ]

    def get_all_skills(self) -> set[str]:
        with self._lock:
            return {s for bundle_id in self._order for s in self._bundles[bundle_id].skills}

    def get_all_automations(self) -> list[StackedAutomation]:
        with self._lock:
            return self._resolver.resolve(self._stacked_automations())

    def _stacked_automations(self) -> list[StackedAutomation]:
        return [
            StackedAutomation(bundle_id, automation)
            for bundle_id in self._order
            for automation in self._bundles[bundle_id].automations
        ]

    def find_agent_by_role(self, role: str) -> StackedAgent | None:
        with self._lock:
            for bundle_id in self._order:
                for agent in self._bundles[bundle_id].agents:
                    if agent.role == role:
                        return StackedAgent(bundle_id, agent)
        return None

    def get_bundles_with_skill(self, skill_id: str) -> list[str]:
        with self._lock:
            return [i for i in self._order if skill_id in self._bundles[i].skills]
