"""Stack protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bundlestack.bundles.base import AgentSpec, AutomationSpec, Bundle


@dataclass
class StackedAgent:
    """An agent together with the active bundle that contributed it."""

    bundle_id: str
    agent: AgentSpec


@dataclass
class StackedAutomation:
    """An automation together with the active bundle that contributed it."""

    bundle_id: str
    automation: AutomationSpec


@dataclass
class ActiveStack:
    """Snapshot of the stack configuration."""

    bundle_ids: list[str] = field(default_factory=list)
    shared_memory_enabled: bool = True
    cross_bundle_automations_enabled: bool = True


@runtime_checkable
class AutomationResolver(Protocol):
    """Strategy for combining automations contributed by different bundles."""

    def merge(self, bundle: Bundle, active: list[StackedAutomation]) -> None:
        """Called when ``bundle`` joins a stack with cross-bundle automations on."""
        ...

    def resolve(self, automations: list[StackedAutomation]) -> list[StackedAutomation]:
        """Return the automations the stack should expose, in stack order."""
        ...


class PassthroughResolver:
    """No ordering, priority or merging between automations sharing a trigger."""

    def merge(self, bundle: Bundle, active: list[StackedAutomation]) -> None:
        return None

    def resolve(self, automations: list[StackedAutomation]) -> list[StackedAutomation]:
        return automations
