"""Bundle stacking — compose several bundles into one active configuration."""

from bundlestack.stack.base import (
    ActiveStack,
    AutomationResolver,
    PassthroughResolver,
    StackedAgent,
    StackedAutomation,
)
from bundlestack.stack.manager import StackManager

__all__ = [
    "ActiveStack",
    "AutomationResolver",
    "PassthroughResolver",
    "StackManager",
    "StackedAgent",
    "StackedAutomation",
]
