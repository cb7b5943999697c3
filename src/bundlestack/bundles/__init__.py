"""Bundle descriptors and the bundle catalog."""

from bundlestack.bundles.base import AgentSpec, AutomationSpec, Bundle, WidgetSpec
from bundlestack.bundles.loader import BundleLoader

__all__ = ["AgentSpec", "AutomationSpec", "Bundle", "BundleLoader", "WidgetSpec"]
