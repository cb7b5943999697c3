"""Agent-facing tools."""
