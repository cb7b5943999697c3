"""Configuration loading from environment variables and bundlestack.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_HOME = Path.home() / ".bundlestack"
_DEFAULT_BUNDLE_DIR = _DEFAULT_HOME / "bundles"
_CONFIG_FILENAME = "bundlestack.toml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var; unrecognized values fall back to ``default``."""
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


@dataclass
class LoaderConfig:
    """Where bundle descriptors come from."""

    load_builtins: bool = True
    bundle_dir: Path | None = _DEFAULT_BUNDLE_DIR


@dataclass
class StackConfig:
    """Initial stack toggles."""

    shared_memory_enabled: bool = True
    cross_bundle_automations: bool = True


@dataclass
class MemoryConfig:
    """Shared memory behaviour."""

    enforce_ownership: bool = False


@dataclass
class BundleStackConfig:
    """Top-level bundlestack configuration."""

    loader: LoaderConfig = field(default_factory=LoaderConfig)
    stack: StackConfig = field(default_factory=StackConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> BundleStackConfig:
    """Load configuration from environment variables and optional bundlestack.toml.

    Priority: environment variables > bundlestack.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.bundlestack/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_HOME / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    loader_data = file_data.get("loader", {})
    stack_data = file_data.get("stack", {})
    memory_data = file_data.get("memory", {})

    bundle_dir = os.getenv("BUNDLESTACK_BUNDLE_DIR", loader_data.get("bundle_dir"))

    config = BundleStackConfig(
        loader=LoaderConfig(
            load_builtins=_env_bool(
                "BUNDLESTACK_LOAD_BUILTINS", loader_data.get("load_builtins", True)
            ),
            bundle_dir=Path(bundle_dir).expanduser() if bundle_dir else _DEFAULT_BUNDLE_DIR,
        ),
        stack=StackConfig(
            shared_memory_enabled=_env_bool(
                "BUNDLESTACK_SHARED_MEMORY", stack_data.get("shared_memory_enabled", True)
            ),
            cross_bundle_automations=_env_bool(
                "BUNDLESTACK_CROSS_AUTOMATIONS", stack_data.get("cross_bundle_automations", True)
            ),
        ),
        memory=MemoryConfig(
            enforce_ownership=_env_bool(
                "BUNDLESTACK_ENFORCE_OWNERSHIP", memory_data.get("enforce_ownership", False)
            ),
        ),
        log_level=os.getenv("BUNDLESTACK_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
