"""Bundle catalog — built-in and file-based bundle descriptors.

Descriptor formats, picked by extension:
    .json   canonical JSON object
    .toml   TOML document (agents/automations as arrays of tables)
    .md     Markdown with the descriptor in YAML frontmatter; the body
            becomes the description when none is given
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from importlib import resources
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import frontmatter
import yaml

from bundlestack.bundles.base import Bundle, build_bundle, validate_bundle
from bundlestack.errors import ValidationError

logger = logging.getLogger(__name__)

RECOGNIZED_EXTENSIONS = (".json", ".toml", ".md")

_BUILTIN_PACKAGE = "bundlestack.bundles.builtin"


def parse_descriptor(text: str, suffix: str) -> dict[str, Any]:
    """Parse descriptor text into a raw mapping. Raises ValidationError on malformed input."""
    suffix = suffix.lower()
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix == ".toml":
            data = tomllib.loads(text)
        elif suffix == ".md":
            post = frontmatter.loads(text)
            data = dict(post.metadata)
            if not data.get("description") and post.content.strip():
                data["description"] = post.content.strip()
        else:
            raise ValidationError("descriptor", f"Unrecognized descriptor format: {suffix}")
    except (ValueError, yaml.YAMLError) as e:
        raise ValidationError("descriptor", f"Could not parse bundle descriptor: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("descriptor", "Bundle descriptor must be an object")
    return data


class BundleLoader:
    """Id-keyed registry of known bundles with lookup and search.

    Construct one explicitly and pass it to whatever composes the system;
    nothing is loaded until ``load_builtins`` or a ``load_custom_*`` call.
    """

    def __init__(self, extensions: Iterable[str] = RECOGNIZED_EXTENSIONS) -> None:
        self._bundles: dict[str, Bundle] = {}
        self.extensions = tuple(e.lower() for e in extensions)

    def __len__(self) -> int:
        return len(self._bundles)

    # ── Loading ──────────────────────────────────────────────

    def load_builtins(self) -> list[Bundle]:
        """Register the official bundles shipped with the package."""
        loaded: list[Bundle] = []
        root = resources.files(_BUILTIN_PACKAGE)
        for item in sorted(root.iterdir(), key=lambda p: p.name):
            suffix = Path(item.name).suffix
            if suffix not in RECOGNIZED_EXTENSIONS:
                continue
            data = parse_descriptor(item.read_text(encoding="utf-8"), suffix)
            bundle = build_bundle(data)
            self._bundles[bundle.id] = bundle
            loaded.append(bundle)
        logger.info("Loaded %d built-in bundles", len(loaded))
        return loaded

    def load_custom_bundle(self, path: str | Path) -> Bundle:
        """Load, validate and register one descriptor file.

        Raises OSError if the file can't be read, ValidationError if it's malformed.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        data = parse_descriptor(text, path.suffix)
        bundle = build_bundle(data)
        if bundle.id in self._bundles:
            logger.info("Overwriting bundle %s from %s", bundle.id, path)
        self._bundles[bundle.id] = bundle
        logger.info("Loaded bundle %s from %s", bundle.id, path)
        return bundle

    def load_custom_bundles_from_dir(self, directory: str | Path) -> list[Bundle]:
        """Load every recognized descriptor in a directory.

        A bad file is logged and skipped. An unreadable directory yields [].
        """
        directory = Path(directory)
        try:
            files = sorted(p for p in directory.iterdir() if p.is_file())
        except OSError as e:
            logger.error("Failed to read bundle directory %s: %s", directory, e)
            return []

        bundles: list[Bundle] = []
        for path in files:
            if path.suffix.lower() not in self.extensions:
                continue
            try:
                bundles.append(self.load_custom_bundle(path))
            except (OSError, UnicodeDecodeError, ValidationError) as e:
                logger.warning("Failed to load bundle from %s: %s", path.name, e)
        return bundles

    # ── Programmatic registration ────────────────────────────

    def register_bundle(self, bundle: Bundle) -> None:
        """Validate and register (or overwrite) a bundle."""
        validate_bundle(bundle)
        self._bundles[bundle.id] = bundle
        logger.info("Registered bundle %s", bundle.id)

    def unregister_bundle(self, bundle_id: str) -> bool:
        removed = self._bundles.pop(bundle_id, None) is not None
        if removed:
            logger.info("Unregistered bundle %s", bundle_id)
        return removed

    # ── Lookup & search ──────────────────────────────────────

    def has_bundle(self, bundle_id: str) -> bool:
        return bundle_id in self._bundles

    def get_bundle(self, bundle_id: str) -> Bundle | None:
        return self._bundles.get(bundle_id)

    def get_all(self) -> list[Bundle]:
        return list(self._bundles.values())

    def get_by_type(self, bundle_type: str) -> list[Bundle]:
        return [b for b in self._bundles.values() if b.type == bundle_type]

    def search_by_tag(self, tag: str) -> list[Bundle]:
        """Case-insensitive substring match against each bundle's tags."""
        needle = tag.lower()
        return [
            b for b in self._bundles.values() if any(needle in t.lower() for t in b.tags)
        ]

    def search(self, query: str) -> list[Bundle]:
        """Case-insensitive substring match against name or description."""
        q = query.lower()
        return [
            b
            for b in self._bundles.values()
            if q in b.name.lower() or q in b.description.lower()
        ]

    def get_by_author(self, author: str) -> list[Bundle]:
        return [b for b in self._bundles.values() if b.author == author]
