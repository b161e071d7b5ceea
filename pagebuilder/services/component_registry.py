"""
Component Registry Client

Resolves a (plugin_id, component_id) pair to its component manifest.
Pure lookup: the builder core never mutates manifests.

Manifests can be registered programmatically or loaded from a JSON/YAML
file containing either a list of manifests or {"components": [...]}.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

import yaml

from pagebuilder.models.contracts.builder import ComponentCategory, ComponentManifest

logger = logging.getLogger(__name__)


class ComponentRegistryClient(Protocol):
    """Interface consumed by the builder core."""

    def resolve_manifest(self, plugin_id: str, component_id: str) -> ComponentManifest | None:
        ...


class InMemoryComponentRegistry:
    """
    Registry backed by a dict of manifests.

    Used by sessions and tests; the plugin loader can populate it with
    register() as plugins come online.
    """

    def __init__(self, manifests: Iterable[ComponentManifest] = ()):
        self._manifests: dict[tuple[str, str], ComponentManifest] = {}
        for manifest in manifests:
            self.register(manifest)

    def register(self, manifest: ComponentManifest) -> None:
        """Register (or replace) a manifest."""
        if manifest.key in self._manifests:
            logger.info(f"Replacing manifest {manifest.plugin_id}/{manifest.component_id}")
        self._manifests[manifest.key] = manifest

    def unregister(self, plugin_id: str, component_id: str) -> bool:
        """Remove a manifest. Returns True if one was registered."""
        return self._manifests.pop((plugin_id, component_id), None) is not None

    def resolve_manifest(self, plugin_id: str, component_id: str) -> ComponentManifest | None:
        return self._manifests.get((plugin_id, component_id))

    def list_manifests(self, category: ComponentCategory | None = None) -> list[ComponentManifest]:
        """List manifests, optionally filtered by category, sorted for palettes."""
        manifests = [
            m for m in self._manifests.values()
            if category is None or m.category == category
        ]
        return sorted(manifests, key=lambda m: (m.category, m.display_name or m.component_id))

    def __len__(self) -> int:
        return len(self._manifests)

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryComponentRegistry":
        """
        Load manifests from a JSON or YAML file.

        Raises:
            ValueError: If the file does not contain a manifest list
            pydantic.ValidationError: If a manifest is malformed
        """
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)

        entries = _manifest_entries(data)
        registry = cls(ComponentManifest.model_validate(entry) for entry in entries)
        logger.info(f"Loaded {len(registry)} component manifests from {path}")
        return registry


def _manifest_entries(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("components")
    if not isinstance(data, list):
        raise ValueError("Manifest file must contain a list of components")
    return data
