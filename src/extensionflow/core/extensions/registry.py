"""
Extension registry

This registry stores extension manifests, validates them and maintains a
capability/operation index for lookup.

Architecture:
- Primary index: id -> RegistryEntry (for precise lookup)
- Capability index: capability id -> set of extension ids
- Operation index: operation name -> set of extension ids

Both multimaps are maintained inside register()/unregister() only, so the
index and the entries can never diverge.
"""

from typing import Any, Dict, List, Optional, Set, Union

from extensionflow.core.errors import NotFoundError
from extensionflow.core.extensions.manifest import Manifest, RegistryEntry, validate_manifest
from extensionflow.core.extensions.types import ExtensionSource
from extensionflow.core.utils.helpers import utcnow
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)


class ExtensionRegistry:
    """
    Registry of extension manifests

    Re-registering an id that is already present updates the entry in place:
    the original install time is kept, the manifest, source and path are
    replaced, and the old manifest's index entries are purged before the new
    ones are added.

    Example:
        registry = ExtensionRegistry()

        # Register manifest
        registry.register(manifest, path="/opt/extensions/echo", source="builtin")

        # Lookup by ID
        entry = registry.get_extension("echo-extension")

        # Lookup by capability id or operation name
        entries = registry.get_extensions_by_capability("echo")
    """

    def __init__(self):
        self._entries: Dict[str, RegistryEntry] = {}
        self._capability_index: Dict[str, Set[str]] = {}
        self._operation_index: Dict[str, Set[str]] = {}

    def register(
        self,
        manifest: Manifest,
        path: str = "",
        source: Union[ExtensionSource, str] = ExtensionSource.CUSTOM,
    ) -> RegistryEntry:
        """
        Register (or update) an extension manifest

        Args:
            manifest: Parsed manifest
            path: Location the extension was discovered at
            source: "builtin", "marketplace" or "custom"

        Returns:
            The stored RegistryEntry

        Raises:
            ValidationError: If the manifest is malformed
        """
        validate_manifest(manifest)
        source = ExtensionSource(source)

        existing = self._entries.get(manifest.id)
        now = utcnow()
        if existing:
            logger.warning(f"Extension already registered: {manifest.id}, updating...")
            self._remove_from_index(existing.manifest)

        entry = RegistryEntry(
            manifest=manifest,
            registered=True,
            installed_at=existing.installed_at if existing else now,
            updated_at=now,
            source=source,
            path=path,
        )
        self._entries[manifest.id] = entry
        self._add_to_index(manifest)

        logger.info(f"Extension registered: {manifest.name} ({manifest.id}) v{manifest.version}")
        return entry

    def unregister(self, extension_id: str) -> None:
        """
        Unregister an extension and purge its index entries

        Raises:
            NotFoundError: If the id is not registered
        """
        entry = self._entries.get(extension_id)
        if entry is None:
            raise NotFoundError(
                f"Extension not found: {extension_id}",
                details={"extension_id": extension_id},
            )

        self._remove_from_index(entry.manifest)
        del self._entries[extension_id]

        logger.info(f"Extension unregistered: {entry.manifest.name}")

    def get_extension(self, extension_id: str) -> Optional[RegistryEntry]:
        return self._entries.get(extension_id)

    def has_extension(self, extension_id: str) -> bool:
        return extension_id in self._entries

    def get_all_extensions(self) -> List[RegistryEntry]:
        return list(self._entries.values())

    def get_extension_count(self) -> int:
        return len(self._entries)

    def get_extensions_by_capability(self, capability: str) -> List[RegistryEntry]:
        """
        Get extensions that declared a capability id or an operation name

        Args:
            capability: Capability id or operation name

        Returns:
            Matching entries (each extension at most once)
        """
        extension_ids = self._capability_index.get(capability, set()) | self._operation_index.get(
            capability, set()
        )
        return [self._entries[ext_id] for ext_id in sorted(extension_ids) if ext_id in self._entries]

    def search_extensions(self, query: str) -> List[RegistryEntry]:
        """
        Case-insensitive substring search

        Matches against id, name, description and each capability's name and
        description.
        """
        lower_query = query.lower()

        def matches(entry: RegistryEntry) -> bool:
            manifest = entry.manifest
            if (
                lower_query in manifest.id.lower()
                or lower_query in manifest.name.lower()
                or lower_query in manifest.description.lower()
            ):
                return True
            return any(
                lower_query in cap.name.lower() or lower_query in cap.description.lower()
                for cap in manifest.capabilities
            )

        return [entry for entry in self._entries.values() if matches(entry)]

    def get_all_capabilities(self) -> List[str]:
        """All indexed capability ids and operation names"""
        return sorted(set(self._capability_index) | set(self._operation_index))

    def export_registry(self) -> Dict[str, Any]:
        """
        Export registry as a JSON-ready dictionary

        Returns:
            {"extensions": [...], "total_count": int, "capabilities": [...]}
        """
        entries = [entry.model_dump(mode="json") for entry in self._entries.values()]
        return {
            "extensions": entries,
            "total_count": len(entries),
            "capabilities": self.get_all_capabilities(),
        }

    def _add_to_index(self, manifest: Manifest) -> None:
        for capability in manifest.capabilities:
            self._capability_index.setdefault(capability.id, set()).add(manifest.id)
            for operation in capability.operations:
                self._operation_index.setdefault(operation, set()).add(manifest.id)

    def _remove_from_index(self, manifest: Manifest) -> None:
        for capability in manifest.capabilities:
            _discard(self._capability_index, capability.id, manifest.id)
            for operation in capability.operations:
                _discard(self._operation_index, operation, manifest.id)


def _discard(index: Dict[str, Set[str]], key: str, extension_id: str) -> None:
    bucket = index.get(key)
    if bucket is None:
        return
    bucket.discard(extension_id)
    if not bucket:
        del index[key]


# Global registry instance
_registry = ExtensionRegistry()


def get_registry() -> ExtensionRegistry:
    """
    Get the global extension registry instance

    Returns:
        Process-wide ExtensionRegistry
    """
    return _registry


__all__ = [
    "ExtensionRegistry",
    "get_registry",
]
