"""
Extension manifest models

A manifest is the declarative description of an extension: identity, version,
capabilities and permissions. The models here only check types; the
registration rules (required fields, strict semver, capability shape) live in
validate_manifest() so that an already-built Manifest can be re-checked at
registration time.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic import ValidationError as PydanticValidationError

from extensionflow.core.errors import ValidationError
from extensionflow.core.extensions.types import ExtensionSource
from extensionflow.core.utils.helpers import utcnow

SEMVER_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")

# manifest.json files use camelCase keys; snake_case field names are accepted too
_MANIFEST_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CapabilityRequirements(BaseModel):
    model_config = _MANIFEST_MODEL_CONFIG

    memory: Optional[int] = None
    cpu: Optional[int] = None
    storage: Optional[int] = None
    dependencies: List[str] = Field(default_factory=list)


class Capability(BaseModel):
    """A named group of operations an extension supports"""
    model_config = _MANIFEST_MODEL_CONFIG

    id: str
    name: str
    description: str = ""
    operations: List[str] = Field(default_factory=list)
    required_permissions: List[str] = Field(default_factory=list)
    input_schema: Optional[Dict[str, Any]] = None
    output_schema: Optional[Dict[str, Any]] = None
    requirements: Optional[CapabilityRequirements] = None


class Manifest(BaseModel):
    """Extension manifest"""
    model_config = _MANIFEST_MODEL_CONFIG

    id: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    capabilities: List[Capability] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    entry_point: str = ""
    homepage: Optional[str] = None
    dependencies: Dict[str, str] = Field(default_factory=dict)
    config_schema: Optional[Dict[str, Any]] = None
    min_bridge_version: Optional[str] = None

    def all_operations(self) -> List[str]:
        """Every operation name declared across all capabilities"""
        return [op for capability in self.capabilities for op in capability.operations]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """
        Build a manifest from a raw dict (e.g. parsed manifest.json)

        Both snake_case and the camelCase keys used by manifest.json files are
        accepted ("entryPoint", "requiredPermissions", "configSchema", ...).

        Raises:
            ValidationError: If the data does not match the manifest shape
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Invalid manifest: expected an object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid manifest: {e}", details={"errors": e.errors()}) from e


class RegistryEntry(BaseModel):
    """A registered manifest plus its registration bookkeeping"""
    manifest: Manifest
    registered: bool = True
    installed_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    source: ExtensionSource = ExtensionSource.CUSTOM
    path: str = ""


class ExtensionLimits(BaseModel):
    max_concurrent_tasks: Optional[int] = None
    max_memory: Optional[int] = None
    max_cpu: Optional[int] = None
    timeout: Optional[int] = None


class ExtensionConfig(BaseModel):
    """Per-extension configuration handed to on_initialize()"""
    extension_id: str
    config: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    auto_load: bool = False
    limits: Optional[ExtensionLimits] = None


def validate_manifest(manifest: Manifest) -> None:
    """
    Validate a manifest against the registration rules

    Args:
        manifest: Manifest to validate

    Raises:
        ValidationError: On missing required fields, a version that is not
            strict major.minor.patch, no capabilities, or a malformed capability
    """
    if not manifest.id or not manifest.name or not manifest.version:
        raise ValidationError(
            "Invalid manifest: missing required fields (id, name, version)",
            details={"id": manifest.id},
        )

    if not SEMVER_PATTERN.fullmatch(manifest.version):
        raise ValidationError(
            f"Invalid version format: {manifest.version}",
            details={"id": manifest.id, "version": manifest.version},
        )

    if not manifest.capabilities:
        raise ValidationError(
            "Extension must have at least one capability",
            details={"id": manifest.id},
        )

    for capability in manifest.capabilities:
        if not capability.id or not capability.name or not capability.operations:
            raise ValidationError(
                "Invalid capability: missing required fields (id, name, operations)",
                details={"id": manifest.id, "capability": capability.id},
            )
        if any(not op for op in capability.operations):
            raise ValidationError(
                f"Invalid capability '{capability.id}': empty operation name",
                details={"id": manifest.id, "capability": capability.id},
            )


__all__ = [
    "Capability",
    "CapabilityRequirements",
    "Manifest",
    "RegistryEntry",
    "ExtensionConfig",
    "ExtensionLimits",
    "validate_manifest",
    "SEMVER_PATTERN",
]
