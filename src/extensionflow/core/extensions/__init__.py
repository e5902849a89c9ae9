"""
Extension system for extensionflow

This module provides manifest registration and capability discovery
(ExtensionRegistry), the lifecycle manager that loads extension instances
and dispatches tasks to them (ExtensionLifecycleManager), and the hook
interface every extension implements (ExtensionLike / BaseExtension).
"""

from extensionflow.core.extensions.types import ExtensionState, ExtensionSource
from extensionflow.core.extensions.manifest import (
    Capability,
    Manifest,
    RegistryEntry,
    ExtensionConfig,
    ExtensionLimits,
    validate_manifest,
)
from extensionflow.core.extensions.protocol import (
    LIFECYCLE_HOOKS,
    ExtensionLike,
    TaskExecutor,
    check_conformance,
)
from extensionflow.core.extensions.base import BaseExtension, ExtensionContext
from extensionflow.core.extensions.registry import ExtensionRegistry, get_registry
from extensionflow.core.extensions.lifecycle import ExtensionLifecycleManager, ExtensionInstance
from extensionflow.core.extensions.discovery import load_manifest, scan_directory

__all__ = [
    "ExtensionState",
    "ExtensionSource",
    "Capability",
    "Manifest",
    "RegistryEntry",
    "ExtensionConfig",
    "ExtensionLimits",
    "validate_manifest",
    "LIFECYCLE_HOOKS",
    "ExtensionLike",
    "TaskExecutor",
    "check_conformance",
    "BaseExtension",
    "ExtensionContext",
    "ExtensionRegistry",
    "get_registry",
    "ExtensionLifecycleManager",
    "ExtensionInstance",
    "load_manifest",
    "scan_directory",
]
