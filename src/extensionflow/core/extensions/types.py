"""
Extension enumeration types

Defines the lifecycle states and registration sources of extensions.
"""

from enum import Enum


class ExtensionState(str, Enum):
    """
    Extension lifecycle states

    REGISTERED -> LOADING -> INITIALIZING -> READY <-> EXECUTING -> UNLOADING -> UNLOADED

    REGISTERED is set by the extension itself before loading; UNLOADED is terminal.
    FAILED marks an extension whose load hooks raised; such an extension is
    never tracked by the lifecycle manager.
    """
    REGISTERED = "REGISTERED"
    LOADING = "LOADING"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    EXECUTING = "EXECUTING"
    UNLOADING = "UNLOADING"
    UNLOADED = "UNLOADED"
    FAILED = "FAILED"


class ExtensionSource(str, Enum):
    """Where a registered manifest came from"""
    BUILTIN = "builtin"
    MARKETPLACE = "marketplace"
    CUSTOM = "custom"


__all__ = ["ExtensionState", "ExtensionSource"]
