"""
Configuration module for extensionflow
"""

from extensionflow.core.config.registry import (
    ConfigRegistry,
    WORKFLOW_HOOK_TYPES,
    get_config,
    register_pre_hook,
    register_post_hook,
    register_workflow_hook,
    get_pre_hooks,
    get_post_hooks,
    get_workflow_hooks,
    clear_config,
)

__all__ = [
    "ConfigRegistry",
    "WORKFLOW_HOOK_TYPES",
    "get_config",
    "register_pre_hook",
    "register_post_hook",
    "register_workflow_hook",
    "get_pre_hooks",
    "get_post_hooks",
    "get_workflow_hooks",
    "clear_config",
]
