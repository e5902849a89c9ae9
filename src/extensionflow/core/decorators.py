"""
Unified decorators for extensionflow

Single entry point for the hook decorators, in the style of Flask's app
decorators (@app.before_request, ...).

Usage:
    from extensionflow import register_pre_hook, register_workflow_hook

    @register_pre_hook
    async def audit(task):
        ...

    @register_workflow_hook("on_workflow_failed")
    def alert(context):
        ...
"""

from extensionflow.core.config import (
    register_pre_hook,
    register_post_hook,
    register_workflow_hook,
    clear_config,
)

__all__ = [
    "register_pre_hook",
    "register_post_hook",
    "register_workflow_hook",
    "clear_config",
]
