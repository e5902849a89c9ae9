"""
Built-in extensions for extensionflow

Built-ins are plain BaseExtension subclasses. get_builtin_extensions() returns
fresh instances, ready to be registered and loaded into a lifecycle manager.
"""

from typing import List

from extensionflow.core.extensions.base import BaseExtension
from extensionflow.extensions.echo import EchoExtension

BUILTIN_EXTENSIONS = (EchoExtension,)


def get_builtin_extensions() -> List[BaseExtension]:
    return [extension_class() for extension_class in BUILTIN_EXTENSIONS]


__all__ = ["BUILTIN_EXTENSIONS", "EchoExtension", "get_builtin_extensions"]
