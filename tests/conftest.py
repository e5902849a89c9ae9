"""
Test configuration and fixtures for extensionflow
"""
import os
import sys
from typing import Any, Dict, List, Optional

import pytest

# Add src directory to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from extensionflow.core.config import clear_config
from extensionflow.core.extensions import BaseExtension, Manifest
from extensionflow.core.types import Result, Task
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)


def build_manifest_dict(
    extension_id: str = "text-tools",
    name: str = "Text Tools",
    version: str = "1.0.0",
    capabilities: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Raw manifest dict in the camelCase shape of a manifest.json file"""
    if capabilities is None:
        capabilities = [
            {
                "id": "text",
                "name": "Text processing",
                "description": "Transform text",
                "operations": ["upper", "reverse"],
                "requiredPermissions": ["text:read"],
            }
        ]
    data = {
        "id": extension_id,
        "name": name,
        "version": version,
        "description": f"{name} extension",
        "author": "tests",
        "capabilities": capabilities,
        "permissions": [],
        "entryPoint": "index.py",
    }
    data.update(extra)
    return data


def build_manifest(**kwargs: Any) -> Manifest:
    return Manifest.from_dict(build_manifest_dict(**kwargs))


class TextExtension(BaseExtension):
    """Small BaseExtension used across tests: upper-cases or reverses payload text"""

    def __init__(self, manifest: Optional[Manifest] = None):
        super().__init__()
        self._manifest = manifest or build_manifest()
        self.calls: List[str] = []

    def get_manifest(self) -> Manifest:
        return self._manifest

    async def execute(self, task: Task) -> Result:
        self.calls.append(task.type)
        text = task.payload.get("text", "")
        if task.payload.get("explode"):
            raise RuntimeError("boom")
        output = text.upper() if task.type == "upper" else text[::-1]
        return self.create_result(task, {"text": output}, 0)


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the global hook/settings registry around every test"""
    clear_config()
    yield
    clear_config()


@pytest.fixture
def manifest_dict() -> Dict[str, Any]:
    return build_manifest_dict()


@pytest.fixture
def manifest() -> Manifest:
    return build_manifest()


@pytest.fixture
def text_extension() -> TextExtension:
    return TextExtension()


@pytest.fixture
def manifest_factory():
    """Build a Manifest; keyword arguments as for build_manifest_dict()"""
    return build_manifest


@pytest.fixture
def manifest_dict_factory():
    return build_manifest_dict


@pytest.fixture
def text_extension_factory():
    """Build a TextExtension around a manifest built from keyword arguments"""

    def factory(**kwargs: Any) -> TextExtension:
        return TextExtension(build_manifest(**kwargs) if kwargs else None)

    return factory
