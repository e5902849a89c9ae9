"""
Manifest discovery from the file system

The registry only accepts already-parsed manifests. This module is the
file-system collaborator that reads manifest.json files and feeds them to a
registry.
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from extensionflow.core.errors import ExtensionFlowError, ValidationError
from extensionflow.core.extensions.manifest import Manifest
from extensionflow.core.extensions.registry import ExtensionRegistry, get_registry
from extensionflow.core.extensions.types import ExtensionSource
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)

MANIFEST_FILENAME = "manifest.json"


def load_manifest(manifest_path: Union[str, Path]) -> Manifest:
    """
    Read and parse a manifest.json file

    Args:
        manifest_path: Path to the manifest file

    Returns:
        Parsed Manifest (not yet validated against registration rules)

    Raises:
        ValidationError: If the file is missing, not JSON, or not a manifest
    """
    path = Path(manifest_path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read manifest {path}: {e}", details={"path": str(path)}) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in manifest {path}: {e}", details={"path": str(path)}) from e

    return Manifest.from_dict(data)


def scan_directory(
    directory: Union[str, Path],
    registry: Optional[ExtensionRegistry] = None,
    source: Union[ExtensionSource, str] = ExtensionSource.CUSTOM,
) -> List[str]:
    """
    Register every <subdirectory>/manifest.json found under a directory

    Manifests that fail to load or validate are logged and skipped.

    Args:
        directory: Directory whose immediate subdirectories hold extensions
        registry: Registry to populate (default: global registry)
        source: Source tag recorded on each entry

    Returns:
        Ids of the extensions registered, in discovery order
    """
    registry = registry or get_registry()
    root = Path(directory)
    registered: List[str] = []

    if not root.is_dir():
        logger.error(f"Failed to scan directory: {root} is not a directory")
        return registered

    for child in sorted(root.iterdir()):
        manifest_path = child / MANIFEST_FILENAME
        if not child.is_dir() or not manifest_path.is_file():
            continue
        try:
            manifest = load_manifest(manifest_path)
            registry.register(manifest, path=str(child), source=source)
            registered.append(manifest.id)
        except ExtensionFlowError as e:
            logger.warning(f"Failed to register extension from {manifest_path}: {e}")

    logger.info(f"Scanned {root}: {len(registered)} extensions registered")
    return registered


__all__ = ["load_manifest", "scan_directory", "MANIFEST_FILENAME"]
