"""
Utility modules for extensionflow
"""

from extensionflow.core.utils.logger import get_logger
from extensionflow.core.utils.helpers import utcnow, elapsed_ms, resolve_references

__all__ = ["get_logger", "utcnow", "elapsed_ms", "resolve_references"]
