"""
Helper utilities - pure functions shared by the registry, lifecycle manager and workflow engine
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict

_REFERENCE_PATTERN = re.compile(r"^\$\{([^}]+)\}$")


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Milliseconds between two datetimes - pure utility function"""
    return int((end - start).total_seconds() * 1000)


def resolve_references(value: Any, variables: Dict[str, Any]) -> Any:
    """
    Resolve "${name}" references against a variable mapping

    Only whole-string references are substituted, so the referenced value keeps
    its type. Dicts and lists are resolved recursively; unknown references
    resolve to None.

    Args:
        value: Literal value, reference string, or nested container
        variables: Variable mapping to resolve against

    Returns:
        Value with references replaced
    """
    if isinstance(value, str):
        match = _REFERENCE_PATTERN.match(value)
        if match:
            return variables.get(match.group(1).strip())
        return value
    if isinstance(value, dict):
        return {k: resolve_references(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_references(v, variables) for v in value]
    return value
