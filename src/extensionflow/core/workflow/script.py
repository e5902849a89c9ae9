"""
Script step operations

Script steps apply a declarative set of variable operations to the execution
context. There is no code evaluation; the operations below are the whole
surface.

Config keys, applied in this order:
    set:       {"name": value}          value may be a "${var}" reference
    copy:      {"target": "source"}
    increment: {"name": amount}
    append:    {"name": value}          creates the list if missing
    delete:    ["name", ...]
    output:    value                    step output (references resolved after the operations)
"""

from numbers import Number
from typing import Any, Dict, List

from extensionflow.core.errors import ExecutionError
from extensionflow.core.utils.helpers import resolve_references


def run_script(config: Dict[str, Any], variables: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply script operations to a variable mapping in place

    Args:
        config: Script step config
        variables: Variables to mutate

    Returns:
        {"scriptOutput": output, "updated": [names touched]}

    Raises:
        ExecutionError: On an invalid operation (e.g. incrementing a non-number)
    """
    updated: List[str] = []

    for name, value in (config.get("set") or {}).items():
        variables[name] = resolve_references(value, variables)
        updated.append(name)

    for target, source in (config.get("copy") or {}).items():
        if source not in variables:
            raise ExecutionError(f"Script copy source not found: {source}")
        variables[target] = variables[source]
        updated.append(target)

    for name, amount in (config.get("increment") or {}).items():
        current = variables.get(name, 0)
        if not isinstance(current, Number) or not isinstance(amount, Number):
            raise ExecutionError(f"Cannot increment variable '{name}' of type {type(current).__name__}")
        variables[name] = current + amount
        updated.append(name)

    for name, value in (config.get("append") or {}).items():
        current = variables.get(name, [])
        if not isinstance(current, list):
            raise ExecutionError(f"Cannot append to variable '{name}' of type {type(current).__name__}")
        # a new list, so parallel siblings sharing the old one never see the change
        variables[name] = current + [resolve_references(value, variables)]
        updated.append(name)

    for name in config.get("delete") or []:
        variables.pop(name, None)
        updated.append(name)

    output = resolve_references(config.get("output", {}), variables)
    return {"scriptOutput": output, "updated": updated}


__all__ = ["run_script"]
