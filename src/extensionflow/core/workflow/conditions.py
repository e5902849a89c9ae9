"""
Condition evaluation for conditional steps
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)

OPERATORS = (
    "equals",
    "notEquals",
    "greaterThan",
    "lessThan",
    "in",
    "contains",
    "isEmpty",
    "isNotEmpty",
    "matches",
)


def evaluate_condition(value: Any, condition: Dict[str, Any]) -> bool:
    """
    Evaluate one condition against a variable value

    Args:
        value: Current value of the condition's field
        condition: {"field": ..., "operator": ..., "value": ...}

    Returns:
        True if the condition holds. Unknown operators and incomparable
        values evaluate to False.
    """
    operator = condition.get("operator")
    expected = condition.get("value")

    try:
        if operator == "equals":
            return value == expected
        if operator == "notEquals":
            return value != expected
        if operator == "greaterThan":
            return value > expected
        if operator == "lessThan":
            return value < expected
        if operator == "in":
            return value in (expected or [])
        if operator == "contains":
            return str(expected) in str(value)
        if operator == "isEmpty":
            return not value
        if operator == "isNotEmpty":
            return bool(value)
        if operator == "matches":
            return re.search(str(expected), str(value)) is not None
    except (TypeError, re.error) as e:
        logger.debug(f"Condition {condition} not comparable with value {value!r}: {e}")
        return False

    logger.warning(f"Unknown condition operator: {operator}")
    return False


def select_branch(
    conditions: List[Dict[str, Any]],
    variables: Dict[str, Any],
    default_branch: str = "default",
) -> Tuple[str, Optional[Dict[str, Any]]]:
    """
    Pick the first matching condition

    Each condition may carry a "label" (or "branch"); an unlabeled match is
    reported as "condition_<index>".

    Returns:
        (branch label, matched condition or None)
    """
    for index, condition in enumerate(conditions):
        if evaluate_condition(variables.get(condition.get("field")), condition):
            label = condition.get("label") or condition.get("branch") or f"condition_{index}"
            return label, condition
    return default_branch, None


__all__ = ["OPERATORS", "evaluate_condition", "select_branch"]
