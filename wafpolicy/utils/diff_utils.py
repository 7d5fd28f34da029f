"""Attribute map comparison used for plan output and drift detection."""

from typing import Any, List, Tuple

Change = Tuple[str, Any, Any]


def diff_attributes(current: Any, desired: Any, path: str = "") -> List[Change]:
    """Compare two attribute structures.

    Lists are compared position by position, since rule order is significant.

    Args:
        current: Attribute value read from the service (or state)
        desired: Attribute value from configuration
        path: Attribute path prefix

    Returns:
        List of (path, current, desired) tuples, one per differing leaf
    """
    if isinstance(current, dict) and isinstance(desired, dict):
        changes: List[Change] = []
        for key in sorted(set(current) | set(desired)):
            sub_path = f"{path}.{key}" if path else key
            changes.extend(diff_attributes(current.get(key), desired.get(key), sub_path))
        return changes

    if isinstance(current, list) and isinstance(desired, list):
        changes = []
        for i in range(max(len(current), len(desired))):
            old = current[i] if i < len(current) else None
            new = desired[i] if i < len(desired) else None
            changes.extend(diff_attributes(old, new, f"{path}[{i}]"))
        return changes

    if current != desired:
        return [(path, current, desired)]
    return []


def format_change(change: Change) -> str:
    path, old, new = change
    if old is None:
        return f"  + {path} = {new!r}"
    if new is None:
        return f"  - {path} = {old!r}"
    return f"  ~ {path}: {old!r} -> {new!r}"
