"""Field validators used while decoding policy configuration.

Every validator either returns the (possibly normalised) value or raises
ValidationError naming the offending attribute path.
"""

import re
from typing import Any, Dict, List, Optional

import ipaddr

from wafpolicy.exceptions import ValidationError

BASE64_PATTERN = re.compile(
    r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=|[A-Za-z0-9+/]{4})$"
)
RESOURCE_GROUP_PATTERN = re.compile(r"^[-\w._()]+$")


def _fail(field: str, message: str) -> None:
    raise ValidationError(f"{field}: {message}", context={"field": field})


def non_empty_string(value: Any, field: str) -> str:
    """Require a string with at least one non-whitespace character."""
    if not isinstance(value, str):
        _fail(field, f"expected a string, got {type(value).__name__}")
    if value.strip() == "":
        _fail(field, "must not be empty")
    return value


def optional_string(value: Any, field: str) -> Optional[str]:
    """Validate an optional non-empty string; None and "" mean unset."""
    if value is None or value == "":
        return None
    return non_empty_string(value, field)


def integer(value: Any, field: str) -> int:
    # bool is a subclass of int, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(field, f"expected an integer, got {value!r}")
    return value


def boolean(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        _fail(field, f"expected a boolean, got {value!r}")
    return value


def bounded_list(
    value: Any, field: str, max_items: int, min_items: int = 0
) -> List[Any]:
    """Validate a list attribute against its length bounds.

    Args:
        value: Raw attribute value; None is treated as an empty list
        field: Attribute path for error messages
        max_items: Maximum number of entries allowed
        min_items: Minimum number of entries required

    Returns:
        The list itself
    """
    if value is None:
        value = []
    if not isinstance(value, list):
        _fail(field, f"expected a list, got {type(value).__name__}")
    if len(value) > max_items:
        _fail(field, f"at most {max_items} entries allowed, got {len(value)}")
    if len(value) < min_items:
        _fail(field, f"at least {min_items} entries required, got {len(value)}")
    return value


def one_of(value: Any, field: str, allowed: List[Any]) -> Any:
    if value not in allowed:
        _fail(field, f"expected one of {allowed}, got {value!r}")
    return value


def base64_body(value: Any, field: str) -> Optional[str]:
    """Validate a custom block response body, which must be base64 encoded."""
    value = optional_string(value, field)
    if value is not None and not BASE64_PATTERN.match(value):
        _fail(field, "must be a base64 encoded string")
    return value


def resource_group_name(value: Any, field: str = "resource_group_name") -> str:
    """Validate an Azure resource group name.

    Up to 90 characters of letters, digits, underscores, hyphens, periods and
    parentheses, not ending in a period.
    """
    value = non_empty_string(value, field)
    if len(value) > 90:
        _fail(field, "may not exceed 90 characters")
    if not RESOURCE_GROUP_PATTERN.match(value):
        _fail(
            field,
            "may only contain alphanumeric characters, dash, underscores, "
            "parentheses and periods",
        )
    if value.endswith("."):
        _fail(field, "cannot end in a period")
    return value


def ip_match_value(value: str, field: str) -> str:
    """Require an IPv4/IPv6 address or CIDR network."""
    try:
        ipaddr.IPNetwork(value)
    except ValueError:
        _fail(field, f"{value!r} is not a valid IP address or CIDR range")
    return value


def string_map(value: Any, field: str) -> Dict[str, str]:
    """Validate a flat string to string map such as tags."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        _fail(field, f"expected a map, got {type(value).__name__}")
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            _fail(field, f"entry {key!r} must map a string to a string")
    return dict(value)
