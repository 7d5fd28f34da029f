"""
Closed enumerations for Front Door firewall policy fields.

Each enum member's value is the exact string used both in Terraform
configuration and on the ARM wire, so conversion in either direction is a
lookup by value. Unknown strings never coerce to a default member: they raise
ValidationError through parse_enum().
"""

from enum import Enum
from typing import FrozenSet, Type, TypeVar

from wafpolicy.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


class PolicyMode(Enum):
    """Operating mode of the whole policy"""

    DETECTION = "Detection"
    PREVENTION = "Prevention"


class PolicyEnabledState(Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class CustomRuleEnabledState(Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class ManagedRuleEnabledState(Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class RuleType(Enum):
    """Custom rule evaluation type"""

    MATCH = "MatchRule"
    RATE_LIMIT = "RateLimitRule"


class ActionType(Enum):
    """Action taken when a rule matches"""

    ALLOW = "Allow"
    BLOCK = "Block"
    LOG = "Log"
    REDIRECT = "Redirect"


class MatchVariable(Enum):
    """Request component inspected by a match condition"""

    COOKIES = "Cookies"
    POST_ARGS = "PostArgs"
    QUERY_STRING = "QueryString"
    REMOTE_ADDR = "RemoteAddr"
    REQUEST_BODY = "RequestBody"
    REQUEST_HEADER = "RequestHeader"
    REQUEST_METHOD = "RequestMethod"
    REQUEST_URI = "RequestUri"


# Match variables that can be addressed through a selector
SELECTOR_VARIABLES: FrozenSet[MatchVariable] = frozenset(
    {
        MatchVariable.COOKIES,
        MatchVariable.POST_ARGS,
        MatchVariable.QUERY_STRING,
        MatchVariable.REQUEST_HEADER,
    }
)


class Operator(Enum):
    """Comparison operator of a match condition"""

    ANY = "Any"
    BEGINS_WITH = "BeginsWith"
    CONTAINS = "Contains"
    ENDS_WITH = "EndsWith"
    EQUAL = "Equal"
    GEO_MATCH = "GeoMatch"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    IP_MATCH = "IPMatch"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    REGEX = "RegEx"


class Condition(Enum):
    """Condition modifier applied to the operator result.

    "Contains" and "Not Contains" are accepted spellings of "Is" and "Is Not";
    the API only stores whether the condition is negated.
    """

    IS = "Is"
    IS_NOT = "Is Not"
    CONTAINS = "Contains"
    NOT_CONTAINS = "Not Contains"

    @property
    def negated(self) -> bool:
        return self in (Condition.IS_NOT, Condition.NOT_CONTAINS)

    @property
    def canonical(self) -> "Condition":
        return Condition.IS_NOT if self.negated else Condition.IS


class Transform(Enum):
    """Input transformation applied before comparison"""

    LOWERCASE = "Lowercase"
    REMOVE_NULLS = "RemoveNulls"
    TRIM = "Trim"
    UPPERCASE = "Uppercase"
    URL_DECODE = "UrlDecode"
    URL_ENCODE = "UrlEncode"


def allowed_values(enum_cls: Type[Enum]) -> list:
    """Return the string values of an enum in declaration order."""
    return [member.value for member in enum_cls]


def parse_enum(enum_cls: Type[E], value: object, field: str) -> E:
    """Look up an enum member by its string value.

    Args:
        enum_cls: Enum class to search
        value: Raw configuration or wire value
        field: Attribute path used in the error message

    Returns:
        Matching enum member

    Raises:
        ValidationError: If value is not one of the enum's values
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"{field}: expected one of {allowed_values(enum_cls)}, got {value!r}",
            context={"field": field},
        ) from None
