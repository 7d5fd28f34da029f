"""
Attribute schema for the azurerm_frontdoor_firewall_policy resource.

This is the contract the host framework uses to parse user-authored
configuration before invoking the adapter: attribute names, types,
required/optional/computed flags, defaults, list bounds and allowed values.
Decoding in wafpolicy.models enforces the same constraints, using the
limits declared here.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from wafpolicy.enums import (
    ActionType,
    Condition,
    MatchVariable,
    Operator,
    PolicyMode,
    RuleType,
    SELECTOR_VARIABLES,
    Transform,
    allowed_values,
)

RESOURCE_TYPE = "azurerm_frontdoor_firewall_policy"
PROVIDER_NAMESPACE = "Microsoft.Network"
RESOURCE_PATH_KEY = "FrontDoorWebApplicationFirewallPolicies"
API_VERSION = "2019-03-01"
POLICY_LOCATION = "Global"

# List bounds
MAX_CUSTOM_RULES = 100
MAX_MATCH_CONDITIONS = 100
MAX_MATCH_VALUES = 100
MAX_TRANSFORMS = 5
MAX_MANAGED_RULES = 100
MAX_OVERRIDES = 100
MAX_OVERRIDE_RULES = 1000
MAX_FRONTEND_ENDPOINTS = 1000

# Custom rule defaults
DEFAULT_PRIORITY = 1
DEFAULT_RATE_LIMIT_DURATION = 1
DEFAULT_RATE_LIMIT_THRESHOLD = 10

CUSTOM_BLOCK_RESPONSE_STATUS_CODES = [200, 403, 405, 406, 429]

TypeName = str  # "string" | "int" | "bool" | "list" | "map"


@dataclass
class Attribute:
    """
    Schema entry for one attribute.

    Args:
        type: Attribute type name ("string", "int", "bool", "list", "map")
        required: Must be supplied by the user
        computed: Populated by the adapter, never by the user
        default: Value used when the attribute is omitted
        force_new: Changing the value replaces the resource
        max_items: Upper bound for list attributes
        min_items: Lower bound for list attributes
        allowed: Allowed values for enum-like attributes
        elem: Element schema for lists (nested block or scalar)
    """

    type: TypeName
    required: bool = False
    computed: bool = False
    default: Any = None
    force_new: bool = False
    max_items: Optional[int] = None
    min_items: Optional[int] = None
    allowed: Optional[List[Any]] = None
    elem: Optional[Union["Attribute", Dict[str, "Attribute"]]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the entry as plain data, omitting unset fields."""
        out: Dict[str, Any] = {"type": self.type}
        for key in ("required", "computed", "force_new"):
            if getattr(self, key):
                out[key] = True
        if not self.required and not self.computed:
            out["optional"] = True
        for key in ("default", "max_items", "min_items", "allowed"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        if isinstance(self.elem, Attribute):
            out["elem"] = self.elem.to_dict()
        elif isinstance(self.elem, dict):
            out["elem"] = {k: v.to_dict() for k, v in self.elem.items()}
        return out


ACTIONS = allowed_values(ActionType)

MATCH_CONDITION_SCHEMA: Dict[str, Attribute] = {
    "match_variable": Attribute("string", allowed=allowed_values(MatchVariable)),
    "selector": Attribute(
        "string", allowed=[v.value for v in MatchVariable if v in SELECTOR_VARIABLES]
    ),
    "operator": Attribute("string", required=True, allowed=allowed_values(Operator)),
    "condition": Attribute(
        "string", default=Condition.IS.value, allowed=allowed_values(Condition)
    ),
    "match_value": Attribute(
        "list", required=True, min_items=1, max_items=MAX_MATCH_VALUES,
        elem=Attribute("string"),
    ),
    "transforms": Attribute(
        "list", max_items=MAX_TRANSFORMS,
        elem=Attribute("string", allowed=allowed_values(Transform)),
    ),
}

CUSTOM_RULE_SCHEMA: Dict[str, Attribute] = {
    "name": Attribute("string"),
    "priority": Attribute("int", default=DEFAULT_PRIORITY),
    "enabled": Attribute("bool", default=True),
    "rule_type": Attribute("string", required=True, allowed=allowed_values(RuleType)),
    "rate_limit_duration_in_minutes": Attribute(
        "int", default=DEFAULT_RATE_LIMIT_DURATION
    ),
    "rate_limit_threshold": Attribute("int", default=DEFAULT_RATE_LIMIT_THRESHOLD),
    "action": Attribute("string", required=True, allowed=ACTIONS),
    "custom_block_response_body": Attribute("string"),
    "match_condition": Attribute(
        "list", max_items=MAX_MATCH_CONDITIONS, elem=MATCH_CONDITION_SCHEMA
    ),
}

OVERRIDE_RULE_SCHEMA: Dict[str, Attribute] = {
    "rule_id": Attribute("string", required=True),
    "enabled": Attribute("bool", default=False),
    "action": Attribute("string", required=True, allowed=ACTIONS),
}

OVERRIDE_SCHEMA: Dict[str, Attribute] = {
    "rule_group_name": Attribute("string"),
    "rule": Attribute("list", max_items=MAX_OVERRIDE_RULES, elem=OVERRIDE_RULE_SCHEMA),
}

MANAGED_RULE_SCHEMA: Dict[str, Attribute] = {
    "type": Attribute("string"),
    "version": Attribute("string"),
    "override": Attribute("list", max_items=MAX_OVERRIDES, elem=OVERRIDE_SCHEMA),
}

RESOURCE_SCHEMA: Dict[str, Attribute] = {
    "name": Attribute("string", required=True, force_new=True),
    "location": Attribute("string", computed=True),
    "resource_group_name": Attribute("string", required=True, force_new=True),
    "enabled": Attribute("bool", default=True),
    "mode": Attribute("string", required=True, allowed=allowed_values(PolicyMode)),
    "redirect_url": Attribute("string"),
    "custom_block_response_status_code": Attribute(
        "int", allowed=CUSTOM_BLOCK_RESPONSE_STATUS_CODES
    ),
    "custom_block_response_body": Attribute("string"),
    "custom_rule": Attribute(
        "list", max_items=MAX_CUSTOM_RULES, elem=CUSTOM_RULE_SCHEMA
    ),
    "managed_rule": Attribute(
        "list", max_items=MAX_MANAGED_RULES, elem=MANAGED_RULE_SCHEMA
    ),
    "frontend_endpoint_ids": Attribute(
        "list", required=True, max_items=MAX_FRONTEND_ENDPOINTS,
        elem=Attribute("string"),
    ),
    "tags": Attribute("map", elem=Attribute("string")),
}


# Attributes that identify the remote policy; changing one replaces it
FORCE_NEW_ATTRIBUTES = [name for name, attr in RESOURCE_SCHEMA.items() if attr.force_new]


def resource_schema() -> Dict[str, Dict[str, Any]]:
    """Return the resource schema as plain data for the host framework."""
    return {name: attr.to_dict() for name, attr in RESOURCE_SCHEMA.items()}
