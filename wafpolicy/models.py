"""Typed configuration records for the Front Door firewall policy.

The generic attribute map handed over by the host framework is decoded exactly
once, at the boundary, into the nested dataclasses below. Decoding enforces
every schema constraint (required attributes, enum membership, list bounds,
string rules), so the expand helpers only ever see valid data.

Each record can also render itself back into the attribute map shape with
``to_attributes()``; together with the flatten helpers this is what Read uses
to repopulate state from the remote object.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import wafpolicy.validators as validators
from wafpolicy import schema
from wafpolicy.enums import (
    ActionType,
    Condition,
    MatchVariable,
    Operator,
    PolicyMode,
    RuleType,
    SELECTOR_VARIABLES,
    Transform,
    parse_enum,
)
from wafpolicy.exceptions import ValidationError

# Attributes the host may echo back from state; they are never user input
IGNORED_KEYS = {"id", "location"}


def _check_keys(raw: Any, known: Mapping[str, Any], path: str) -> Dict[str, Any]:
    """Require a mapping and reject attributes the schema does not define."""
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"{path}: expected a block, got {type(raw).__name__}",
            context={"field": path},
        )
    unknown = sorted(set(raw) - set(known) - IGNORED_KEYS)
    if unknown:
        raise ValidationError(
            f"{path}: unsupported argument(s) {', '.join(unknown)}",
            context={"field": path},
        )
    return dict(raw)


def _required(raw: Dict[str, Any], key: str, path: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise ValidationError(
            f"{path}.{key}: attribute is required", context={"field": f"{path}.{key}"}
        )
    return value


def _with_default(raw: Dict[str, Any], key: str, default: Any) -> Any:
    value = raw.get(key)
    return default if value is None else value


@dataclass
class MatchCondition:
    """One comparison clause inside a custom rule.

    Exactly one of ``match_variable`` and ``selector`` is set.
    """

    operator: Operator
    match_values: List[str]
    match_variable: Optional[MatchVariable] = None
    selector: Optional[MatchVariable] = None
    condition: Condition = Condition.IS
    transforms: List[Transform] = field(default_factory=list)

    @property
    def variable(self) -> MatchVariable:
        return self.selector if self.selector is not None else self.match_variable

    @classmethod
    def from_attributes(cls, raw: Any, path: str) -> "MatchCondition":
        raw = _check_keys(raw, schema.MATCH_CONDITION_SCHEMA, path)

        match_variable = raw.get("match_variable") or None
        selector = raw.get("selector") or None
        if (match_variable is None) == (selector is None):
            raise ValidationError(
                f"{path}: exactly one of match_variable or selector must be set",
                context={"field": path},
            )
        if match_variable is not None:
            match_variable = parse_enum(
                MatchVariable, match_variable, f"{path}.match_variable"
            )
        if selector is not None:
            selector = parse_enum(MatchVariable, selector, f"{path}.selector")
            if selector not in SELECTOR_VARIABLES:
                raise ValidationError(
                    f"{path}.selector: {selector.value} cannot be used as a selector",
                    context={"field": f"{path}.selector"},
                )

        operator = parse_enum(
            Operator, _required(raw, "operator", path), f"{path}.operator"
        )
        condition = parse_enum(
            Condition,
            _with_default(raw, "condition", Condition.IS.value),
            f"{path}.condition",
        )

        values_path = f"{path}.match_value"
        values = validators.bounded_list(
            _required(raw, "match_value", path),
            values_path,
            schema.MAX_MATCH_VALUES,
            min_items=1,
        )
        match_values = []
        for i, value in enumerate(values):
            value = validators.non_empty_string(value, f"{values_path}[{i}]")
            if operator is Operator.IP_MATCH:
                validators.ip_match_value(value, f"{values_path}[{i}]")
            match_values.append(value)

        transforms_path = f"{path}.transforms"
        transforms = [
            parse_enum(Transform, t, f"{transforms_path}[{i}]")
            for i, t in enumerate(
                validators.bounded_list(
                    raw.get("transforms"), transforms_path, schema.MAX_TRANSFORMS
                )
            )
        ]

        return cls(
            operator=operator,
            match_values=match_values,
            match_variable=match_variable,
            selector=selector,
            condition=condition.canonical,
            transforms=transforms,
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "match_variable": self.match_variable.value if self.match_variable else None,
            "selector": self.selector.value if self.selector else None,
            "operator": self.operator.value,
            "condition": self.condition.value,
            "match_value": list(self.match_values),
            "transforms": [t.value for t in self.transforms],
        }


@dataclass
class CustomRule:
    """User-defined match or rate-limit rule with its action."""

    rule_type: RuleType
    action: ActionType
    name: Optional[str] = None
    priority: int = schema.DEFAULT_PRIORITY
    enabled: bool = True
    rate_limit_duration_in_minutes: int = schema.DEFAULT_RATE_LIMIT_DURATION
    rate_limit_threshold: int = schema.DEFAULT_RATE_LIMIT_THRESHOLD
    custom_block_response_body: Optional[str] = None
    match_conditions: List[MatchCondition] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, raw: Any, path: str) -> "CustomRule":
        raw = _check_keys(raw, schema.CUSTOM_RULE_SCHEMA, path)
        conditions_path = f"{path}.match_condition"
        conditions = validators.bounded_list(
            raw.get("match_condition"), conditions_path, schema.MAX_MATCH_CONDITIONS
        )
        rule_type = parse_enum(
            RuleType, _required(raw, "rule_type", path), f"{path}.rule_type"
        )
        duration = validators.integer(
            _with_default(
                raw, "rate_limit_duration_in_minutes", schema.DEFAULT_RATE_LIMIT_DURATION
            ),
            f"{path}.rate_limit_duration_in_minutes",
        )
        threshold = validators.integer(
            _with_default(
                raw, "rate_limit_threshold", schema.DEFAULT_RATE_LIMIT_THRESHOLD
            ),
            f"{path}.rate_limit_threshold",
        )
        # Rate limits only apply to RateLimitRule and are never sent otherwise
        if rule_type is not RuleType.RATE_LIMIT:
            duration = schema.DEFAULT_RATE_LIMIT_DURATION
            threshold = schema.DEFAULT_RATE_LIMIT_THRESHOLD
        return cls(
            rule_type=rule_type,
            action=parse_enum(
                ActionType, _required(raw, "action", path), f"{path}.action"
            ),
            name=validators.optional_string(raw.get("name"), f"{path}.name"),
            priority=validators.integer(
                _with_default(raw, "priority", schema.DEFAULT_PRIORITY),
                f"{path}.priority",
            ),
            enabled=validators.boolean(
                _with_default(raw, "enabled", True), f"{path}.enabled"
            ),
            rate_limit_duration_in_minutes=duration,
            rate_limit_threshold=threshold,
            custom_block_response_body=validators.optional_string(
                raw.get("custom_block_response_body"),
                f"{path}.custom_block_response_body",
            ),
            match_conditions=[
                MatchCondition.from_attributes(c, f"{conditions_path}[{i}]")
                for i, c in enumerate(conditions)
            ],
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "priority": self.priority,
            "enabled": self.enabled,
            "rule_type": self.rule_type.value,
            "rate_limit_duration_in_minutes": self.rate_limit_duration_in_minutes,
            "rate_limit_threshold": self.rate_limit_threshold,
            "action": self.action.value,
            "custom_block_response_body": self.custom_block_response_body,
            "match_condition": [c.to_attributes() for c in self.match_conditions],
        }


@dataclass
class OverrideRule:
    rule_id: str
    action: ActionType
    enabled: bool = False

    @classmethod
    def from_attributes(cls, raw: Any, path: str) -> "OverrideRule":
        raw = _check_keys(raw, schema.OVERRIDE_RULE_SCHEMA, path)
        return cls(
            rule_id=validators.non_empty_string(
                _required(raw, "rule_id", path), f"{path}.rule_id"
            ),
            action=parse_enum(
                ActionType, _required(raw, "action", path), f"{path}.action"
            ),
            enabled=validators.boolean(
                _with_default(raw, "enabled", False), f"{path}.enabled"
            ),
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "enabled": self.enabled,
            "action": self.action.value,
        }


@dataclass
class RuleGroupOverride:
    rule_group_name: Optional[str] = None
    rules: List[OverrideRule] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, raw: Any, path: str) -> "RuleGroupOverride":
        raw = _check_keys(raw, schema.OVERRIDE_SCHEMA, path)
        rules_path = f"{path}.rule"
        rules = validators.bounded_list(
            raw.get("rule"), rules_path, schema.MAX_OVERRIDE_RULES
        )
        return cls(
            rule_group_name=validators.optional_string(
                raw.get("rule_group_name"), f"{path}.rule_group_name"
            ),
            rules=[
                OverrideRule.from_attributes(r, f"{rules_path}[{i}]")
                for i, r in enumerate(rules)
            ],
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "rule_group_name": self.rule_group_name,
            "rule": [r.to_attributes() for r in self.rules],
        }


@dataclass
class ManagedRuleSet:
    """Vendor-curated rule set addressed by type and version."""

    type: Optional[str] = None
    version: Optional[str] = None
    overrides: List[RuleGroupOverride] = field(default_factory=list)

    @classmethod
    def from_attributes(cls, raw: Any, path: str) -> "ManagedRuleSet":
        raw = _check_keys(raw, schema.MANAGED_RULE_SCHEMA, path)
        overrides_path = f"{path}.override"
        overrides = validators.bounded_list(
            raw.get("override"), overrides_path, schema.MAX_OVERRIDES
        )
        return cls(
            type=validators.optional_string(raw.get("type"), f"{path}.type"),
            version=validators.optional_string(raw.get("version"), f"{path}.version"),
            overrides=[
                RuleGroupOverride.from_attributes(o, f"{overrides_path}[{i}]")
                for i, o in enumerate(overrides)
            ],
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "version": self.version,
            "override": [o.to_attributes() for o in self.overrides],
        }


@dataclass
class FirewallPolicy:
    """Complete desired (or observed) state of one firewall policy."""

    name: str
    resource_group_name: str
    mode: PolicyMode
    enabled: bool = True
    location: str = schema.POLICY_LOCATION
    redirect_url: Optional[str] = None
    custom_block_response_status_code: Optional[int] = None
    custom_block_response_body: Optional[str] = None
    custom_rules: List[CustomRule] = field(default_factory=list)
    managed_rules: List[ManagedRuleSet] = field(default_factory=list)
    frontend_endpoint_ids: List[str] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_attributes(cls, raw: Any, path: str = "policy") -> "FirewallPolicy":
        """Decode and validate a generic attribute map.

        Args:
            raw: Attribute map as produced by the host framework or HCL parser
            path: Attribute path prefix used in error messages

        Returns:
            Validated FirewallPolicy

        Raises:
            ValidationError: If any schema constraint is violated
        """
        raw = _check_keys(raw, schema.RESOURCE_SCHEMA, path)

        status_code = raw.get("custom_block_response_status_code")
        if status_code is not None:
            status_code = validators.one_of(
                validators.integer(
                    status_code, f"{path}.custom_block_response_status_code"
                ),
                f"{path}.custom_block_response_status_code",
                schema.CUSTOM_BLOCK_RESPONSE_STATUS_CODES,
            )

        # List bounds are checked before any nested block is decoded
        rules_path = f"{path}.custom_rule"
        custom_rules = validators.bounded_list(
            raw.get("custom_rule"), rules_path, schema.MAX_CUSTOM_RULES
        )
        managed_path = f"{path}.managed_rule"
        managed_rules = validators.bounded_list(
            raw.get("managed_rule"), managed_path, schema.MAX_MANAGED_RULES
        )
        endpoints_path = f"{path}.frontend_endpoint_ids"
        endpoints = validators.bounded_list(
            _required(raw, "frontend_endpoint_ids", path),
            endpoints_path,
            schema.MAX_FRONTEND_ENDPOINTS,
        )

        return cls(
            name=validators.non_empty_string(_required(raw, "name", path), f"{path}.name"),
            resource_group_name=validators.resource_group_name(
                _required(raw, "resource_group_name", path),
                f"{path}.resource_group_name",
            ),
            mode=parse_enum(PolicyMode, _required(raw, "mode", path), f"{path}.mode"),
            enabled=validators.boolean(
                _with_default(raw, "enabled", True), f"{path}.enabled"
            ),
            redirect_url=validators.optional_string(
                raw.get("redirect_url"), f"{path}.redirect_url"
            ),
            custom_block_response_status_code=status_code,
            custom_block_response_body=validators.base64_body(
                raw.get("custom_block_response_body"),
                f"{path}.custom_block_response_body",
            ),
            custom_rules=[
                CustomRule.from_attributes(r, f"{rules_path}[{i}]")
                for i, r in enumerate(custom_rules)
            ],
            managed_rules=[
                ManagedRuleSet.from_attributes(m, f"{managed_path}[{i}]")
                for i, m in enumerate(managed_rules)
            ],
            frontend_endpoint_ids=[
                validators.non_empty_string(e, f"{endpoints_path}[{i}]")
                for i, e in enumerate(endpoints)
            ],
            tags=validators.string_map(raw.get("tags"), f"{path}.tags"),
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "resource_group_name": self.resource_group_name,
            "location": self.location,
            "enabled": self.enabled,
            "mode": self.mode.value,
            "redirect_url": self.redirect_url,
            "custom_block_response_status_code": self.custom_block_response_status_code,
            "custom_block_response_body": self.custom_block_response_body,
            "custom_rule": [r.to_attributes() for r in self.custom_rules],
            "managed_rule": [m.to_attributes() for m in self.managed_rules],
            "frontend_endpoint_ids": list(self.frontend_endpoint_ids),
            "tags": dict(self.tags),
        }


def decode_policy(raw: Any) -> FirewallPolicy:
    """Decode a generic attribute map into a validated FirewallPolicy."""
    return FirewallPolicy.from_attributes(raw)


def normalize_attributes(raw: Any) -> Dict[str, Any]:
    """Return the attribute map with defaults filled in and spellings canonical."""
    return decode_policy(raw).to_attributes()
