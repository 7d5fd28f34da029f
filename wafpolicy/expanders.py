"""Expand helpers: typed policy records to ARM request bodies.

One function per entity. Enum conversions accept either an enum member or its
configuration string and raise ValidationError for anything else; none of them
falls back to a default member. Optional fields that are unset are omitted
from the body, matching the API's omitempty semantics.
"""

from typing import Any, Dict, List, Optional, Union

from wafpolicy import schema
from wafpolicy.enums import (
    ActionType,
    Condition,
    CustomRuleEnabledState,
    ManagedRuleEnabledState,
    PolicyEnabledState,
    PolicyMode,
    RuleType,
    parse_enum,
)
from wafpolicy.models import (
    CustomRule,
    FirewallPolicy,
    ManagedRuleSet,
    MatchCondition,
    OverrideRule,
    RuleGroupOverride,
)


def _compact(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if v is not None}


def expand_policy_enabled_state(enabled: bool) -> str:
    if enabled:
        return PolicyEnabledState.ENABLED.value
    return PolicyEnabledState.DISABLED.value


def expand_custom_rule_enabled_state(enabled: bool) -> str:
    if enabled:
        return CustomRuleEnabledState.ENABLED.value
    return CustomRuleEnabledState.DISABLED.value


def expand_managed_rule_enabled_state(enabled: bool) -> str:
    if enabled:
        return ManagedRuleEnabledState.ENABLED.value
    return ManagedRuleEnabledState.DISABLED.value


def expand_policy_mode(mode: Union[PolicyMode, str]) -> str:
    return parse_enum(PolicyMode, mode, "mode").value


def expand_rule_type(rule_type: Union[RuleType, str]) -> str:
    return parse_enum(RuleType, rule_type, "rule_type").value


def expand_action_type(action: Union[ActionType, str]) -> str:
    return parse_enum(ActionType, action, "action").value


def expand_negate_condition(condition: Union[Condition, str]) -> bool:
    return parse_enum(Condition, condition, "condition").negated


def expand_match_conditions(conditions: List[MatchCondition]) -> List[Dict[str, Any]]:
    """Expand match conditions.

    A selector-based condition sends the selector both as the match variable
    and as the selector, so Read can tell the two forms apart.
    """
    output = []
    for condition in conditions:
        output.append(
            _compact(
                {
                    "matchVariable": condition.variable.value,
                    "selector": condition.selector.value if condition.selector else None,
                    "operator": condition.operator.value,
                    "negateCondition": expand_negate_condition(condition.condition),
                    "matchValue": list(condition.match_values),
                    "transforms": [t.value for t in condition.transforms],
                }
            )
        )
    return output


def expand_custom_rules(rules: List[CustomRule]) -> Optional[Dict[str, Any]]:
    """Expand the custom rule list; no rules means no customRules body at all."""
    if not rules:
        return None

    output = []
    for rule in rules:
        rule_type = expand_rule_type(rule.rule_type)
        rate_limited = rule_type == RuleType.RATE_LIMIT.value
        output.append(
            _compact(
                {
                    "name": rule.name,
                    "priority": rule.priority,
                    "enabledState": expand_custom_rule_enabled_state(rule.enabled),
                    "ruleType": rule_type,
                    "rateLimitDurationInMinutes": (
                        rule.rate_limit_duration_in_minutes if rate_limited else None
                    ),
                    "rateLimitThreshold": rule.rate_limit_threshold if rate_limited else None,
                    "matchConditions": expand_match_conditions(rule.match_conditions),
                    "action": expand_action_type(rule.action),
                    "customBlockResponseBody": rule.custom_block_response_body,
                }
            )
        )
    return {"rules": output}


def expand_override_rules(rules: List[OverrideRule]) -> List[Dict[str, Any]]:
    return [
        {
            "ruleId": rule.rule_id,
            "enabledState": expand_managed_rule_enabled_state(rule.enabled),
            "action": expand_action_type(rule.action),
        }
        for rule in rules
    ]


def expand_rule_group_overrides(
    overrides: List[RuleGroupOverride],
) -> List[Dict[str, Any]]:
    return [
        _compact(
            {
                "ruleGroupName": override.rule_group_name,
                "rules": expand_override_rules(override.rules),
            }
        )
        for override in overrides
    ]


def expand_managed_rules(rule_sets: List[ManagedRuleSet]) -> Optional[Dict[str, Any]]:
    if not rule_sets:
        return None

    output = []
    for rule_set in rule_sets:
        output.append(
            _compact(
                {
                    "ruleSetType": rule_set.type,
                    "ruleSetVersion": rule_set.version,
                    "ruleGroupOverrides": expand_rule_group_overrides(rule_set.overrides),
                }
            )
        )
    return {"managedRuleSets": output}


def expand_frontend_endpoint_links(ids: List[str]) -> List[Dict[str, str]]:
    return [{"id": endpoint_id} for endpoint_id in ids]


def expand_policy_settings(policy: FirewallPolicy) -> Dict[str, Any]:
    return _compact(
        {
            "enabledState": expand_policy_enabled_state(policy.enabled),
            "mode": expand_policy_mode(policy.mode),
            "redirectUrl": policy.redirect_url,
            "customBlockResponseStatusCode": policy.custom_block_response_status_code,
            "customBlockResponseBody": policy.custom_block_response_body,
        }
    )


def expand_policy(policy: FirewallPolicy) -> Dict[str, Any]:
    """Build the full CreateOrUpdate request body for a policy.

    Args:
        policy: Validated policy record

    Returns:
        JSON-serialisable WebApplicationFirewallPolicy body
    """
    properties = _compact(
        {
            "policySettings": expand_policy_settings(policy),
            "customRules": expand_custom_rules(policy.custom_rules),
            "managedRules": expand_managed_rules(policy.managed_rules),
            "frontendEndpointLinks": expand_frontend_endpoint_links(
                policy.frontend_endpoint_ids
            ),
        }
    )
    body = {
        "name": policy.name,
        "location": schema.POLICY_LOCATION,
        "properties": properties,
    }
    if policy.tags:
        body["tags"] = dict(policy.tags)
    return body
