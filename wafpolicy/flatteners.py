"""Flatten helpers: ARM response bodies back to typed policy records.

These are the inverse of wafpolicy.expanders and back the Read operation.
Every nested entity (policy settings, custom rules, match conditions, managed
rule sets, overrides, frontend endpoint links) is rebuilt so that
``flatten_policy(expand_policy(p)) == p`` for every valid policy ``p``.
Enum values the adapter does not know raise ValidationError.
"""

from typing import Any, Dict, List, Optional, Type

from wafpolicy import schema
from wafpolicy.enums import (
    ActionType,
    Condition,
    CustomRuleEnabledState,
    ManagedRuleEnabledState,
    MatchVariable,
    Operator,
    PolicyEnabledState,
    PolicyMode,
    RuleType,
    Transform,
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


def flatten_enabled_state(
    value: Optional[str], enum_cls: Type, field: str, default: bool
) -> bool:
    """Map an Enabled/Disabled wire value to a bool; absent means default."""
    if value is None:
        return default
    return parse_enum(enum_cls, value, field) is enum_cls.ENABLED


def flatten_condition(negate: Optional[bool]) -> Condition:
    return Condition.IS_NOT if negate else Condition.IS


def flatten_match_conditions(
    conditions: Optional[List[Dict[str, Any]]], path: str
) -> List[MatchCondition]:
    output = []
    for i, condition in enumerate(conditions or []):
        item_path = f"{path}[{i}]"
        selector = condition.get("selector")
        match_variable = None
        if selector:
            selector = parse_enum(MatchVariable, selector, f"{item_path}.selector")
        else:
            selector = None
            match_variable = parse_enum(
                MatchVariable, condition.get("matchVariable"), f"{item_path}.matchVariable"
            )
        output.append(
            MatchCondition(
                operator=parse_enum(
                    Operator, condition.get("operator"), f"{item_path}.operator"
                ),
                match_values=list(condition.get("matchValue") or []),
                match_variable=match_variable,
                selector=selector,
                condition=flatten_condition(condition.get("negateCondition")),
                transforms=[
                    parse_enum(Transform, t, f"{item_path}.transforms")
                    for t in condition.get("transforms") or []
                ],
            )
        )
    return output


def flatten_custom_rules(custom_rules: Optional[Dict[str, Any]]) -> List[CustomRule]:
    """Flatten the customRules body; an absent body yields no rules."""
    if not custom_rules:
        return []

    output = []
    for i, rule in enumerate(custom_rules.get("rules") or []):
        path = f"customRules.rules[{i}]"
        rule_type = parse_enum(RuleType, rule.get("ruleType"), f"{path}.ruleType")
        # Rate limits of a MatchRule are inert; report the defaults
        limits = rule if rule_type is RuleType.RATE_LIMIT else {}
        output.append(
            CustomRule(
                rule_type=rule_type,
                action=parse_enum(ActionType, rule.get("action"), f"{path}.action"),
                name=rule.get("name"),
                priority=rule.get("priority", schema.DEFAULT_PRIORITY),
                enabled=flatten_enabled_state(
                    rule.get("enabledState"),
                    CustomRuleEnabledState,
                    f"{path}.enabledState",
                    default=True,
                ),
                rate_limit_duration_in_minutes=limits.get(
                    "rateLimitDurationInMinutes", schema.DEFAULT_RATE_LIMIT_DURATION
                ),
                rate_limit_threshold=limits.get(
                    "rateLimitThreshold", schema.DEFAULT_RATE_LIMIT_THRESHOLD
                ),
                custom_block_response_body=rule.get("customBlockResponseBody"),
                match_conditions=flatten_match_conditions(
                    rule.get("matchConditions"), f"{path}.matchConditions"
                ),
            )
        )
    return output


def flatten_override_rules(
    rules: Optional[List[Dict[str, Any]]], path: str
) -> List[OverrideRule]:
    return [
        OverrideRule(
            rule_id=rule.get("ruleId"),
            action=parse_enum(ActionType, rule.get("action"), f"{path}[{i}].action"),
            enabled=flatten_enabled_state(
                rule.get("enabledState"),
                ManagedRuleEnabledState,
                f"{path}[{i}].enabledState",
                default=False,
            ),
        )
        for i, rule in enumerate(rules or [])
    ]


def flatten_rule_group_overrides(
    overrides: Optional[List[Dict[str, Any]]], path: str
) -> List[RuleGroupOverride]:
    return [
        RuleGroupOverride(
            rule_group_name=override.get("ruleGroupName"),
            rules=flatten_override_rules(override.get("rules"), f"{path}[{i}].rules"),
        )
        for i, override in enumerate(overrides or [])
    ]


def flatten_managed_rules(managed_rules: Optional[Dict[str, Any]]) -> List[ManagedRuleSet]:
    if not managed_rules:
        return []

    output = []
    for i, rule_set in enumerate(managed_rules.get("managedRuleSets") or []):
        output.append(
            ManagedRuleSet(
                type=rule_set.get("ruleSetType"),
                version=rule_set.get("ruleSetVersion"),
                overrides=flatten_rule_group_overrides(
                    rule_set.get("ruleGroupOverrides"),
                    f"managedRules.managedRuleSets[{i}].ruleGroupOverrides",
                ),
            )
        )
    return output


def flatten_frontend_endpoint_links(links: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [link["id"] for link in links or [] if link.get("id")]


def flatten_policy(body: Dict[str, Any], resource_group_name: str) -> FirewallPolicy:
    """Rebuild a FirewallPolicy record from a GET response body.

    Args:
        body: Decoded JSON body of the policy
        resource_group_name: Resource group parsed from the policy ID

    Returns:
        FirewallPolicy reflecting the remote object's current state
    """
    properties = body.get("properties") or {}
    settings = properties.get("policySettings") or {}

    return FirewallPolicy(
        name=body.get("name"),
        resource_group_name=resource_group_name,
        location=body.get("location") or schema.POLICY_LOCATION,
        mode=parse_enum(PolicyMode, settings.get("mode"), "policySettings.mode"),
        enabled=flatten_enabled_state(
            settings.get("enabledState"),
            PolicyEnabledState,
            "policySettings.enabledState",
            default=True,
        ),
        redirect_url=settings.get("redirectUrl"),
        custom_block_response_status_code=settings.get("customBlockResponseStatusCode"),
        custom_block_response_body=settings.get("customBlockResponseBody"),
        custom_rules=flatten_custom_rules(properties.get("customRules")),
        managed_rules=flatten_managed_rules(properties.get("managedRules")),
        frontend_endpoint_ids=flatten_frontend_endpoint_links(
            properties.get("frontendEndpointLinks")
        ),
        tags=dict(body.get("tags") or {}),
    )


def flatten_policy_attributes(
    body: Dict[str, Any], resource_group_name: str
) -> Dict[str, Any]:
    """Rebuild the full attribute map from a GET response body."""
    return flatten_policy(body, resource_group_name).to_attributes()
