"""Sample firewall policy attribute maps and API bodies for tests."""

import copy

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
RESOURCE_GROUP = "example-rg"
POLICY_NAME = "examplepolicy"
POLICY_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{RESOURCE_GROUP}"
    f"/providers/Microsoft.Network/FrontDoorWebApplicationFirewallPolicies/{POLICY_NAME}"
)
FRONTEND_ENDPOINT_ID = (
    f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{RESOURCE_GROUP}"
    "/providers/Microsoft.Network/frontDoors/example-fd/frontendEndpoints/example-fe"
)

# Fully specified attribute map, already in normalized form
FULL_POLICY = {
    "name": POLICY_NAME,
    "resource_group_name": RESOURCE_GROUP,
    "location": "Global",
    "enabled": True,
    "mode": "Prevention",
    "redirect_url": "https://www.contoso.com",
    "custom_block_response_status_code": 403,
    "custom_block_response_body": "PGh0bWw+CjxoZWFkZXI+PHRpdGxlPkhlbGxvPC90aXRsZT48L2hlYWRlcj4KPC9odG1sPg==",
    "custom_rule": [
        {
            "name": "Rule1",
            "priority": 1,
            "enabled": True,
            "rule_type": "MatchRule",
            "rate_limit_duration_in_minutes": 1,
            "rate_limit_threshold": 10,
            "action": "Block",
            "custom_block_response_body": None,
            "match_condition": [
                {
                    "match_variable": "RemoteAddr",
                    "selector": None,
                    "operator": "IPMatch",
                    "condition": "Is",
                    "match_value": ["192.168.1.0/24", "10.0.0.1"],
                    "transforms": [],
                }
            ],
        },
        {
            "name": "Rule2",
            "priority": 2,
            "enabled": False,
            "rule_type": "RateLimitRule",
            "rate_limit_duration_in_minutes": 5,
            "rate_limit_threshold": 100,
            "action": "Log",
            "custom_block_response_body": "YmxvY2tlZA==",
            "match_condition": [
                {
                    "match_variable": None,
                    "selector": "RequestHeader",
                    "operator": "Contains",
                    "condition": "Is Not",
                    "match_value": ["windows"],
                    "transforms": ["Lowercase", "Trim"],
                },
                {
                    "match_variable": "RequestUri",
                    "selector": None,
                    "operator": "RegEx",
                    "condition": "Is",
                    "match_value": ["^/admin"],
                    "transforms": ["UrlDecode"],
                },
            ],
        },
    ],
    "managed_rule": [
        {
            "type": "DefaultRuleSet",
            "version": "preview-0.1",
            "override": [
                {
                    "rule_group_name": "PHP",
                    "rule": [
                        {"rule_id": "933111", "enabled": False, "action": "Block"},
                        {"rule_id": "933100", "enabled": True, "action": "Redirect"},
                    ],
                }
            ],
        },
        {
            "type": "BotProtection",
            "version": "preview-0.1",
            "override": [],
        },
    ],
    "frontend_endpoint_ids": [FRONTEND_ENDPOINT_ID],
    "tags": {"environment": "test"},
}

# Minimal user-authored configuration relying on defaults
MINIMAL_POLICY = {
    "name": POLICY_NAME,
    "resource_group_name": RESOURCE_GROUP,
    "mode": "Detection",
    "frontend_endpoint_ids": [FRONTEND_ENDPOINT_ID],
}


def full_policy():
    return copy.deepcopy(FULL_POLICY)


def minimal_policy():
    return copy.deepcopy(MINIMAL_POLICY)


def custom_rule(**overrides):
    rule = {
        "name": "Rule",
        "rule_type": "MatchRule",
        "action": "Allow",
        "match_condition": [
            {"match_variable": "RequestMethod", "operator": "Equal", "match_value": ["GET"]}
        ],
    }
    rule.update(overrides)
    return rule
