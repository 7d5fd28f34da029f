"""Unit tests for wafpolicy/enums.py"""

import pytest

from wafpolicy.enums import (
    ActionType,
    Condition,
    MatchVariable,
    Operator,
    SELECTOR_VARIABLES,
    Transform,
    allowed_values,
    parse_enum,
)
from wafpolicy.exceptions import ValidationError


class TestParseEnum:
    def test_parses_by_value(self):
        assert parse_enum(ActionType, "Redirect", "action") is ActionType.REDIRECT

    def test_accepts_member(self):
        assert parse_enum(ActionType, ActionType.LOG, "action") is ActionType.LOG

    @pytest.mark.parametrize("value", ["block", "BLOCK", "", None, "Deny", 3])
    def test_unknown_value_fails_loudly(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_enum(ActionType, value, "custom_rule[0].action")
        assert "custom_rule[0].action" in str(exc_info.value)

    def test_unhashable_value_fails(self):
        with pytest.raises(ValidationError):
            parse_enum(ActionType, ["Block"], "action")


class TestEnumContents:
    def test_operator_has_twelve_members(self):
        assert len(Operator) == 12
        assert "IPMatch" in allowed_values(Operator)
        assert "RegEx" in allowed_values(Operator)

    def test_match_variables(self):
        assert len(MatchVariable) == 8
        assert allowed_values(MatchVariable)[-1] == "RequestUri"

    def test_selector_variables_subset(self):
        assert {v.value for v in SELECTOR_VARIABLES} == {
            "Cookies",
            "PostArgs",
            "QueryString",
            "RequestHeader",
        }

    def test_transforms(self):
        assert allowed_values(Transform) == [
            "Lowercase",
            "RemoveNulls",
            "Trim",
            "Uppercase",
            "UrlDecode",
            "UrlEncode",
        ]


class TestCondition:
    @pytest.mark.parametrize(
        "condition,negated",
        [
            (Condition.IS, False),
            (Condition.CONTAINS, False),
            (Condition.IS_NOT, True),
            (Condition.NOT_CONTAINS, True),
        ],
    )
    def test_negated(self, condition, negated):
        assert condition.negated is negated

    def test_canonical_spelling(self):
        assert Condition.CONTAINS.canonical is Condition.IS
        assert Condition.NOT_CONTAINS.canonical is Condition.IS_NOT
        assert Condition.IS_NOT.canonical is Condition.IS_NOT
