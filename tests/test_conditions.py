"""
Tests for condition and condition-group evaluation.
"""

import pytest

from onecomme_osc.conditions import (
    evaluate_condition,
    evaluate_group,
    js_pattern,
    js_string,
    parse_float,
    to_number,
    truthy,
)
from onecomme_osc.paths import MISSING


def cond(field, operator, value, data_type="string"):
    return {"field": field, "operator": operator, "value": value, "dataType": data_type}


class TestCoercion:
    """JavaScript-compatible coercion helpers."""

    @pytest.mark.parametrize("value,expected", [
        (25, 25.0),
        ("25", 25.0),
        ("25.5abc", 25.5),
        ("  7", 7.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (MISSING, 0.0),
        (True, 0.0),
        ("1e3", 1000.0),
    ])
    def test_parse_float(self, value, expected):
        assert parse_float(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (MISSING, False),
        (None, False),
        (False, False),
        (0, False),
        (float("nan"), False),
        ("", False),
        ("0", True),
        ([], True),
        ({}, True),
        (1, True),
    ])
    def test_truthy(self, value, expected):
        assert truthy(value) is expected

    @pytest.mark.parametrize("value,expected", [
        (MISSING, "undefined"),
        (None, "null"),
        (True, "true"),
        (25.0, "25"),
        (2.5, "2.5"),
        ([1, None, "a"], "1,,a"),
        ({"a": 1}, "[object Object]"),
    ])
    def test_js_string(self, value, expected):
        assert js_string(value) == expected

    def test_to_number_rejects_python_only_literals(self):
        assert to_number("nan") != to_number("nan")
        assert to_number("1_000") != to_number("1_000")
        assert to_number(" 12 ") == 12.0


class TestComparisonOperators:
    """equals / not_equals / relational."""

    def test_equals_is_strict(self):
        assert evaluate_condition(cond("x", "equals", "1"), {"x": "1"})
        assert not evaluate_condition(cond("x", "equals", 1), {"x": "1"})
        assert not evaluate_condition(cond("x", "equals", 1), {"x": True})

    def test_not_equals(self):
        assert evaluate_condition(cond("x", "not_equals", "a"), {"x": "b"})
        assert not evaluate_condition(cond("x", "not_equals", "a"), {"x": "a"})

    def test_boolean_equals(self):
        condition = cond("isMember", "equals", True, "boolean")
        assert evaluate_condition(condition, {"isMember": True})
        assert not evaluate_condition(condition, {"isMember": False})

    def test_boolean_string_value_is_truthy(self):
        """A stored "false" string is a non-empty string, hence true."""
        condition = cond("isMember", "equals", "false", "boolean")
        assert evaluate_condition(condition, {"isMember": True})

    @pytest.mark.parametrize("a,b", [
        (25, 20), (20, 25), (20, 20), (-1.5, -2), (0, 0), (1e6, 999999),
    ])
    def test_greater_than_matches_numeric_order(self, a, b):
        condition = cond("x", "greater_than", b, "number")
        assert evaluate_condition(condition, {"x": a}) is (a > b)

    @pytest.mark.parametrize("operator,a,b,expected", [
        ("greater_than_or_equal", 10, 10, True),
        ("greater_than_or_equal", 5, 10, False),
        ("less_than", 5, 10, True),
        ("less_than", 10, 5, False),
        ("less_than_or_equal", 10, 10, True),
    ])
    def test_relational(self, operator, a, b, expected):
        assert evaluate_condition(cond("x", operator, b, "number"), {"x": a}) is expected

    def test_numeric_strings_are_coerced(self):
        assert evaluate_condition(cond("price", "greater_than", "20", "number"), {"price": "¥25"}) is False
        assert evaluate_condition(cond("price", "greater_than", "20", "number"), {"price": "25 JPY"}) is True

    def test_string_relational_is_lexicographic(self):
        assert evaluate_condition(cond("x", "greater_than", "b"), {"x": "c"})
        assert not evaluate_condition(cond("x", "greater_than", "b"), {"x": "a"})

    def test_relational_with_nan_is_false(self):
        assert not evaluate_condition(cond("x", "greater_than", 1), {"x": "abc"})
        assert not evaluate_condition(cond("x", "less_than", 1), {"x": "abc"})


class TestStringOperators:
    """contains / starts_with / ends_with / regex."""

    def test_contains_case_insensitive(self):
        assert evaluate_condition(cond("comment", "contains", "HELLO"), {"comment": "oh hello there"})

    def test_not_contains(self):
        assert evaluate_condition(cond("comment", "not_contains", "spam"), {"comment": "hi"})
        assert not evaluate_condition(cond("comment", "not_contains", "spam"), {"comment": "SPAM!"})

    def test_starts_and_ends_with(self):
        message = {"name": "StreamFan99"}
        assert evaluate_condition(cond("name", "starts_with", "stream"), message)
        assert evaluate_condition(cond("name", "ends_with", "FAN99"), message)
        assert not evaluate_condition(cond("name", "ends_with", "stream"), message)

    def test_contains_on_numbers_uses_js_rendering(self):
        assert evaluate_condition(cond("price", "contains", "25"), {"price": 25.0})

    def test_contains_on_missing_field_sees_undefined(self):
        assert evaluate_condition(cond("nope", "contains", "undef"), {})

    def test_regex_case_insensitive(self):
        assert evaluate_condition(cond("comment", "regex", r"^gg+$"), {"comment": "GGG"})
        assert not evaluate_condition(cond("comment", "regex", r"^gg+$"), {"comment": "good game"})

    @pytest.mark.parametrize("pattern", ["(", "[a-", "*x", "(?P<"])
    def test_invalid_regex_is_false_and_never_raises(self, pattern):
        assert evaluate_condition(cond("comment", "regex", pattern), {"comment": "((("}) is False

    @pytest.mark.parametrize("pattern,text", [
        (r"(?<word>gg)\s+\k<word>", "GG gg"),
        (r"^[^]+$", "line one\nline two"),
        (r"(?<=!)wow", "!wow"),
    ])
    def test_javascript_regex_syntax(self, pattern, text):
        assert evaluate_condition(cond("comment", "regex", pattern), {"comment": text})

    def test_js_pattern_translation(self):
        assert js_pattern(r"(?<n>a)\k<n>") == r"(?P<n>a)(?P=n)"
        assert js_pattern(r"\(?<x") == r"\(?<x"
        assert js_pattern("[^]") == r"[\s\S]"


class TestMalformedConditions:
    """Malformed input never raises."""

    def test_unknown_operator(self):
        assert evaluate_condition(cond("x", "approximately", 1), {"x": 1}) is False

    def test_missing_field_key(self):
        assert evaluate_condition({"operator": "equals", "value": 1}, {"x": 1}) is False

    def test_missing_number_coerces_to_zero(self):
        """A missing field and a zero-valued field evaluate identically."""
        condition = cond("price", "equals", 0, "number")
        assert evaluate_condition(condition, {}) is True
        assert evaluate_condition(condition, {"price": 0}) is True

    def test_missing_boolean_coerces_to_false(self):
        condition = cond("isMember", "equals", False, "boolean")
        assert evaluate_condition(condition, {}) is True


class TestEvaluateGroup:
    """Source / message-type selectors and condition logic."""

    def test_source_mismatch_short_circuits(self):
        group = {"source": "youtube", "conditions": [cond("userLevel", "greater_than", 0, "number")]}
        assert evaluate_group(group, {"type": "bilibili", "userLevel": 50}) is False

    def test_source_mismatch_even_with_empty_conditions(self):
        assert evaluate_group({"source": "youtube"}, {"type": "bilibili-gift"}) is False

    def test_matching_selector_without_conditions(self):
        assert evaluate_group({"source": "youtube"}, {"type": "youtube"}) is True

    def test_message_type_gift(self):
        group = {"source": "bilibili", "messageType": "gift"}
        assert evaluate_group(group, {"type": "bilibili-gift", "hasGift": True})
        assert not evaluate_group(group, {"type": "bilibili", "hasGift": False})

    def test_message_type_comment(self):
        group = {"messageType": "comment"}
        assert evaluate_group(group, {"hasGift": False})
        assert evaluate_group(group, {})
        assert not evaluate_group(group, {"hasGift": True})

    def test_has_gift_must_be_exactly_true(self):
        assert not evaluate_group({"messageType": "superchat"}, {"hasGift": 1})

    def test_condition_logic_defaults_to_and(self):
        group = {"conditions": [cond("a", "equals", 1, "number"), cond("b", "equals", 1, "number")]}
        assert not evaluate_group(group, {"a": 1, "b": 2})
        assert evaluate_group(group, {"a": 1, "b": 1})

    def test_condition_logic_or(self):
        group = {
            "conditions": [cond("a", "equals", 1, "number"), cond("b", "equals", 1, "number")],
            "conditionLogic": "OR",
        }
        assert evaluate_group(group, {"a": 1, "b": 2})

    def test_lowercase_or_combines_with_and(self):
        group = {
            "conditions": [cond("a", "equals", 1, "number"), cond("b", "equals", 1, "number")],
            "conditionLogic": "or",
        }
        assert not evaluate_group(group, {"a": 1, "b": 2})

    @pytest.mark.parametrize("logic", [None, ""])
    def test_null_condition_logic_uses_and(self, logic):
        group = {
            "source": "youtube",
            "conditions": [cond("a", "equals", 1, "number"), cond("b", "equals", 1, "number")],
            "conditionLogic": logic,
        }
        assert evaluate_group(group, {"type": "youtube", "a": 1, "b": 1})
        assert not evaluate_group(group, {"type": "youtube", "a": 1, "b": 2})
