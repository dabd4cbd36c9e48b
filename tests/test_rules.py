"""Tests for RuleSet, ComplexRule and RuleOverrides."""

import pytest

from modelguard.core.exceptions import ConfigurationError, ErrorCode
from modelguard.validation import ComplexRule, RuleOverrides, RuleSet, normalize_rules


def always(data):
    return True


class TestNormalizeRules:

    def test_pipe_string(self):
        assert normalize_rules("required| max:255 ") == ("required", "max:255")

    def test_sequence(self):
        assert normalize_rules(["required", "email"]) == ("required", "email")

    def test_blank(self):
        assert normalize_rules("") == ()
        assert normalize_rules(None) == ()

    def test_unsupported_type(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_rules(42, "age")
        assert exc_info.value.field == "age"


class TestComplexRule:

    def test_from_mapping(self):
        rule = ComplexRule.coerce({"rules": "required|digits:4", "check": always})

        assert rule == ComplexRule(rules=("required", "digits:4"), check=always)

    def test_from_pair(self):
        assert ComplexRule.coerce((["required"], always)).rules == ("required",)

    def test_missing_check(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ComplexRule.coerce({"rules": ["required"]}, "sku")
        assert exc_info.value.error_code == ErrorCode.INVALID_RULE

    def test_check_must_be_callable(self):
        with pytest.raises(ConfigurationError):
            ComplexRule.coerce({"rules": ["required"], "check": True}, "sku")

    def test_unsupported_shape(self):
        with pytest.raises(ConfigurationError):
            ComplexRule.coerce("required", "sku")


class TestRuleSet:

    def test_build(self):
        rule_set = RuleSet.build(
            rules={"name": "required|max:255"},
            custom_rules={"even": lambda f, v, p, d: v % 2 == 0},
            complex_rules={"sku": {"rules": ["unique:products"], "check": always}},
            messages={"name.required": "Name please."},
        )

        assert rule_set.rules["name"] == ("required", "max:255")
        assert callable(rule_set.custom_rules["even"])
        assert rule_set.complex_rules["sku"].rules == ("unique:products",)
        assert rule_set.messages["name.required"] == "Name please."
        assert not rule_set.is_empty()

    def test_empty(self):
        assert RuleSet.build().is_empty()
        assert RuleSet().is_empty()

    def test_tables_are_read_only(self):
        rule_set = RuleSet.build(rules={"name": "required"})

        with pytest.raises(TypeError):
            rule_set.rules["email"] = ("email",)

    def test_frozen(self):
        rule_set = RuleSet.build()

        with pytest.raises(AttributeError):
            rule_set.rules = {}

    def test_non_callable_custom_rule(self):
        with pytest.raises(ConfigurationError) as exc_info:
            RuleSet.build(custom_rules={"even": "not a function"})
        assert exc_info.value.rule == "even"

    def test_to_dict(self):
        rule_set = RuleSet.build(rules={"name": "required"})

        assert rule_set.to_dict() == {"rules": {"name": ("required",)}, "custom": {}, "complex": {}}


class TestRuleOverrides:

    def test_identity_by_default(self):
        rule_set = RuleSet.build(rules={"name": "required"})

        assert RuleOverrides().apply(rule_set, {}) == rule_set

    def test_override_gets_copy_and_record(self):
        seen = {}

        def normal(rules, record):
            seen["record"] = record
            rules["extra"] = ("required",)
            return rules

        rule_set = RuleSet.build(rules={"name": "required"})
        applied = RuleOverrides(normal=normal).apply(rule_set, {"id": "7"})

        assert seen["record"] == {"id": "7"}
        assert applied.rules == {"name": ("required",), "extra": ("required",)}
        assert "extra" not in rule_set.rules

    def test_messages_carried_over(self):
        rule_set = RuleSet.build(messages={"required": "Needed."})

        assert RuleOverrides().apply(rule_set, {}).messages == {"required": "Needed."}
