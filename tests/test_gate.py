"""Tests for ValidationGate and the record-side validate()."""

import pytest

from modelguard.core.exceptions import ConfigurationError, ErrorCode, EvaluatorUnavailable
from modelguard.validation import (
    DefaultRuleEvaluator,
    ErrorCollector,
    RuleOverrides,
    RuleSet,
    ValidationGate,
    ValidationResult,
)

from sample_models import Record, RecordingEvaluator


class NamedRecord(Record):
    rules = {"name": ["required"]}


class EmailRecord(Record):
    rules = {"email": ["required", "email"]}


class SkuRecord(Record):
    complex_rules = {
        "sku": {"rules": ["unique:products"], "check": lambda record: record.is_new},
    }


class TestScenarios:

    def test_empty_name_fails_required(self):
        record = NamedRecord(name="")

        assert record.validate() is False
        assert record.has_errors()
        assert "required" in record.get_errors().get("name")[0]

    def test_valid_email_passes(self):
        record = EmailRecord(email="a@b.com")

        assert record.validate() is True
        assert not record.has_errors()

    def test_unique_never_evaluated_for_existing_record(self):
        evaluator = RecordingEvaluator()
        record = SkuRecord(is_new=False, sku="ABC-123")

        # No bind: evaluating "unique" would raise EvaluatorUnavailable
        assert record.validate(evaluator) is True
        assert evaluator.calls == [{}]

    def test_unique_evaluated_for_new_record(self):
        record = SkuRecord(is_new=True, sku="ABC-123")

        with pytest.raises(EvaluatorUnavailable):
            record.validate(DefaultRuleEvaluator())


class TestProperties:

    def test_no_rules_always_pass(self):
        record = Record(anything=None, other="")

        assert record.validate() is True
        assert record.get_errors().is_empty()

    def test_idempotent(self):
        gate = ValidationGate(DefaultRuleEvaluator())
        rule_set = RuleSet.build(rules={"name": "required|max:3", "age": "integer"})
        data = {"name": "Grace", "age": "x"}

        first = gate.validate(data, rule_set)
        second = gate.validate(data, rule_set)

        assert first == second
        assert first.errors.to_dict() == {
            "name": ["The name may not be greater than 3 characters."],
            "age": ["The age must be an integer."],
        }

    def test_passing_validation_keeps_existing_errors(self):
        record = NamedRecord(name="Grace")
        record.put_errors({"name": "set by hand"})

        assert record.validate() is True
        assert record.get_errors().get("name") == ("set by hand",)

    def test_failing_validation_replaces_errors(self):
        record = NamedRecord(name="")
        record.put_errors({"other": "stale"})

        assert record.validate() is False
        assert record.get_errors().keys() == ["name"]


class TestComplexRules:

    def test_inactive_rules_do_not_affect_outcome(self):
        rule_set = RuleSet.build(
            complex_rules={"code": {"rules": "required|digits:4", "check": lambda data: False}},
        )

        result = ValidationGate(DefaultRuleEvaluator()).validate({"code": "x"}, rule_set)
        assert result.passed

    def test_active_rules_enforced_like_simple_rules(self):
        complex_set = RuleSet.build(
            complex_rules={"code": {"rules": "required|digits:4", "check": lambda data: True}},
        )
        simple_set = RuleSet.build(rules={"code": "required|digits:4"})
        gate = ValidationGate(DefaultRuleEvaluator())

        assert gate.validate({"code": "x"}, complex_set) == gate.validate({"code": "x"}, simple_set)

    def test_rules_appended_after_simple_rules(self):
        evaluator = RecordingEvaluator()
        rule_set = RuleSet.build(
            rules={"code": "required"},
            complex_rules={"code": (["digits:4"], lambda data: data["kind"] == "pin")},
        )

        ValidationGate(evaluator).validate({"code": "1234", "kind": "pin"}, rule_set)
        assert evaluator.calls == [{"code": ("required", "digits:4")}]

    def test_condition_sees_current_record(self):
        rule_set = RuleSet.build(
            complex_rules={"reason": {"rules": ["required"], "check": lambda data: data["status"] == "rejected"}},
        )
        gate = ValidationGate(DefaultRuleEvaluator())

        assert gate.validate({"status": "approved", "reason": None}, rule_set).passed
        assert not gate.validate({"status": "rejected", "reason": None}, rule_set).passed

    def test_condition_that_raises_is_configuration_error(self):
        rule_set = RuleSet.build(
            complex_rules={"sku": {"rules": ["required"], "check": lambda data: data["missing"]}},
        )

        with pytest.raises(ConfigurationError) as exc_info:
            ValidationGate(DefaultRuleEvaluator()).validate({}, rule_set)
        assert exc_info.value.error_code == ErrorCode.CONDITION_FAILED
        assert exc_info.value.field == "sku"


class TestOverrides:

    def test_override_extends_rules_with_record_values(self):
        overrides = RuleOverrides(
            normal=lambda rules, record: {**rules, "confirm": (f"in:{record['name']}",)}
        )
        rule_set = RuleSet.build(rules={"name": "required"})
        gate = ValidationGate(DefaultRuleEvaluator())

        assert gate.validate({"name": "ada", "confirm": "ada"}, rule_set, overrides).passed
        result = gate.validate({"name": "ada", "confirm": "bob"}, rule_set, overrides)
        assert result.errors.get("confirm") == ("The selected confirm is invalid.",)

    def test_override_can_narrow_rules(self):
        overrides = RuleOverrides(normal=lambda rules, record: {})
        rule_set = RuleSet.build(rules={"name": "required"})

        assert ValidationGate(DefaultRuleEvaluator()).validate({}, rule_set, overrides).passed

    def test_custom_and_complex_overrides(self):
        overrides = RuleOverrides(
            custom=lambda rules, record: {**rules, "even": lambda f, v, p, d: int(v) % 2 == 0},
            complex=lambda rules, record: {
                **rules,
                "number": {"rules": ["even"], "check": lambda data: True},
            },
        )
        rule_set = RuleSet.build()
        gate = ValidationGate(DefaultRuleEvaluator())

        assert gate.validate({"number": 4}, rule_set, overrides).passed
        assert not gate.validate({"number": 3}, rule_set, overrides).passed

    def test_class_level_overrides(self):
        class Team(Record):
            rules = {"size": "integer"}
            rule_overrides = RuleOverrides(
                normal=lambda rules, record: {**rules, "size": rules["size"] + (f"max:{record['limit']}",)}
            )

        assert Team(size=3, limit=5).validate()
        assert not Team(size=8, limit=5).validate()


class BrokenEvaluator:

    def evaluate(self, data, rules, custom_rules, messages):
        raise ConnectionError("lookup service unreachable")


class ConfigErrorEvaluator:

    def evaluate(self, data, rules, custom_rules, messages):
        raise ConfigurationError("bad rule", ErrorCode.UNKNOWN_RULE)


class FixedEvaluator:

    def __init__(self, result):
        self.result = result

    def evaluate(self, data, rules, custom_rules, messages):
        return self.result


class TestEvaluatorErrors:

    def test_missing_evaluator(self):
        with pytest.raises(EvaluatorUnavailable):
            ValidationGate(None).validate({}, RuleSet.build())

    def test_missing_evaluator_runs_no_conditions(self):
        calls = []
        rule_set = RuleSet.build(
            complex_rules={"sku": {"rules": ["required"], "check": lambda data: calls.append(data)}},
        )

        with pytest.raises(EvaluatorUnavailable):
            ValidationGate(None).validate({"sku": "x"}, rule_set)
        assert calls == []

    def test_evaluator_failure_is_unavailable(self):
        with pytest.raises(EvaluatorUnavailable) as exc_info:
            ValidationGate(BrokenEvaluator()).validate({}, RuleSet.build())
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_custom_rule_outage_is_unavailable(self):
        def remote(field, value, params, data):
            raise ConnectionError("lookup service unreachable")

        rule_set = RuleSet.build(rules={"code": ["remote"]}, custom_rules={"remote": remote})

        with pytest.raises(EvaluatorUnavailable):
            ValidationGate(DefaultRuleEvaluator()).validate({"code": "x"}, rule_set)

    def test_configuration_errors_propagate_unchanged(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ValidationGate(ConfigErrorEvaluator()).validate({}, RuleSet.build())
        assert exc_info.value.error_code == ErrorCode.UNKNOWN_RULE

    def test_unknown_rule_is_not_a_validation_failure(self):
        class Misconfigured(Record):
            rules = {"name": ["required", "no_such_rule"]}

        with pytest.raises(ConfigurationError):
            Misconfigured(name="x").validate()

    def test_substitute_evaluator(self):
        result = ValidationResult.failure({"name": "rejected upstream"})
        record = NamedRecord(name="Grace")

        assert record.validate(FixedEvaluator(result)) is False
        assert record.get_errors() == ErrorCollector({"name": ["rejected upstream"]})
