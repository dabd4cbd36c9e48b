"""
Record-side mixins.

``HasErrors`` gives a record its error collector; ``ValidatesAttributes``
adds the declared rule tables and ``validate()``. Neither depends on the
ORM: a record class only has to provide ``get_attributes()``.
"""

from typing import Any, ClassVar, Dict, Mapping, Optional

from modelguard.validation.evaluator import DefaultRuleEvaluator, RuleEvaluator
from modelguard.validation.gate import ValidationGate
from modelguard.validation.messages import ErrorCollector
from modelguard.validation.rules import CustomRule, RuleOverrides, RuleSet, RuleSpec


class HasErrors:
    """
    Error collector handling for a record.

    The collector is an immutable value, so the shared empty default on
    the class is safe until the first write replaces it on the instance.
    """

    _errors = ErrorCollector()

    @property
    def errors(self) -> ErrorCollector:
        return self._errors

    def get_errors(self) -> ErrorCollector:
        """Snapshot of the current errors."""
        return self._errors

    def set_errors(self, errors: Any) -> None:
        """Replace the error collector wholesale."""
        self._errors = ErrorCollector.coerce(errors)

    def put_errors(self, errors: Any) -> None:
        """
        Add errors to the collector.

        Args:
            errors: A message, a sequence of messages, a mapping of field
                to message(s) or another ErrorCollector. A single value is
                treated as a one-element sequence.
        """
        self._errors = self._errors.merge(ErrorCollector.coerce(errors))

    def has_errors(self) -> bool:
        return self._errors.count() > 0

    def clear_errors(self) -> None:
        self._errors = ErrorCollector()


class ValidatesAttributes(HasErrors):
    """
    Declarative validation for a record type.

    Subclasses declare::

        rules = {"name": "required|max:255"}
        custom_rules = {"sku_format": check_sku}
        complex_rules = {"sku": {"rules": ["unique:products"], "check": lambda r: r.is_new}}
        rule_messages = {"name.required": "A name is needed."}
        rule_overrides = RuleOverrides(normal=...)

    The tables are normalized once per class into a shared ``RuleSet``.
    """

    rules: ClassVar[Mapping[str, RuleSpec]] = {}
    custom_rules: ClassVar[Mapping[str, CustomRule]] = {}
    complex_rules: ClassVar[Mapping[str, Any]] = {}
    rule_messages: ClassVar[Mapping[str, str]] = {}
    rule_overrides: ClassVar[Optional[RuleOverrides]] = None

    @classmethod
    def get_rule_set(cls) -> RuleSet:
        cached = cls.__dict__.get("_rule_set")
        if cached is None:
            cached = RuleSet.build(
                rules=cls.rules,
                custom_rules=cls.custom_rules,
                complex_rules=cls.complex_rules,
                messages=cls.rule_messages,
            )
            setattr(cls, "_rule_set", cached)
        return cached

    @classmethod
    def get_rules(cls) -> Mapping[str, Any]:
        """Returns all the simple rules."""
        return cls.get_rule_set().rules

    @classmethod
    def get_custom_rules(cls) -> Mapping[str, CustomRule]:
        """Returns all the custom rules."""
        return cls.get_rule_set().custom_rules

    @classmethod
    def get_complex_rules(cls) -> Mapping[str, Any]:
        """Returns all the complex rules."""
        return cls.get_rule_set().complex_rules

    @classmethod
    def get_all_rules(cls) -> Dict[str, Dict[str, Any]]:
        """Returns ``{"rules": ..., "custom": ..., "complex": ...}``."""
        return cls.get_rule_set().to_dict()

    def get_attributes(self) -> Dict[str, Any]:
        """Current field values of the record."""
        raise NotImplementedError

    def rule_evaluator(self, bind: Any = None) -> RuleEvaluator:
        return DefaultRuleEvaluator(bind)

    def validate(self, evaluator: Optional[RuleEvaluator] = None) -> bool:
        """
        Validate current attributes against the declared rules.

        On failure the error collector is replaced with the evaluator's
        messages; on success it is left as it was.

        Returns:
            True if every rule passed
        """
        gate = ValidationGate(evaluator or self.rule_evaluator())
        result = gate.validate(
            self.get_attributes(),
            self.get_rule_set(),
            overrides=self.rule_overrides,
            subject=self,
        )
        if result.passed:
            return True
        self.set_errors(result.errors)
        return False
