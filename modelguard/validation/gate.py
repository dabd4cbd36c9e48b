"""
The validation gate: one pass over a record's merged rule tables that
decides whether the record may be persisted.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from modelguard.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    EvaluatorUnavailable,
    ModelGuardError,
)
from modelguard.validation.evaluator import RuleEvaluator, ValidationResult
from modelguard.validation.rules import RuleList, RuleOverrides, RuleSet

logger = logging.getLogger(__name__)


class ValidationGate:
    """
    Merge simple, custom and complex rules and delegate to an evaluator.

    The gate never persists anything and never raises for invalid data:
    a failed validation comes back as a ``ValidationResult`` whose
    ``errors`` hold the evaluator's messages. ``ConfigurationError`` and
    ``EvaluatorUnavailable`` are raised to the caller.

    Args:
        evaluator: Rule evaluation engine
    """

    def __init__(self, evaluator: Optional[RuleEvaluator]):
        self.evaluator = evaluator

    def validate(
        self,
        record: Mapping[str, Any],
        rule_set: RuleSet,
        overrides: Optional[RuleOverrides] = None,
        subject: Any = None,
    ) -> ValidationResult:
        """
        Validate ``record`` against ``rule_set``.

        Args:
            record: Field name to current value
            rule_set: Declared rules of the record type
            overrides: Per-record adjustments of the three rule tables
            subject: Object handed to complex-rule checks instead of
                ``record`` (the model instance for ORM records)

        Returns:
            ValidationResult; ``passed`` is False when any rule failed

        Raises:
            ConfigurationError: Malformed rules or a failing condition
            EvaluatorUnavailable: No evaluator, or it could not run
        """
        if self.evaluator is None:
            raise EvaluatorUnavailable("No rule evaluator configured")

        if overrides is not None:
            rule_set = overrides.apply(rule_set, record)

        active = self._active_rules(record, rule_set, record if subject is None else subject)

        try:
            result = self.evaluator.evaluate(
                record, active, rule_set.custom_rules, rule_set.messages
            )
        except ModelGuardError:
            raise
        except Exception as e:
            logger.error(f"Rule evaluator {type(self.evaluator).__name__} failed: {e}")
            raise EvaluatorUnavailable(
                f"Rule evaluator failed: {e}",
                details={"evaluator": type(self.evaluator).__name__},
            ) from e

        if not result.passed:
            logger.info(
                f"Validation failed for fields: {', '.join(result.errors.keys())}",
                extra={"fields": result.errors.keys()},
            )
        return result

    def _active_rules(
        self,
        record: Mapping[str, Any],
        rule_set: RuleSet,
        subject: Any,
    ) -> Dict[str, RuleList]:
        """Simple rules plus every complex entry whose check accepts the record."""
        active: Dict[str, RuleList] = dict(rule_set.rules)

        for field_name, complex_rule in rule_set.complex_rules.items():
            try:
                applies = complex_rule.check(subject)
            except ModelGuardError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"Condition for complex rule on '{field_name}' raised: {e}",
                    ErrorCode.CONDITION_FAILED,
                    field=field_name,
                ) from e

            if applies:
                logger.debug(f"Complex rules for '{field_name}' activated")
                active[field_name] = active.get(field_name, ()) + complex_rule.rules

        return active
