"""
Framework-neutral validation core.

Rule tables, the gate that merges them, the evaluator that runs them and
the error collector that reports their failures.
"""

from modelguard.validation.messages import GENERAL_ERRORS, ErrorCollector
from modelguard.validation.rules import (
    ComplexRule,
    CustomRule,
    RuleOverrides,
    RuleSet,
    normalize_rules,
)
from modelguard.validation.evaluator import (
    DEFAULT_MESSAGES,
    DefaultRuleEvaluator,
    ParsedRule,
    RuleEvaluator,
    ValidationResult,
    parse_rule,
)
from modelguard.validation.gate import ValidationGate
from modelguard.validation.mixins import HasErrors, ValidatesAttributes

__all__ = [
    # Errors
    "GENERAL_ERRORS",
    "ErrorCollector",

    # Rules
    "ComplexRule",
    "CustomRule",
    "RuleOverrides",
    "RuleSet",
    "normalize_rules",

    # Evaluation
    "DEFAULT_MESSAGES",
    "DefaultRuleEvaluator",
    "ParsedRule",
    "RuleEvaluator",
    "ValidationResult",
    "parse_rule",
    "ValidationGate",

    # Mixins
    "HasErrors",
    "ValidatesAttributes",
]
