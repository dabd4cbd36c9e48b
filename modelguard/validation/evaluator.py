"""
Rule evaluation.

The gate talks to any object implementing ``RuleEvaluator``.
``DefaultRuleEvaluator`` is the stock implementation: a catalogue of
string rules (``"required"``, ``"max:255"``, ``"unique:users,email"``)
plus whatever custom rules the record type registers.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from sqlalchemy import column, func, select, table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from modelguard.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    EvaluatorUnavailable,
    ModelGuardError,
)
from modelguard.validation import validators
from modelguard.validation.messages import ErrorCollector
from modelguard.validation.rules import CustomRule

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of one validation pass."""

    passed: bool
    errors: ErrorCollector = field(default_factory=ErrorCollector)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(passed=True)

    @classmethod
    def failure(cls, errors: Any) -> "ValidationResult":
        return cls(passed=False, errors=ErrorCollector.coerce(errors))

    def __bool__(self) -> bool:
        return self.passed


@runtime_checkable
class RuleEvaluator(Protocol):

    def evaluate(
        self,
        data: Mapping[str, Any],
        rules: Mapping[str, Sequence[str]],
        custom_rules: Mapping[str, CustomRule],
        messages: Mapping[str, str],
    ) -> ValidationResult:
        """Run ``rules`` against ``data`` and report pass/fail with messages."""


@dataclass(frozen=True)
class ParsedRule:
    name: str
    params: Tuple[str, ...]
    descriptor: str


def parse_rule(descriptor: Any, field_name: Optional[str] = None) -> ParsedRule:
    """
    Split a ``name:param1,param2`` descriptor.

    The ``regex`` rule keeps everything after the first colon as its
    single parameter, since patterns may contain commas.

    Raises:
        ConfigurationError: If the descriptor is not a non-empty string
    """
    if not isinstance(descriptor, str):
        raise ConfigurationError(
            f"Rule for '{field_name}' must be a string, got {type(descriptor).__name__}",
            ErrorCode.INVALID_RULE,
            field=field_name,
        )

    name, sep, raw_params = descriptor.strip().partition(":")
    name = name.strip()
    if not name:
        raise ConfigurationError(
            f"Empty rule name in '{descriptor}' for '{field_name}'",
            ErrorCode.INVALID_RULE,
            field=field_name,
            rule=descriptor,
        )

    if not sep:
        params: Tuple[str, ...] = ()
    elif name == "regex":
        params = (raw_params,)
    else:
        params = tuple(param.strip() for param in raw_params.split(","))
    return ParsedRule(name=name, params=params, descriptor=descriptor)


# Rules that run even when the value is missing or blank
IMPLICIT_RULES = frozenset({"required", "present", "filled"})

# Rules that change how the field is evaluated instead of checking it
MARKER_RULES = frozenset({"nullable", "bail"})

SIZE_RULES = frozenset({"min", "max", "between", "size"})

# (minimum, maximum) parameter counts; None means unbounded
PARAMETER_COUNTS: Dict[str, Tuple[int, Optional[int]]] = {
    "min": (1, 1),
    "max": (1, 1),
    "size": (1, 1),
    "between": (2, 2),
    "digits": (1, 1),
    "in": (1, None),
    "not_in": (1, None),
    "regex": (1, 1),
    "same": (1, 1),
    "different": (1, 1),
    "unique": (1, 4),
    "exists": (1, 2),
    "phone": (0, 1),
}

NUMERIC_PARAMETER_RULES = frozenset({"min", "max", "size", "between", "digits"})

DEFAULT_MESSAGES: Dict[str, str] = {
    "required": "The {field} field is required.",
    "present": "The {field} field must be present.",
    "filled": "The {field} field must have a value.",
    "string": "The {field} must be a string.",
    "integer": "The {field} must be an integer.",
    "numeric": "The {field} must be a number.",
    "boolean": "The {field} field must be true or false.",
    "array": "The {field} must be an array.",
    "email": "The {field} must be a valid email address.",
    "url": "The {field} format is invalid.",
    "phone": "The {field} must be a valid phone number.",
    "slug": "The {field} must be a valid slug.",
    "alpha": "The {field} may only contain letters.",
    "alpha_num": "The {field} may only contain letters and numbers.",
    "alpha_dash": "The {field} may only contain letters, numbers, dashes and underscores.",
    "digits": "The {field} must be {0} digits.",
    "date": "The {field} is not a valid date.",
    "min.numeric": "The {field} must be at least {0}.",
    "min.string": "The {field} must be at least {0} characters.",
    "min.array": "The {field} must have at least {0} items.",
    "max.numeric": "The {field} may not be greater than {0}.",
    "max.string": "The {field} may not be greater than {0} characters.",
    "max.array": "The {field} may not have more than {0} items.",
    "between.numeric": "The {field} must be between {0} and {1}.",
    "between.string": "The {field} must be between {0} and {1} characters.",
    "between.array": "The {field} must have between {0} and {1} items.",
    "size.numeric": "The {field} must be {0}.",
    "size.string": "The {field} must be {0} characters.",
    "size.array": "The {field} must contain {0} items.",
    "in": "The selected {field} is invalid.",
    "not_in": "The selected {field} is invalid.",
    "regex": "The {field} format is invalid.",
    "same": "The {field} and {0} must match.",
    "different": "The {field} and {0} must be different.",
    "confirmed": "The {field} confirmation does not match.",
    "unique": "The {field} has already been taken.",
    "exists": "The selected {field} is invalid.",
}

FALLBACK_MESSAGE = "The {field} is invalid."


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class DefaultRuleEvaluator:
    """
    Stock rule evaluator.

    Every rule on a field is evaluated in declaration order and each
    failure adds one message, unless the field is marked ``bail``.
    Non-implicit rules, custom ones included, are skipped for missing,
    None or blank values.

    Args:
        bind: Session, Connection or Engine used by ``unique`` and
            ``exists`` lookups
        pending: Rows not yet written to the database, by table name.
            Lookups count them together with the stored rows, so two
            records queued in the same session cannot both pass
            ``unique``.
    """

    def __init__(
        self,
        bind: Any = None,
        pending: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
    ):
        self.bind = bind
        self.pending = pending or {}

    def evaluate(
        self,
        data: Mapping[str, Any],
        rules: Mapping[str, Sequence[str]],
        custom_rules: Optional[Mapping[str, CustomRule]] = None,
        messages: Optional[Mapping[str, str]] = None,
    ) -> ValidationResult:
        custom_rules = custom_rules or {}
        messages = messages or {}

        # Check every declaration first so a configuration defect is never
        # hidden behind a skipped blank value.
        parsed: Dict[str, List[ParsedRule]] = {}
        for field_name, descriptors in rules.items():
            parsed[field_name] = [parse_rule(descriptor, field_name) for descriptor in descriptors]
            for rule in parsed[field_name]:
                self._check_declaration(rule, field_name, custom_rules)

        errors: Dict[str, List[str]] = {}
        for field_name, field_rules in parsed.items():
            failures = self._evaluate_field(field_name, field_rules, data, custom_rules, messages)
            if failures:
                errors[field_name] = failures

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success()

    def _check_declaration(
        self,
        rule: ParsedRule,
        field_name: str,
        custom_rules: Mapping[str, CustomRule],
    ) -> None:
        if rule.name in MARKER_RULES:
            return
        if not self._is_builtin(rule.name):
            if rule.name in custom_rules:
                return
            raise ConfigurationError(
                f"Unknown validation rule '{rule.name}' on '{field_name}'",
                ErrorCode.UNKNOWN_RULE,
                field=field_name,
                rule=rule.name,
            )

        minimum, maximum = PARAMETER_COUNTS.get(rule.name, (0, 0))
        count = len(rule.params)
        if count < minimum or (maximum is not None and count > maximum):
            raise ConfigurationError(
                f"Rule '{rule.descriptor}' on '{field_name}' has {count} parameter(s)",
                ErrorCode.INVALID_RULE,
                field=field_name,
                rule=rule.name,
            )

        if rule.name in NUMERIC_PARAMETER_RULES and not all(
            validators.is_numeric(param) for param in rule.params
        ):
            raise ConfigurationError(
                f"Rule '{rule.descriptor}' on '{field_name}' needs numeric parameters",
                ErrorCode.INVALID_RULE,
                field=field_name,
                rule=rule.name,
            )

        if rule.name == "regex":
            try:
                re.compile(rule.params[0])
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid pattern in '{rule.descriptor}' on '{field_name}': {e}",
                    ErrorCode.INVALID_RULE,
                    field=field_name,
                    rule=rule.name,
                ) from e

    def _is_builtin(self, name: str) -> bool:
        return callable(getattr(self, f"validate_{name}", None))

    def _evaluate_field(
        self,
        field_name: str,
        field_rules: List[ParsedRule],
        data: Mapping[str, Any],
        custom_rules: Mapping[str, CustomRule],
        messages: Mapping[str, str],
    ) -> List[str]:
        names = {rule.name for rule in field_rules}
        bail = "bail" in names
        numeric = bool(names & {"numeric", "integer"})
        value = data.get(field_name)
        failures: List[str] = []

        for rule in field_rules:
            if rule.name in MARKER_RULES:
                continue
            if rule.name not in IMPLICIT_RULES and _is_blank(value):
                continue

            if self._is_builtin(rule.name):
                check = getattr(self, f"validate_{rule.name}")
                passed = check(field_name, value, rule.params, data, numeric)
            else:
                passed = self._call_custom(custom_rules[rule.name], rule, field_name, value, data)

            if not passed:
                failures.append(self._message(field_name, rule, value, numeric, messages))
                if bail:
                    break

        return failures

    def _call_custom(
        self,
        func: CustomRule,
        rule: ParsedRule,
        field_name: str,
        value: Any,
        data: Mapping[str, Any],
    ) -> bool:
        try:
            return bool(func(field_name, value, list(rule.params), data))
        except ModelGuardError:
            raise
        except Exception as e:
            logger.error(f"Custom rule '{rule.name}' failed on '{field_name}': {e}")
            raise EvaluatorUnavailable(
                f"Custom rule '{rule.name}' could not run on '{field_name}': {e}",
                details={"field": field_name, "rule": rule.name},
            ) from e

    def _message(
        self,
        field_name: str,
        rule: ParsedRule,
        value: Any,
        numeric: bool,
        messages: Mapping[str, str],
    ) -> str:
        template = messages.get(f"{field_name}.{rule.name}") or messages.get(rule.name)
        if template is None:
            key = rule.name
            if rule.name in SIZE_RULES:
                key = f"{rule.name}.{self._size_kind(value, numeric)}"
            template = DEFAULT_MESSAGES.get(key, FALLBACK_MESSAGE)

        try:
            return template.format(*rule.params, field=field_name.replace("_", " "))
        except (IndexError, KeyError, ValueError) as e:
            raise ConfigurationError(
                f"Message template for '{field_name}.{rule.name}' is invalid: {template!r}",
                ErrorCode.INVALID_MESSAGE,
                field=field_name,
                rule=rule.name,
            ) from e

    @staticmethod
    def _size_kind(value: Any, numeric: bool) -> str:
        if numeric or (validators.to_decimal(value) is not None and not isinstance(value, str)):
            return "numeric"
        if isinstance(value, (list, tuple, dict, set, frozenset)):
            return "array"
        return "string"

    # -------------------------------------------------------------------------
    # Presence
    # -------------------------------------------------------------------------

    def validate_required(self, field_name, value, params, data, numeric) -> bool:
        return not validators.is_empty(value)

    def validate_present(self, field_name, value, params, data, numeric) -> bool:
        return field_name in data

    def validate_filled(self, field_name, value, params, data, numeric) -> bool:
        return field_name not in data or not validators.is_empty(value)

    # -------------------------------------------------------------------------
    # Types and formats
    # -------------------------------------------------------------------------

    def validate_string(self, field_name, value, params, data, numeric) -> bool:
        return isinstance(value, str)

    def validate_integer(self, field_name, value, params, data, numeric) -> bool:
        return validators.is_integer(value)

    def validate_numeric(self, field_name, value, params, data, numeric) -> bool:
        return validators.is_numeric(value)

    def validate_boolean(self, field_name, value, params, data, numeric) -> bool:
        return validators.is_boolean(value)

    def validate_array(self, field_name, value, params, data, numeric) -> bool:
        return isinstance(value, (list, tuple, dict))

    def validate_email(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_email(value)

    def validate_url(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_url(value)

    def validate_phone(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_phone(value, params[0] if params else None)

    def validate_slug(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_slug(value)

    def validate_alpha(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_alpha(value)

    def validate_alpha_num(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_alpha_num(value)

    def validate_alpha_dash(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_alpha_dash(value)

    def validate_digits(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_digits(value, int(params[0]))

    def validate_date(self, field_name, value, params, data, numeric) -> bool:
        return validators.validate_date(value)

    def validate_regex(self, field_name, value, params, data, numeric) -> bool:
        if not isinstance(value, (str, int, float)):
            return False
        return re.search(params[0], str(value)) is not None

    # -------------------------------------------------------------------------
    # Sizes
    # -------------------------------------------------------------------------

    def validate_min(self, field_name, value, params, data, numeric) -> bool:
        size = validators.size_of(value, numeric)
        return size is not None and size >= validators.to_decimal(params[0])

    def validate_max(self, field_name, value, params, data, numeric) -> bool:
        size = validators.size_of(value, numeric)
        return size is not None and size <= validators.to_decimal(params[0])

    def validate_between(self, field_name, value, params, data, numeric) -> bool:
        size = validators.size_of(value, numeric)
        low, high = validators.to_decimal(params[0]), validators.to_decimal(params[1])
        return size is not None and low <= size <= high

    def validate_size(self, field_name, value, params, data, numeric) -> bool:
        size = validators.size_of(value, numeric)
        return size is not None and size == validators.to_decimal(params[0])

    # -------------------------------------------------------------------------
    # Comparisons
    # -------------------------------------------------------------------------

    def validate_in(self, field_name, value, params, data, numeric) -> bool:
        return str(value) in params

    def validate_not_in(self, field_name, value, params, data, numeric) -> bool:
        return str(value) not in params

    def validate_same(self, field_name, value, params, data, numeric) -> bool:
        return value == data.get(params[0])

    def validate_different(self, field_name, value, params, data, numeric) -> bool:
        return value != data.get(params[0])

    def validate_confirmed(self, field_name, value, params, data, numeric) -> bool:
        return value == data.get(f"{field_name}_confirmation")

    # -------------------------------------------------------------------------
    # Database lookups
    # -------------------------------------------------------------------------

    def validate_unique(self, field_name, value, params, data, numeric) -> bool:
        """``unique:table[,column[,except_id[,id_column]]]``"""
        column_name = params[1] if len(params) > 1 and params[1] else field_name
        except_id = params[2] if len(params) > 2 and params[2] not in ("", "NULL") else None
        id_column = params[3] if len(params) > 3 and params[3] else "id"
        return self._count(params[0], column_name, value, id_column, except_id) == 0

    def validate_exists(self, field_name, value, params, data, numeric) -> bool:
        """``exists:table[,column]``"""
        column_name = params[1] if len(params) > 1 and params[1] else field_name
        return self._count(params[0], column_name, value) > 0

    def _count(
        self,
        table_name: str,
        column_name: str,
        value: Any,
        id_column: Optional[str] = None,
        except_id: Optional[str] = None,
    ) -> int:
        if self.bind is None:
            raise EvaluatorUnavailable(
                f"Lookup on '{table_name}' needs a database bind",
                details={"table": table_name, "column": column_name},
            )

        columns = {column_name}
        if id_column:
            columns.add(id_column)
        target = table(table_name, *(column(name) for name in sorted(columns)))

        stmt = select(func.count()).select_from(target).where(target.c[column_name] == value)
        if except_id is not None:
            stmt = stmt.where(target.c[id_column] != except_id)

        try:
            if isinstance(self.bind, Engine):
                with self.bind.connect() as connection:
                    stored = connection.execute(stmt).scalar_one()
            else:
                stored = self.bind.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Lookup on {table_name}.{column_name} failed: {e}")
            raise EvaluatorUnavailable(
                f"Lookup on '{table_name}.{column_name}' failed",
                ErrorCode.LOOKUP_FAILED,
                details={"table": table_name, "column": column_name},
            ) from e

        return stored + self._count_pending(table_name, column_name, value, id_column, except_id)

    def _count_pending(
        self,
        table_name: str,
        column_name: str,
        value: Any,
        id_column: Optional[str],
        except_id: Optional[str],
    ) -> int:
        count = 0
        for row in self.pending.get(table_name, ()):
            if row.get(column_name) != value:
                continue
            if except_id is not None and str(row.get(id_column)) == except_id:
                continue
            count += 1
        return count
