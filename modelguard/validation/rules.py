"""
Declarative rule tables.

A ``RuleSet`` is declared once per record type and shared by every
instance of that type. Per-instance changes go through ``RuleOverrides``,
which returns new tables and never touches the declared ones.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from modelguard.core.exceptions import ConfigurationError, ErrorCode

RuleList = Tuple[str, ...]
RuleSpec = Union[str, Sequence[str]]

# (field, value, params, data) -> passes
CustomRule = Callable[[str, Any, Sequence[str], Mapping[str, Any]], bool]

# Receives the record (or the subject passed to the gate)
Condition = Callable[[Any], bool]

# (copy of the table, record) -> table to use
RuleOverride = Callable[[Dict[str, Any], Mapping[str, Any]], Mapping[str, Any]]


def normalize_rules(rules: RuleSpec, field_name: Optional[str] = None) -> RuleList:
    """
    Normalize a rule declaration to a tuple of descriptors.

    Args:
        rules: Pipe-joined string (``"required|max:255"``) or sequence
        field_name: Field the rules belong to, for error reporting

    Returns:
        Tuple of rule descriptors in declaration order
    """
    if rules is None:
        return ()
    if isinstance(rules, str):
        return tuple(part.strip() for part in rules.split("|")) if rules.strip() else ()
    if isinstance(rules, Sequence):
        return tuple(rules)
    raise ConfigurationError(
        f"Rules for '{field_name}' must be a string or a sequence, got {type(rules).__name__}",
        ErrorCode.INVALID_RULE,
        field=field_name,
    )


@dataclass(frozen=True)
class ComplexRule:
    """Rules that apply to a field only when ``check`` accepts the record."""

    rules: RuleList
    check: Condition

    @classmethod
    def coerce(cls, value: Any, field_name: Optional[str] = None) -> "ComplexRule":
        """Accept a ComplexRule, a ``{"rules", "check"}`` mapping or a pair."""
        if isinstance(value, ComplexRule):
            return value
        if isinstance(value, Mapping):
            if "rules" not in value or "check" not in value:
                raise ConfigurationError(
                    f"Complex rule for '{field_name}' needs both 'rules' and 'check'",
                    ErrorCode.INVALID_RULE,
                    field=field_name,
                )
            rules, check = value["rules"], value["check"]
        elif isinstance(value, tuple) and len(value) == 2:
            rules, check = value
        else:
            raise ConfigurationError(
                f"Unsupported complex rule declaration for '{field_name}'",
                ErrorCode.INVALID_RULE,
                field=field_name,
            )
        if not callable(check):
            raise ConfigurationError(
                f"Complex rule check for '{field_name}' is not callable",
                ErrorCode.INVALID_RULE,
                field=field_name,
            )
        return cls(rules=normalize_rules(rules, field_name), check=check)


@dataclass(frozen=True)
class RuleSet:
    """
    The three rule tables of a record type plus its custom messages.

    Build instances with ``RuleSet.build``; the tables are read-only
    mappings so a shared RuleSet can never be mutated by one record.
    """

    rules: Mapping[str, RuleList] = field(default_factory=lambda: MappingProxyType({}))
    custom_rules: Mapping[str, CustomRule] = field(default_factory=lambda: MappingProxyType({}))
    complex_rules: Mapping[str, ComplexRule] = field(default_factory=lambda: MappingProxyType({}))
    messages: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        rules: Optional[Mapping[str, RuleSpec]] = None,
        custom_rules: Optional[Mapping[str, CustomRule]] = None,
        complex_rules: Optional[Mapping[str, Any]] = None,
        messages: Optional[Mapping[str, str]] = None,
    ) -> "RuleSet":
        """
        Normalize raw declarations into a RuleSet.

        Raises:
            ConfigurationError: If a declaration has an unsupported shape
        """
        normal = {name: normalize_rules(spec, name) for name, spec in (rules or {}).items()}

        custom = dict(custom_rules or {})
        for name, func in custom.items():
            if not callable(func):
                raise ConfigurationError(
                    f"Custom rule '{name}' is not callable",
                    ErrorCode.INVALID_RULE,
                    rule=name,
                )

        complex_ = {
            name: ComplexRule.coerce(value, name)
            for name, value in (complex_rules or {}).items()
        }

        return cls(
            rules=MappingProxyType(normal),
            custom_rules=MappingProxyType(custom),
            complex_rules=MappingProxyType(complex_),
            messages=MappingProxyType(dict(messages or {})),
        )

    def is_empty(self) -> bool:
        return not (self.rules or self.custom_rules or self.complex_rules)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """
        All registered rules, organized as::

            {"rules": normal rules, "custom": custom rules, "complex": complex rules}
        """
        return {
            "rules": dict(self.rules),
            "custom": dict(self.custom_rules),
            "complex": dict(self.complex_rules),
        }


def _identity(rules: Dict[str, Any], record: Mapping[str, Any]) -> Mapping[str, Any]:
    return rules


@dataclass(frozen=True)
class RuleOverrides:
    """
    Per-record adjustments of the declared rule tables.

    Each callable gets a fresh copy of its table and the record being
    validated, and returns the table to use. A typical use is excluding
    the record itself from a uniqueness check::

        RuleOverrides(
            normal=lambda rules, record: {
                **rules,
                "email": ("required", f"unique:users,email,{record['id']}"),
            }
        )
    """

    normal: RuleOverride = _identity
    custom: RuleOverride = _identity
    complex: RuleOverride = _identity

    def apply(self, rule_set: RuleSet, record: Mapping[str, Any]) -> RuleSet:
        """Return the RuleSet to use for ``record``."""
        return RuleSet.build(
            rules=self.normal(dict(rule_set.rules), record),
            custom_rules=self.custom(dict(rule_set.custom_rules), record),
            complex_rules=self.complex(dict(rule_set.complex_rules), record),
            messages=rule_set.messages,
        )
