"""
Field-level error collection.

``ErrorCollector`` is an immutable value: every write returns a new
collector, so a snapshot handed to a caller never changes underneath it.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

# Key for messages that are not tied to a single field
GENERAL_ERRORS = "__all__"


def _as_messages(value: Any) -> Tuple[str, ...]:
    """Normalize a message or a sequence of messages to a tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    return (str(value),)


class ErrorCollector:
    """
    Mapping from field name to an ordered tuple of error messages.

    Fields keep their first insertion position; messages for a field
    keep insertion order across merges and are never deduplicated.
    """

    __slots__ = ("_messages",)

    def __init__(self, messages: Optional[Mapping[str, Any]] = None):
        collected: Dict[str, Tuple[str, ...]] = {}
        for field, value in (messages or {}).items():
            normalized = _as_messages(value)
            if normalized:
                collected[str(field)] = collected.get(str(field), ()) + normalized
        self._messages = collected

    @classmethod
    def coerce(cls, errors: Any) -> "ErrorCollector":
        """
        Build a collector from any accepted error shape.

        Args:
            errors: An ErrorCollector, a mapping of field to message(s),
                a single message, or a sequence of messages and mappings

        Returns:
            ErrorCollector holding the same messages
        """
        if isinstance(errors, ErrorCollector):
            return errors
        if errors is None:
            return cls()
        if isinstance(errors, Mapping):
            return cls(errors)
        if isinstance(errors, str) or not isinstance(errors, Iterable):
            return cls({GENERAL_ERRORS: [errors]})

        result = cls()
        loose: List[Any] = []
        for item in errors:
            if isinstance(item, (Mapping, ErrorCollector)):
                if loose:
                    result = result.merge(cls({GENERAL_ERRORS: loose}))
                    loose = []
                result = result.merge(cls.coerce(item))
            else:
                loose.append(item)
        if loose:
            result = result.merge(cls({GENERAL_ERRORS: loose}))
        return result

    def merge(self, other: Any) -> "ErrorCollector":
        """Return a new collector with ``other``'s messages appended."""
        other = ErrorCollector.coerce(other)
        merged = ErrorCollector()
        combined = dict(self._messages)
        for field, messages in other._messages.items():
            combined[field] = combined.get(field, ()) + messages
        merged._messages = combined
        return merged

    def add(self, field: str, message: str) -> "ErrorCollector":
        """Return a new collector with one more message for ``field``."""
        return self.merge({field: [message]})

    def get(self, field: str) -> Tuple[str, ...]:
        return self._messages.get(field, ())

    def first(self, field: Optional[str] = None, default: Optional[str] = None) -> Optional[str]:
        """First message for ``field``, or the first message overall."""
        if field is None:
            messages = self.all()
        else:
            messages = self.get(field)
        return messages[0] if messages else default

    def has(self, field: str) -> bool:
        return bool(self._messages.get(field))

    def keys(self) -> List[str]:
        return list(self._messages)

    def all(self) -> List[str]:
        """Every message, field by field, in insertion order."""
        return [message for messages in self._messages.values() for message in messages]

    def count(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def is_empty(self) -> bool:
        return self.count() == 0

    def as_mapping(self) -> Mapping[str, Tuple[str, ...]]:
        """Read-only view of field to messages."""
        return MappingProxyType(self._messages)

    def to_dict(self) -> Dict[str, List[str]]:
        return {field: list(messages) for field, messages in self._messages.items()}

    def __getitem__(self, field: str) -> Tuple[str, ...]:
        return self._messages[field]

    def __contains__(self, field: object) -> bool:
        return field in self._messages

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __bool__(self) -> bool:
        return not self.is_empty()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorCollector):
            return NotImplemented
        return self._messages == other._messages

    def __hash__(self) -> int:
        return hash(tuple(self._messages.items()))

    def __repr__(self) -> str:
        return f"ErrorCollector({self.to_dict()!r})"
