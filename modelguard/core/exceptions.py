"""
Custom exceptions for modelguard.

Validation failures are not exceptions: they are reported through the
boolean result of ``validate()`` and the record's error collector. The
classes below cover the cases that must reach the caller unhandled.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for gate failures"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INVALID_RULE = "INVALID_RULE"
    UNKNOWN_RULE = "UNKNOWN_RULE"
    CONDITION_FAILED = "CONDITION_FAILED"
    INVALID_MESSAGE = "INVALID_MESSAGE"

    # Evaluator errors
    EVALUATOR_UNAVAILABLE = "EVALUATOR_UNAVAILABLE"
    LOOKUP_FAILED = "LOOKUP_FAILED"


class ModelGuardError(Exception):
    """
    Base exception class for all modelguard exceptions.

    Provides structured error information so callers can log or
    serialize failures consistently.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class ConfigurationError(ModelGuardError):
    """
    Raised when a rule declaration is unusable.

    Covers malformed rule descriptors, references to unregistered custom
    rules, complex-rule conditions that raise and broken message templates.
    These indicate a programming defect, never bad input.
    """

    def __init__(
        self,
        message: str = "Invalid validation configuration",
        error_code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        field: Optional[str] = None,
        rule: Optional[str] = None,
    ):
        details = {}
        if field is not None:
            details["field"] = field
        if rule is not None:
            details["rule"] = rule
        super().__init__(message, error_code, details)
        self.field = field
        self.rule = rule


class EvaluatorUnavailable(ModelGuardError):
    """Raised when the rule evaluator is missing or cannot execute"""

    def __init__(
        self,
        message: str = "Rule evaluator unavailable",
        error_code: ErrorCode = ErrorCode.EVALUATOR_UNAVAILABLE,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class RecordInvalid(ModelGuardError):
    """
    Raised by the pre-commit hook to abort a flush.

    Carries the record and its field errors so the caller can report
    them after rolling back the session.
    """

    def __init__(
        self,
        record: Any,
        field_errors: Optional[Dict[str, List[str]]] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{record.__class__.__name__} failed validation"
            if field_errors:
                message += f" ({', '.join(field_errors)})"
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)
        self.record = record
        self.field_errors = field_errors or {}
