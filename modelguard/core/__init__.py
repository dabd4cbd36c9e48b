"""
Core package: exception taxonomy shared by the gate, the evaluator and
the ORM integration.
"""

from modelguard.core.exceptions import (
    ErrorCode,
    ModelGuardError,
    ConfigurationError,
    EvaluatorUnavailable,
    RecordInvalid,
)

__all__ = [
    "ErrorCode",
    "ModelGuardError",
    "ConfigurationError",
    "EvaluatorUnavailable",
    "RecordInvalid",
]
