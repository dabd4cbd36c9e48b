"""
modelguard: declarative validation that gates persistence of SQLAlchemy
records.

    class Product(ValidatedModel):
        name: Mapped[str] = mapped_column(String(255))
        sku: Mapped[str] = mapped_column(String(32))

        rules = {"name": "required|max:255"}
        complex_rules = {
            "sku": {"rules": ["unique:products"], "check": lambda product: product.is_new},
        }

    product = Product(name="")
    if not product.save(db):
        product.get_errors().get("name")
"""

from modelguard.core.exceptions import (
    ConfigurationError,
    ErrorCode,
    EvaluatorUnavailable,
    ModelGuardError,
    RecordInvalid,
)
from modelguard.validation import (
    GENERAL_ERRORS,
    ComplexRule,
    DefaultRuleEvaluator,
    ErrorCollector,
    HasErrors,
    RuleEvaluator,
    RuleOverrides,
    RuleSet,
    ValidatesAttributes,
    ValidationGate,
    ValidationResult,
)
from modelguard.models import Base, BaseModel, ValidatedModel

__version__ = "1.0.0"

__all__ = [
    # Exceptions
    "ConfigurationError",
    "ErrorCode",
    "EvaluatorUnavailable",
    "ModelGuardError",
    "RecordInvalid",

    # Validation core
    "GENERAL_ERRORS",
    "ComplexRule",
    "DefaultRuleEvaluator",
    "ErrorCollector",
    "HasErrors",
    "RuleEvaluator",
    "RuleOverrides",
    "RuleSet",
    "ValidatesAttributes",
    "ValidationGate",
    "ValidationResult",

    # ORM
    "Base",
    "BaseModel",
    "ValidatedModel",
]
