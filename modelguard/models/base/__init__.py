"""
Base models package.

Provides the declarative base and the validated model class.
"""

from modelguard.models.base.base_model import (
    Base,
    BaseModel,
    ValidatedModel,
)

__all__ = [
    "Base",
    "BaseModel",
    "ValidatedModel",
]
