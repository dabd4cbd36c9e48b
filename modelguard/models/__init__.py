"""
ORM integration for the validation gate.
"""

from modelguard.models.base import Base, BaseModel, ValidatedModel

__all__ = ["Base", "BaseModel", "ValidatedModel"]
