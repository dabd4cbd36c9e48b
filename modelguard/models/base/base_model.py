"""
Base model configuration for SQLAlchemy ORM.

Provides the declarative base, a plain ``BaseModel`` and the
``ValidatedModel`` whose instances run the validation gate before they
are written. The gate is hooked into the session's ``before_flush`` event,
so every flush is covered, not only ``save()``.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar
from uuid import uuid4

from sqlalchemy import String, event, inspect as sa_inspect
from sqlalchemy.orm import Mapped, Session, declarative_base, declared_attr, mapped_column, object_session

from modelguard.config.settings import get_settings
from modelguard.core.exceptions import RecordInvalid
from modelguard.validation.evaluator import DefaultRuleEvaluator, RuleEvaluator
from modelguard.validation.mixins import ValidatesAttributes

logger = logging.getLogger(__name__)

# Create declarative base
Base = declarative_base()

# Type variable for model classes
ModelType = TypeVar("ModelType", bound="BaseModel")


class BaseModel(Base):
    """
    Abstract base model with a UUID primary key and common helpers.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
        comment="Primary key (UUID)"
    )

    @declared_attr
    def __tablename__(cls) -> str:
        """Generate table name from class name."""
        # Convert CamelCase to snake_case
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower() + 's'

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            exclude: List of field names to exclude

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.name not in exclude:
                value = getattr(self, column.key)
                if isinstance(value, datetime):
                    result[column.name] = value.isoformat()
                else:
                    result[column.name] = value

        return result

    @classmethod
    def get_by_id(cls: Type[ModelType], db: Session, id: Any) -> Optional[ModelType]:
        """
        Get model instance by ID.

        Args:
            db: Database session
            id: Primary key value

        Returns:
            Model instance or None
        """
        return db.query(cls).filter(cls.id == id).first()

    def delete(self, db: Session, commit: bool = True) -> None:
        """
        Delete model instance from database.

        Args:
            db: Database session
            commit: Whether to commit immediately
        """
        db.delete(self)
        if commit:
            db.commit()

    def __repr__(self) -> str:
        """String representation of model instance."""
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


class ValidatedModel(ValidatesAttributes, BaseModel):
    """
    Base model validated before every insert or update.

    Declare ``rules``, ``custom_rules``, ``complex_rules``,
    ``rule_messages`` and ``rule_overrides`` on the subclass. Complex-rule
    checks receive the model instance, so they can use ``is_new`` or any
    other attribute.

    The validation attributes and methods share the model's namespace, so
    these names cannot be used for mapped columns: ``rules``,
    ``custom_rules``, ``complex_rules``, ``rule_messages``,
    ``rule_overrides``, ``errors``, ``is_new`` and the ``get_*``,
    ``validate`` and ``save`` methods. A column declared under one of them
    silently replaces the validation attribute.
    """

    __abstract__ = True

    @property
    def is_new(self) -> bool:
        """True until the instance has been written to the database."""
        return not sa_inspect(self).has_identity

    def get_attributes(self) -> Dict[str, Any]:
        """Current values of the mapped column attributes."""
        return {
            attr.key: getattr(self, attr.key)
            for attr in sa_inspect(self).mapper.column_attrs
        }

    def pending_row(self) -> Dict[str, Any]:
        """Current values keyed by column name, as a lookup would see the row."""
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
        }

    def rule_evaluator(
        self,
        bind: Any = None,
        pending: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
    ) -> RuleEvaluator:
        return DefaultRuleEvaluator(
            bind if bind is not None else object_session(self),
            pending=pending,
        )

    def save(self, db: Session, commit: bool = True) -> bool:
        """
        Validate and save model instance.

        Nothing is added to the session when validation fails. Records
        already queued in the session count for ``unique`` and ``exists``
        lookups.

        Args:
            db: Database session
            commit: Whether to commit immediately

        Returns:
            True if the instance passed validation and was saved
        """
        peers = [obj for obj in _unflushed(db) if obj is not self]
        with db.no_autoflush:
            passed = self.validate(self.rule_evaluator(db, pending=_rows_by_table(peers)))
        if not passed:
            return False

        db.add(self)
        if commit:
            db.commit()
            db.refresh(self)
        return True


def _unflushed(session: Session) -> List[ValidatedModel]:
    """New then modified validated records, in the order they were added."""
    records = [obj for obj in session.new if isinstance(obj, ValidatedModel)]
    records += [
        obj for obj in session.dirty
        if isinstance(obj, ValidatedModel) and session.is_modified(obj)
    ]
    return records


def _rows_by_table(records: List[ValidatedModel]) -> Dict[str, List[Dict[str, Any]]]:
    rows: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        rows.setdefault(record.__table__.name, []).append(record.pending_row())
    return rows


@event.listens_for(Session, 'before_flush')
def receive_before_flush(session, flush_context, instances):
    """
    Abort the flush when any new or modified record fails validation.

    Records are checked in the order they were added. Each accepted record
    is visible to the lookups of the ones after it, since none of them has
    been written yet.
    """
    if not get_settings().VALIDATE_ON_FLUSH:
        return

    accepted: List[ValidatedModel] = []
    with session.no_autoflush:
        for target in _unflushed(session):
            evaluator = target.rule_evaluator(session, pending=_rows_by_table(accepted))
            if not target.validate(evaluator):
                errors = target.get_errors()
                logger.info(
                    f"Rejected write of {target.__class__.__name__}",
                    extra={"model": target.__class__.__name__, "fields": errors.keys()},
                )
                raise RecordInvalid(target, errors.to_dict())
            accepted.append(target)
