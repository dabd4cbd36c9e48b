"""Database initialization utilities."""
import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from modelguard.models.base import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    """
    Create the tables of every model registered on ``Base``.

    Note: This is suitable for development/testing only.
    For production, use migrations instead.
    """
    try:
        existing_tables = inspect(engine).get_table_names()
        Base.metadata.create_all(bind=engine)
        logger.info(f"Database initialized ({len(existing_tables)} tables already present)")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def drop_db(engine: Engine) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Use with caution.
    """
    try:
        Base.metadata.drop_all(bind=engine)
        logger.warning("All database tables dropped")
    except Exception as e:
        logger.error(f"Error dropping database: {e}")
        raise
