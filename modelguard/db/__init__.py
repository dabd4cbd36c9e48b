"""
Database helpers: engine and session factories, table creation.
"""

from modelguard.db.session import (
    create_session_factory,
    get_db,
    get_default_engine,
    get_engine,
    get_session_factory,
)
from modelguard.db.init_db import drop_db, init_db

__all__ = [
    "create_session_factory",
    "get_db",
    "get_default_engine",
    "get_engine",
    "get_session_factory",
    "drop_db",
    "init_db",
]
