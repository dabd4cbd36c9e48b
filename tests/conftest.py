"""Shared fixtures."""

import pytest
from sqlalchemy.orm import sessionmaker

from modelguard.db import drop_db, get_engine, init_db

# Registers the test models on the declarative base before init_db runs
import sample_models  # noqa: F401


@pytest.fixture
def engine():
    engine = get_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
