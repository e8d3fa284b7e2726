"""
Shared pytest fixtures.
"""

import pytest

from storage.database import create_all_tables, create_database_engine, create_session_factory
from tests.factories import FakeTradeStore
from trade_import.config import ImportConfig
from trade_import.pipeline import ImportPipeline


@pytest.fixture
def store():
    return FakeTradeStore()


@pytest.fixture
def pipeline(store):
    return ImportPipeline(store, ImportConfig())


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with the schema created."""
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = create_session_factory(engine)
    session = factory()
    yield session
    session.close()
