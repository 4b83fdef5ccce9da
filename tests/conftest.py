"""
Global pytest configuration and fixtures for all tests.

Integration fixtures create a fresh file-backed SQLite database per test so
each test starts from empty tables.
"""

import os

import pytest
import pytest_asyncio

# Set testing environment variable as early as possible
os.environ["TESTING"] = "true"

from repokit.config.settings import Settings
from repokit.database.init_db import create_async_database_engine, create_database_tables
from repokit.models.repository_config import RepositoryConfig
from repokit.repositories.base_repository import Repository
from tests.utils import MEMBERSHIPS_TABLE, RECORDS_TABLE, MockFactory, Record


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore the developer's environment and .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def test_database_url(tmp_path) -> str:
    """Provide a unique file database URL for each test."""
    return f"sqlite:///{tmp_path / 'repokit_test.db'}"


@pytest_asyncio.fixture
async def async_test_engine(test_database_url, test_settings):
    """Create an async engine with all test tables."""
    engine = create_async_database_engine(test_database_url, settings=test_settings)
    await create_database_tables(engine)

    yield engine
    await engine.dispose()


@pytest.fixture
def records_config() -> RepositoryConfig:
    return RepositoryConfig(table_name=RECORDS_TABLE)


@pytest.fixture
def records(async_test_engine, records_config) -> Repository:
    """Records repository returning plain dicts."""
    return Repository(async_test_engine, records_config)


@pytest.fixture
def record_entities(async_test_engine, records_config) -> Repository:
    """Records repository hydrating ``Record`` entities."""
    return Repository(async_test_engine, records_config.with_entity(Record))


@pytest.fixture
def memberships(async_test_engine) -> Repository:
    """Repository over a composite-key table without timestamp columns."""
    config = (
        RepositoryConfig(table_name=MEMBERSHIPS_TABLE)
        .with_pk(("group_id", "user_id"))
        .without_timestamps()
    )
    return Repository(async_test_engine, config)


@pytest.fixture
def mock_engine():
    """AsyncEngine mock and the connection its begin() yields."""
    return MockFactory.create_engine()
