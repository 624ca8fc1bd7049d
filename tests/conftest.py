"""
Pytest configuration and shared fixtures for MDB_ADAPTERS tests.

This module provides:
- Mock MongoDB database / collection fixtures
- A mock connection pool handing out the mock database
- Sample models and adapters built on them
- Environment and metrics isolation
"""

from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from mdb_adapters.adapters import DocumentAdapter, UserActivityAdapter
from mdb_adapters.config import AdapterSettings
from mdb_adapters.database import ConnectionPool
from mdb_adapters.observability import clear_correlation_id, get_metrics_collector
from mdb_adapters.tasks import BackgroundTasks
from tests.sample_models import DriverActivity, DriverActivityLog, Trip

ENV_VARS = (
    "MONGO_URI",
    "DB_NAME",
    "MONGO_LOGS_URI",
    "MONGO_LOGS_DB_NAME",
    "MONGO_MAX_POOL_SIZE",
    "MONGO_MIN_POOL_SIZE",
    "MONGO_SERVER_SELECTION_TIMEOUT_MS",
    "MONGO_LOG_LEVEL",
    "MDB_ADAPTERS_DEBUG",
    "APP_ENV",
)

# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================

def make_cursor(documents: Optional[list] = None) -> MagicMock:
    """Cursor mock: chainable sort/skip/limit and an async to_list."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(documents or []))
    return cursor

def make_collection(name: str) -> MagicMock:
    """Create a mock motor collection with async command methods."""
    collection = MagicMock()
    collection.name = name
    collection.find = MagicMock(return_value=make_cursor())
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="test_id"))
    collection.update_one = AsyncMock(
        return_value=MagicMock(modified_count=1, upserted_id=None)
    )
    collection.update_many = AsyncMock(return_value=MagicMock(modified_count=2))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.count_documents = AsyncMock(return_value=0)
    collection.aggregate = MagicMock(return_value=make_cursor())
    collection.create_index = AsyncMock(return_value="location_2dsphere")
    return collection

@pytest.fixture
def mock_database() -> MagicMock:
    """Mock database; ``db[name]`` returns the same collection mock per name."""
    collections: Dict[str, MagicMock] = {}

    def get_collection(name: str) -> MagicMock:
        if name not in collections:
            collections[name] = make_collection(name)
        return collections[name]

    db = MagicMock()
    db.name = "test_db"
    db.__getitem__.side_effect = get_collection
    db.command = AsyncMock(return_value={"ok": 1.0, "value": None})
    return db

@pytest.fixture
def mock_pool(mock_database: MagicMock) -> MagicMock:
    """Connection pool whose connect() hands out the mock database."""
    pool = MagicMock(spec=ConnectionPool)
    pool.connect = AsyncMock(return_value=mock_database)
    return pool

@pytest.fixture
def activity_collection(mock_database: MagicMock) -> MagicMock:
    return mock_database[DriverActivity.collection_name]

@pytest.fixture
def log_collection(mock_database: MagicMock) -> MagicMock:
    return mock_database[DriverActivityLog.collection_name]

@pytest.fixture
def trip_collection(mock_database: MagicMock) -> MagicMock:
    return mock_database[Trip.collection_name]

# ============================================================================
# ADAPTER FIXTURES
# ============================================================================

@pytest.fixture
def settings() -> AdapterSettings:
    """Production behaviour: unexpected errors are wrapped."""
    return AdapterSettings(is_debug=False)

@pytest.fixture
def debug_settings() -> AdapterSettings:
    return AdapterSettings(is_debug=True)

@pytest.fixture
def tasks() -> BackgroundTasks:
    return BackgroundTasks()

@pytest.fixture
def driver_adapter(mock_pool: MagicMock, settings: AdapterSettings) -> DocumentAdapter:
    return DocumentAdapter(mock_pool, DriverActivity, settings=settings)

@pytest.fixture
def trip_adapter(mock_pool: MagicMock, settings: AdapterSettings) -> DocumentAdapter:
    return DocumentAdapter(mock_pool, Trip, settings=settings)

@pytest.fixture
def log_adapter(
    mock_pool: MagicMock, settings: AdapterSettings, tasks: BackgroundTasks
) -> DocumentAdapter:
    return DocumentAdapter(mock_pool, DriverActivityLog, settings=settings, tasks=tasks)

@pytest.fixture
def activity_adapter(
    mock_pool: MagicMock,
    settings: AdapterSettings,
    tasks: BackgroundTasks,
    log_adapter: DocumentAdapter,
) -> UserActivityAdapter:
    return UserActivityAdapter(
        mock_pool,
        DriverActivity,
        log_adapter=log_adapter,
        primary_key="user_id",
        settings=settings,
        tasks=tasks,
    )

# ============================================================================
# ISOLATION
# ============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove connection / debug variables so every test starts from defaults."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield

@pytest.fixture(autouse=True)
def reset_observability():
    get_metrics_collector().reset()
    clear_correlation_id()
    yield
    get_metrics_collector().reset()
