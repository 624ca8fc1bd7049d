"""
MDB_ADAPTERS - MongoDB document adapters

Model-driven CRUD and proximity queries over a shared, keyed motor
connection pool.
"""

# Adapters
from .adapters import (
    ActivityFilter,
    DocumentAdapter,
    GeoPoint,
    GeoQuery,
    Model,
    UserActivityAdapter,
    build_order,
)
# Configuration
from .config import AdapterSettings, MongoConfig
# Database layer
from .database import ConnectionPool
# Errors
from .exceptions import (
    AdapterError,
    ConfigurationError,
    GuardViolation,
    InitializationError,
    StoreError,
    UnexpectedError,
)
from .tasks import BackgroundTasks

__version__ = "0.1.0"

__all__ = [
    # Adapters
    "DocumentAdapter",
    "UserActivityAdapter",
    "Model",
    "build_order",
    "GeoPoint",
    "GeoQuery",
    "ActivityFilter",
    # Configuration
    "AdapterSettings",
    "MongoConfig",
    # Database
    "ConnectionPool",
    "BackgroundTasks",
    # Errors
    "AdapterError",
    "ConfigurationError",
    "GuardViolation",
    "InitializationError",
    "StoreError",
    "UnexpectedError",
]
