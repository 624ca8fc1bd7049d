"""
Constants for MDB_ADAPTERS.

Shared defaults for connections, identity fields and the proximity
pipeline.
"""

from typing import Final

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_CONFIG_KEY: Final[str] = "default"
"""Pool configuration key used when an adapter does not name one."""

DEFAULT_CONNECT_TIMEOUT_MS: Final[int] = 30000
"""Default socket connect timeout (milliseconds)."""

DEFAULT_SOCKET_TIMEOUT_MS: Final[int] = 30000
"""Default socket read/write timeout (milliseconds)."""

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

APP_NAME: Final[str] = "MDB_ADAPTERS"
"""Application name reported to the server."""

# ============================================================================
# DOCUMENT CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""MongoDB primary identifier field."""

ID_ALIASES: Final[tuple[str, ...]] = ("_id", "id")
"""Form keys recognised as the document identifier."""

SET_ON_INSERT: Final[str] = "$setOnInsert"
"""Upsert operator whose sub-document doubles as the match condition."""

DEFAULT_LOG_NAMESPACE: Final[str] = "mongo"
"""Logger namespace used by adapters."""

# ============================================================================
# GEO CONSTANTS
# ============================================================================

GEO2DSPHERE: Final[str] = "2dsphere"
"""Index type for GeoJSON proximity queries."""

DEFAULT_DISTANCE_FIELD: Final[str] = "distance"
"""Computed field holding the distance from the query point."""

DEFAULT_LOCATION_FIELD: Final[str] = "location"
"""Document field holding the GeoJSON location."""

DEFAULT_STATUS_FIELD: Final[str] = "status"
"""Secondary sort field of the proximity pipeline."""

GROUP_ROOT_FIELD: Final[str] = "activity"
"""Field carrying the kept document of each dedup group."""
