"""
Keyed MongoDB connection pool.

One ``ConnectionPool`` is built at application start and handed to every
adapter. It opens at most one motor client per configuration key and hands
out the same database handle on every later ``connect`` for that key.

Usage:
    pool = ConnectionPool({"default": MongoConfig.from_env()})
    db = await pool.connect()          # opens and pings
    db = await pool.connect("default") # cached, no reconnect
    await pool.close()
"""

import asyncio
import logging
import time
from collections.abc import Mapping

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import (
    ConfigurationError as PyMongoConfigurationError,
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..config import MongoConfig
from ..constants import DEFAULT_CONFIG_KEY
from ..exceptions import InitializationError
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ConnectionPool:
    """
    Owns a cache of live database handles keyed by configuration key.

    Keys without an explicit ``MongoConfig`` are resolved from the
    environment through ``MongoConfig.from_env(key)``.
    """

    def __init__(self, configs: Mapping[str, MongoConfig] | None = None) -> None:
        """
        Initialize the pool. No connection is opened until ``connect``.

        Args:
            configs: Optional mapping of configuration key to settings
        """
        self._configs: dict[str, MongoConfig] = dict(configs or {})
        self._clients: dict[str, AsyncIOMotorClient] = {}
        self._databases: dict[str, AsyncIOMotorDatabase] = {}
        self._lock = asyncio.Lock()

    def get_config(self, key: str) -> MongoConfig:
        config = self._configs.get(key)
        if config is None:
            config = MongoConfig.from_env(key)
            self._configs[key] = config
        return config

    def is_connected(self, key: str = DEFAULT_CONFIG_KEY) -> bool:
        return key in self._databases

    async def connect(self, key: str | None = None) -> AsyncIOMotorDatabase:
        """
        Return the database handle for ``key``, connecting on first use.

        Args:
            key: Configuration key (defaults to "default")

        Returns:
            AsyncIOMotorDatabase instance

        Raises:
            ConfigurationError: If the key has no usable configuration
            InitializationError: If the server cannot be reached
        """
        key = key or DEFAULT_CONFIG_KEY

        database = self._databases.get(key)
        if database is not None:
            return database

        async with self._lock:
            # Another coroutine may have connected while we waited
            database = self._databases.get(key)
            if database is not None:
                return database

            config = self.get_config(key)
            config.validate()
            return await self._open(config)

    async def _open(self, config: MongoConfig) -> AsyncIOMotorDatabase:
        start_time = time.time()
        contextual_logger.info(
            "Connecting to MongoDB",
            extra={
                "config_key": config.key,
                "db_name": config.db_name,
                "max_pool_size": config.max_pool_size,
                "min_pool_size": config.min_pool_size,
            },
        )

        client = None
        try:
            client = AsyncIOMotorClient(config.uri, **config.client_options())
            await client.admin.command("ping")
        except (
            ConnectionFailure,
            ServerSelectionTimeoutError,
            OperationFailure,
            PyMongoConfigurationError,
        ) as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("pool.connect", duration_ms, success=False)
            contextual_logger.critical(
                "MongoDB connection failed",
                extra={
                    "config_key": config.key,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
                exc_info=True,
            )
            if client is not None:
                client.close()
            raise InitializationError(
                f"Failed to connect to MongoDB: {e}",
                config_key=config.key,
                db_name=config.db_name,
                context={"error_type": type(e).__name__},
            ) from e

        if config.log_level:
            logging.getLogger("pymongo").setLevel(config.log_level.upper())

        database = client[config.db_name]
        self._clients[config.key] = client
        self._databases[config.key] = database

        duration_ms = (time.time() - start_time) * 1000
        record_operation("pool.connect", duration_ms, success=True)
        contextual_logger.info(
            "Connected to MongoDB",
            extra={
                "config_key": config.key,
                "db_name": config.db_name,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return database

    async def close(self) -> None:
        """
        Close every cached client and empty the cache.

        Idempotent: safe to call multiple times.
        """
        async with self._lock:
            for key, client in self._clients.items():
                client.close()
                logger.info(f"MongoDB client '{key}' closed")
            self._clients.clear()
            self._databases.clear()

    async def __aenter__(self) -> "ConnectionPool":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
