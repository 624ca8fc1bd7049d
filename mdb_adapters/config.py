"""
Configuration management for MDB_ADAPTERS.

Connection settings are resolved per configuration key, so one process can
talk to several databases ("default", "logs", ...). Values come from direct
parameters or environment variables.
"""

import os
from typing import Any

from .constants import (
    APP_NAME,
    DEFAULT_CONFIG_KEY,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    DEFAULT_SOCKET_TIMEOUT_MS,
)
from .exceptions import ConfigurationError


def _env_prefix(key: str) -> str:
    """Environment variable prefix for a configuration key."""
    if key == DEFAULT_CONFIG_KEY:
        return "MONGO"
    return f"MONGO_{key.upper()}"


def is_debug_mode() -> bool:
    """
    Resolve the debug flag from the environment.

    ``MDB_ADAPTERS_DEBUG`` wins when set. Otherwise debug is on for
    development processes (``APP_ENV`` unset or ``development``).
    """
    explicit = os.getenv("MDB_ADAPTERS_DEBUG")
    if explicit is not None:
        return explicit.lower() == "true"
    app_env = os.getenv("APP_ENV", "")
    return app_env in ("", "development")


class AdapterSettings:
    """
    Process-wide adapter behaviour.

    Example:
        settings = AdapterSettings.from_env()
        adapter = DocumentAdapter(pool, User, settings=settings)
    """

    def __init__(self, is_debug: bool = False):
        self.is_debug = is_debug

    @classmethod
    def from_env(cls) -> "AdapterSettings":
        return cls(is_debug=is_debug_mode())

    def __repr__(self) -> str:
        return f"AdapterSettings(is_debug={self.is_debug})"


class MongoConfig:
    """
    Connection settings for one pool configuration key.

    Example:
        # Using environment variables (MONGO_URI, DB_NAME)
        config = MongoConfig.from_env()

        # A second database under the "logs" key
        # (MONGO_LOGS_URI, MONGO_LOGS_DB_NAME)
        logs = MongoConfig.from_env("logs")

        # Or direct parameters
        config = MongoConfig(uri="mongodb://localhost:27017", db_name="app")
    """

    def __init__(
        self,
        uri: str | None = None,
        db_name: str | None = None,
        key: str = DEFAULT_CONFIG_KEY,
        options: dict[str, Any] | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        server_selection_timeout_ms: int | None = None,
        log_level: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            uri: MongoDB connection URI
            db_name: Database name
            key: Pool configuration key these settings belong to
            options: Extra client options; they override the library defaults
            max_pool_size: Maximum connection pool size (defaults to 50)
            min_pool_size: Minimum connection pool size (defaults to 10)
            server_selection_timeout_ms: Server selection timeout in ms
            log_level: Optional level applied to the ``pymongo`` logger
        """
        self.key = key
        self.uri = uri or ""
        self.db_name = db_name or ""
        self.options = dict(options or {})
        self.max_pool_size = max_pool_size or DEFAULT_MAX_POOL_SIZE
        self.min_pool_size = min_pool_size or DEFAULT_MIN_POOL_SIZE
        self.server_selection_timeout_ms = (
            server_selection_timeout_ms or DEFAULT_SERVER_SELECTION_TIMEOUT_MS
        )
        self.log_level = log_level

    @classmethod
    def from_env(cls, key: str = DEFAULT_CONFIG_KEY) -> "MongoConfig":
        """
        Build a configuration from environment variables.

        The "default" key reads ``MONGO_URI`` and ``DB_NAME``; any other key
        reads ``MONGO_<KEY>_URI`` and ``MONGO_<KEY>_DB_NAME``. Pool sizes,
        timeout and log level are shared across keys.
        """
        prefix = _env_prefix(key)
        db_var = "DB_NAME" if key == DEFAULT_CONFIG_KEY else f"{prefix}_DB_NAME"
        return cls(
            uri=os.getenv(f"{prefix}_URI", ""),
            db_name=os.getenv(db_var, ""),
            key=key,
            max_pool_size=int(os.getenv("MONGO_MAX_POOL_SIZE", str(DEFAULT_MAX_POOL_SIZE))),
            min_pool_size=int(os.getenv("MONGO_MIN_POOL_SIZE", str(DEFAULT_MIN_POOL_SIZE))),
            server_selection_timeout_ms=int(
                os.getenv(
                    "MONGO_SERVER_SELECTION_TIMEOUT_MS",
                    str(DEFAULT_SERVER_SELECTION_TIMEOUT_MS),
                )
            ),
            log_level=os.getenv("MONGO_LOG_LEVEL") or None,
        )

    def client_options(self) -> dict[str, Any]:
        """
        Keyword arguments for ``AsyncIOMotorClient``.

        Defaults are laid down first and the configured ``options`` are
        merged over them, so an explicit option always wins.
        """
        defaults: dict[str, Any] = {
            "appname": APP_NAME,
            "connectTimeoutMS": DEFAULT_CONNECT_TIMEOUT_MS,
            "socketTimeoutMS": DEFAULT_SOCKET_TIMEOUT_MS,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
        }
        return {**defaults, **self.options}

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        prefix = _env_prefix(self.key)
        if not self.uri:
            raise ConfigurationError(
                f"MongoDB URI is required for '{self.key}' "
                f"(set {prefix}_URI or pass uri directly)",
                config_key=self.key,
            )

        if not self.db_name:
            raise ConfigurationError(
                f"Database name is required for '{self.key}'",
                config_key=self.key,
            )

        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="max_pool_size",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 0:
            raise ConfigurationError(
                f"min_pool_size must be >= 0, got {self.min_pool_size}",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

    def __repr__(self) -> str:
        return f"MongoConfig(key={self.key!r}, db_name={self.db_name!r})"
