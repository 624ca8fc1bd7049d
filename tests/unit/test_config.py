"""
Unit tests for configuration management.
"""

import pytest

from mdb_adapters.config import AdapterSettings, MongoConfig, is_debug_mode
from mdb_adapters.exceptions import ConfigurationError


class TestDebugMode:
    def test_development_by_default(self):
        assert is_debug_mode() is True

    @pytest.mark.parametrize("app_env", ["production", "staging"])
    def test_non_development_env(self, monkeypatch, app_env):
        monkeypatch.setenv("APP_ENV", app_env)
        assert is_debug_mode() is False

    def test_explicit_flag_wins(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("MDB_ADAPTERS_DEBUG", "true")
        assert is_debug_mode() is True

        monkeypatch.setenv("APP_ENV", "development")
        monkeypatch.setenv("MDB_ADAPTERS_DEBUG", "false")
        assert is_debug_mode() is False

    def test_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        assert AdapterSettings.from_env().is_debug is False


class TestMongoConfigFromEnv:
    def test_default_key(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("DB_NAME", "app")
        monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "20")
        monkeypatch.setenv("MONGO_LOG_LEVEL", "warning")

        config = MongoConfig.from_env()

        assert config.key == "default"
        assert config.uri == "mongodb://db:27017"
        assert config.db_name == "app"
        assert config.max_pool_size == 20
        assert config.min_pool_size == 10
        assert config.log_level == "warning"

    def test_named_key(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("MONGO_LOGS_URI", "mongodb://logs:27017")
        monkeypatch.setenv("MONGO_LOGS_DB_NAME", "logs")

        config = MongoConfig.from_env("logs")

        assert config.key == "logs"
        assert config.uri == "mongodb://logs:27017"
        assert config.db_name == "logs"

    def test_unset_environment(self):
        config = MongoConfig.from_env()
        assert config.uri == ""
        assert config.log_level is None


class TestClientOptions:
    def test_defaults(self):
        options = MongoConfig(uri="mongodb://db", db_name="app").client_options()

        assert options == {
            "appname": "MDB_ADAPTERS",
            "connectTimeoutMS": 30000,
            "socketTimeoutMS": 30000,
            "serverSelectionTimeoutMS": 5000,
            "maxPoolSize": 50,
            "minPoolSize": 10,
        }

    def test_explicit_options_override_defaults(self):
        config = MongoConfig(
            uri="mongodb://db",
            db_name="app",
            options={"maxPoolSize": 5, "minPoolSize": 1, "retryWrites": False},
        )

        options = config.client_options()

        assert options["maxPoolSize"] == 5
        assert options["minPoolSize"] == 1
        assert options["retryWrites"] is False
        assert options["appname"] == "MDB_ADAPTERS"


class TestValidate:
    def test_valid(self):
        MongoConfig(uri="mongodb://db", db_name="app").validate()

    def test_missing_uri_names_variable(self):
        with pytest.raises(ConfigurationError, match="MONGO_LOGS_URI") as exc_info:
            MongoConfig(db_name="app", key="logs").validate()
        assert exc_info.value.config_key == "logs"

    def test_missing_db_name(self):
        with pytest.raises(ConfigurationError, match="Database name"):
            MongoConfig(uri="mongodb://db").validate()

    @pytest.mark.parametrize(
        "kwargs, config_key",
        [
            ({"max_pool_size": -1}, "max_pool_size"),
            ({"min_pool_size": -1}, "min_pool_size"),
            ({"max_pool_size": 5, "min_pool_size": 6}, "min_pool_size"),
        ],
    )
    def test_invalid_pool_sizes(self, kwargs, config_key):
        config = MongoConfig(uri="mongodb://db", db_name="app", **kwargs)

        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()

        assert exc_info.value.config_key == config_key
