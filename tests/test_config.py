"""Tests for configuration loading."""

import os
import tempfile

import pytest
import yaml

from fresherflow.config import (
    DEFAULT_API_PREFIXES,
    DEFAULT_AUTH_SECRET,
    AppConfig,
    load_config,
    normalize_database_url,
    validate_config,
)


@pytest.fixture
def config_file():
    """Create a temporary config file."""
    config_data = {
        "api": {"base_url": "https://api.example.com/", "access_token": "tok"},
        "offline": {"max_retry_attempts": 5, "store_path": "tmp/offline.db"},
        "service_worker": {"cache_version": "v42"},
        "server": {"database_url": "postgres://u:p@db/ff", "auth_secret": "s3cret"},
    }

    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(config_data, f)
        path = f.name

    yield path
    os.unlink(path)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ("FRESHERFLOW_API_URL", "FRESHERFLOW_ACCESS_TOKEN", "FRESHERFLOW_SW_VERSION",
                 "DATABASE_URL", "FRESHERFLOW_AUTH_SECRET"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_loads_valid_config(self, config_file):
        config = load_config(config_file)
        assert config.api.base_url == "https://api.example.com"
        assert config.api.access_token == "tok"
        assert config.offline.max_retry_attempts == 5
        assert config.service_worker.cache_version == "v42"
        assert config.server.auth_secret == "s3cret"

    def test_postgres_url_rewritten(self, config_file):
        config = load_config(config_file)
        assert config.server.database_url == "postgresql://u:p@db/ff"

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError):
            load_config("nonexistent.yaml")

    def test_defaults_applied(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump({}, f)
            path = f.name

        try:
            config = load_config(path)
            assert config.offline.max_retry_attempts == 10
            assert config.offline.feed_cache_max_items == 250
            assert config.offline.recent_viewed_max_items == 12
            assert config.service_worker.cache_version == "v1"
            assert config.service_worker.api_prefixes == DEFAULT_API_PREFIXES
            assert config.server.auth_secret == DEFAULT_AUTH_SECRET
        finally:
            os.unlink(path)

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("FRESHERFLOW_API_URL", "https://staging.example.com")
        monkeypatch.setenv("FRESHERFLOW_SW_VERSION", "build-7")
        monkeypatch.setenv("FRESHERFLOW_AUTH_SECRET", "from-env")
        config = load_config(config_file)
        assert config.api.base_url == "https://staging.example.com"
        assert config.service_worker.cache_version == "build-7"
        assert config.server.auth_secret == "from-env"


class TestNormalizeDatabaseUrl:
    def test_leaves_other_schemes_alone(self):
        assert normalize_database_url("sqlite:///data/x.db") == "sqlite:///data/x.db"
        assert normalize_database_url("postgresql://h/db") == "postgresql://h/db"


class TestValidateConfig:
    def test_no_base_url_warns(self):
        warnings = validate_config(AppConfig())
        assert any("api base url" in w.lower() for w in warnings)

    def test_no_token_warns(self):
        warnings = validate_config(AppConfig())
        assert any("access token" in w.lower() for w in warnings)

    def test_default_secret_warns(self):
        warnings = validate_config(AppConfig())
        assert any("auth secret" in w.lower() for w in warnings)

    def test_bad_limits_warn(self):
        config = AppConfig()
        config.offline.max_retry_attempts = 0
        config.offline.feed_cache_max_items = 0
        warnings = validate_config(config)
        assert any("max_retry_attempts" in w for w in warnings)
        assert any("feed_cache_max_items" in w for w in warnings)

    def test_valid_config_no_critical_warnings(self, config_file):
        config = load_config(config_file)
        warnings = validate_config(config)
        assert not any("api base url" in w.lower() for w in warnings)
        assert not any("auth secret" in w.lower() for w in warnings)
