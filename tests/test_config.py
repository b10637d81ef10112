import pytest

import config
from config import Config, ConfigurationError, DatabaseConfig, RestaurantConfig


ENV_KEYS = (
    "DATABASE_BACKEND", "SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_TIMEOUT",
    "VAT_RATE", "CURRENCY", "LOG_LEVEL", "ENABLE_DAILY_SERIAL", "LOCAL_STORAGE_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_memory_backend_needs_no_credentials(monkeypatch):
    monkeypatch.setenv("DATABASE_BACKEND", "memory")
    database = DatabaseConfig()

    assert database.backend == "memory"
    assert database.url is None


def test_supabase_backend_requires_credentials(monkeypatch):
    monkeypatch.setenv("DATABASE_BACKEND", "supabase")
    with pytest.raises(ConfigurationError):
        DatabaseConfig()


def test_supabase_url_must_be_https(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "http://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "key")
    with pytest.raises(ConfigurationError):
        DatabaseConfig()


def test_restaurant_defaults():
    restaurant = RestaurantConfig()
    assert restaurant.vat_rate == 0.15
    assert restaurant.currency == "SAR"


def test_invalid_vat_rate(monkeypatch):
    monkeypatch.setenv("VAT_RATE", "1.5")
    with pytest.raises(ConfigurationError):
        RestaurantConfig()


def test_full_config_and_safe_summary(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_BACKEND", "memory")
    monkeypatch.setenv("ENABLE_DAILY_SERIAL", "false")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path))

    loaded = Config()
    summary = loaded.get_safe_summary()

    assert summary["database_backend"] == "memory"
    assert summary["features"]["daily_serial"] is False
    assert loaded.validate_runtime_dependencies() == []


def test_reload_config(monkeypatch):
    monkeypatch.setenv("DATABASE_BACKEND", "memory")
    monkeypatch.setenv("CURRENCY", "usd")
    config.reload_config()

    assert config.get_config().restaurant.currency == "USD"
    assert config.is_feature_enabled("customer_tracking") is True
