import pytest
from pydantic import ValidationError

from smart_pos.core.config import EnvironmentMode, Settings


def test_defaults(monkeypatch):
    for key in ("ENV_MODE", "DATABASE_URL", "EXPORT_LEDGER", "MOCK_PAYMENT_LATENCY"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(_env_file=None)

    assert settings.env_mode == EnvironmentMode.DEVELOPMENT
    assert settings.is_development
    assert not settings.use_real_services
    assert settings.database_url == "sqlite+aiosqlite:///:memory:"
    assert settings.api_port == 3000
    assert settings.export_ledger is True
    assert settings.socket_rooms_list == ["kitchen", "waitress", "cashier", "customer"]


def test_comma_separated_lists(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test ,")
    monkeypatch.setenv("SOCKET_ROOMS", "kitchen,bar")

    settings = Settings(_env_file=None)

    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
    assert settings.socket_rooms_list == ["kitchen", "bar"]


def test_env_mode_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "PRODUCTION")
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.is_production
    assert settings.use_real_services
    assert "STRIPE_SECRET_KEY" in settings.validate_production_config()


def test_invalid_env_mode(monkeypatch):
    monkeypatch.setenv("ENV_MODE", "qa")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_failure_rate_is_a_probability(monkeypatch):
    monkeypatch.setenv("MOCK_PAYMENT_FAILURE_RATE", "1.5")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
