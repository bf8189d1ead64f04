import pytest

from courier.config.provider import EnvConfigProvider
from courier.modules.config import ConfigModule


def test_defaults(monkeypatch):
    for var in ("API_PORT", "PORT", "CREDENTIAL_BACKEND", "RECONNECT_DELAY", "BRIDGE_URL"):
        monkeypatch.delenv(var, raising=False)

    config = ConfigModule()

    assert config.get("port") == 8002
    assert config.get("credential_backend") == "file"
    assert config.get("credentials_dir") == "auth_info"
    assert config.get("reconnect_delay") == 3.0
    assert config.get("max_reconnect_attempts") == 0
    assert config.get("connect_timeout") == 10.0
    assert config.get("bridge_url") == "http://localhost:3000"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("CREDENTIAL_BACKEND", "Redis")
    monkeypatch.setenv("REDIS_PORT", "tcp://10.0.0.1:6380")
    monkeypatch.setenv("BRIDGE_URL", "http://bridge:3000/")
    monkeypatch.delenv("API_PORT", raising=False)

    config = ConfigModule()

    assert config.get("port") == 9000
    assert config.get("credential_backend") == "redis"
    assert config.get("redis_port") == 6380
    assert config.get("bridge_url") == "http://bridge:3000"


@pytest.mark.parametrize(
    "var, value",
    [
        ("CREDENTIAL_BACKEND", "sqlite"),
        ("RECONNECT_DELAY", "0"),
        ("CONNECT_TIMEOUT", "-1"),
        ("MAX_RECONNECT_ATTEMPTS", "-2"),
    ],
)
def test_invalid_values_rejected(monkeypatch, var, value):
    monkeypatch.setenv(var, value)

    with pytest.raises(ValueError):
        ConfigModule()


def test_schema_lists_required_keys():
    schema = ConfigModule.get_config_schema()

    assert "bridge_url" in schema["required"]
    assert schema["optional"]["credentials_dir"]["default"] == "auth_info"


def test_auth_config_open_without_keys(monkeypatch):
    monkeypatch.delenv("API_KEYS", raising=False)

    assert EnvConfigProvider().get_auth_config().require_auth is False


def test_api_config(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("MAX_BODY_BYTES", "1024")

    api_config = EnvConfigProvider().get_api_config()

    assert api_config.cors_origins == ["https://a.example", "https://b.example"]
    assert api_config.max_body_bytes == 1024
