"""
HEMSAEUCC - Configuration tests.
"""

import pytest

from hemsaeucc.config import DEFAULT_CONFIG, Config
from hemsaeucc.errors import ConfigError, ErrorCode


def test_defaults_without_file(temp_dir):
    config = Config(temp_dir / "missing.toml")

    assert config.get("relay", "port") == 8080
    assert config.get("relay", "url") == "http://localhost:8080"
    assert config.get("client", "poll_interval") == 2.0
    assert config.get("client", "keys_dir") == "keys"
    assert config.get("nope", "nothing", "fallback") == "fallback"


def test_file_overrides_defaults(temp_dir):
    path = temp_dir / "config.toml"
    path.write_text('[relay]\nport = 9090\n\n[client]\nkeys_dir = "/tmp/k"\n', encoding="utf-8")

    config = Config(path)

    assert config.get("relay", "port") == 9090
    assert config.get("relay", "host") == "0.0.0.0"
    assert config.get("client", "keys_dir") == "/tmp/k"


def test_env_overrides(temp_dir, monkeypatch):
    monkeypatch.setenv("HEMSAEUCC_RELAY_PORT", "7000")
    monkeypatch.setenv("HEMSAEUCC_CLIENT_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("HEMSAEUCC_LOGGING_FILE_LOGGING", "yes")
    monkeypatch.setenv("HEMSAEUCC_RELAY_TIMEOUT", "soon")

    config = Config(temp_dir / "config.toml")

    assert config.get("relay", "port") == 7000
    assert config.get("client", "poll_interval") == 0.5
    assert config.get("logging", "file_logging") is True
    assert config.get("relay", "timeout") == DEFAULT_CONFIG["relay"]["timeout"]


def test_invalid_toml_raises(temp_dir):
    path = temp_dir / "config.toml"
    path.write_text("[relay\nport = ", encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        Config(path)
    assert exc_info.value.code == ErrorCode.E704_CONFIG_PARSE_ERROR


def test_save_and_reload(temp_dir):
    path = temp_dir / "nested" / "config.toml"
    config = Config(path)
    config.set("relay", "url", "http://relay.example:8080")
    config.set("logging", "file_logging", True)
    config.save()

    reloaded = Config(path)
    assert reloaded.get("relay", "url") == "http://relay.example:8080"
    assert reloaded.get("logging", "file_logging") is True


def test_create_example(temp_dir):
    path = temp_dir / "example.toml"
    Config.create_example(path)

    assert Config(path).to_dict() == DEFAULT_CONFIG


def test_defaults_are_not_shared(temp_dir):
    config = Config(temp_dir / "a.toml")
    config.set("relay", "port", 1)
    assert DEFAULT_CONFIG["relay"]["port"] == 8080


def test_log_file_location(temp_dir):
    config = Config(temp_dir / "config.toml")
    assert config.get_log_file() is None

    config.set("logging", "file_logging", True)
    assert config.get_log_file().name == "hemsaeucc.log"

    config.set("logging", "log_file", str(temp_dir / "relay.log"))
    assert config.get_log_file() == temp_dir / "relay.log"
