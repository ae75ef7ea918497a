"""
Unit tests for ConfigurationManager

Tests source priority, environment variable mapping, .env loading and
startup validation.
"""

import pytest
import yaml

from mcbridge.core.config import ConfigurationManager, DEFAULT_EVENTS
from mcbridge.core.exceptions import ConfigurationError


ENV_VARS = [
    "WEBSOCKET_PORT",
    "WEBSOCKET_HOST",
    "DISCORD_TOKEN",
    "DISCORD_CHANNEL_ID",
    "DEBUG_MODE",
    "LOG_LEVEL",
    "MAX_RECONNECT_ATTEMPTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so values loaded from .env files are undone too
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "secret-token")
    monkeypatch.setenv("DISCORD_CHANNEL_ID", "123456789012345678")


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


class TestDefaults:

    def test_defaults(self, tmp_path, credentials):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('websocket.port') == 25525
        assert manager.get('websocket.host') == "0.0.0.0"
        assert manager.get('websocket.events') == DEFAULT_EVENTS
        assert manager.get('reconnect.max_attempts') == 5
        assert manager.get('reconnect.cooldown') == 2.0
        assert manager.get('reconnect.retry_delay') == 5.0
        assert manager.get('relay.system_prefix') == "🔧 "
        assert manager.is_debug() is False

    def test_get_default_for_missing_key(self, tmp_path, credentials):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('no.such.key', 'fallback') == 'fallback'

    def test_get_section(self, tmp_path, credentials):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get_section('reconnect') == {"max_attempts": 5, "cooldown": 2.0, "retry_delay": 5.0}


class TestEnvironment:

    def test_env_mappings(self, tmp_path, credentials, monkeypatch):
        monkeypatch.setenv("WEBSOCKET_PORT", "3000")
        monkeypatch.setenv("DEBUG_MODE", "true")
        monkeypatch.setenv("MAX_RECONNECT_ATTEMPTS", "2")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('websocket.port') == 3000
        assert manager.is_debug() is True
        assert manager.get('reconnect.max_attempts') == 2
        assert manager.get('logging.level') == "WARNING"
        assert manager.get('discord.token') == "secret-token"

    def test_channel_id_stays_string(self, tmp_path, credentials):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('discord.channel_id') == "123456789012345678"
        assert manager.get_discord_channel_id() == 123456789012345678

    def test_numeric_token_stays_string(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "12345")
        monkeypatch.setenv("DISCORD_CHANNEL_ID", "1")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('discord.token') == "12345"

    def test_env_overrides_config_file(self, tmp_path, credentials, monkeypatch):
        write_yaml(tmp_path / "config.yaml", {"websocket": {"port": 4000}})
        monkeypatch.setenv("WEBSOCKET_PORT", "5000")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('websocket.port') == 5000

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DISCORD_TOKEN=from-dotenv\nDISCORD_CHANNEL_ID=42\n", encoding="utf-8")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=str(env_file))
        manager.load_config()

        assert manager.get('discord.token') == "from-dotenv"
        assert manager.get_discord_channel_id() == 42

    def test_process_env_wins_over_dotenv(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("DISCORD_TOKEN=from-dotenv\nDISCORD_CHANNEL_ID=42\n", encoding="utf-8")
        monkeypatch.setenv("DISCORD_TOKEN", "from-process")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=str(env_file))
        manager.load_config()

        assert manager.get('discord.token') == "from-process"


class TestConfigFiles:

    def test_local_overrides_default_file(self, tmp_path, credentials):
        write_yaml(tmp_path / "default.yaml", {"websocket": {"port": 1111, "probe_command": "list"}})
        write_yaml(tmp_path / "config.yaml", {"websocket": {"port": 2222}})

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('websocket.port') == 2222
        assert manager.get('websocket.probe_command') == "list"
        assert manager.get('websocket.subscribe_delay') == 1.0

    def test_broken_yaml_is_skipped(self, tmp_path, credentials):
        (tmp_path / "config.yaml").write_text("websocket: [unclosed", encoding="utf-8")

        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        assert manager.get('websocket.port') == 25525

    def test_set_value(self, tmp_path, credentials):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)
        manager.load_config()

        manager.set('websocket.port', 9999)

        assert manager.get('websocket.port') == 9999


class TestValidation:

    def test_missing_token(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_CHANNEL_ID", "1")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="DISCORD_TOKEN"):
            manager.load_config()

    def test_missing_channel_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "token")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="DISCORD_CHANNEL_ID"):
            manager.load_config()

    def test_non_numeric_channel_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "token")
        monkeypatch.setenv("DISCORD_CHANNEL_ID", "general")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="channel id"):
            manager.load_config()

    def test_invalid_port(self, tmp_path, credentials, monkeypatch):
        monkeypatch.setenv("WEBSOCKET_PORT", "70000")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="port"):
            manager.load_config()

    def test_non_numeric_port(self, tmp_path, credentials, monkeypatch):
        monkeypatch.setenv("WEBSOCKET_PORT", "abc")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError):
            manager.load_config()

    def test_negative_delay(self, tmp_path, credentials):
        write_yaml(tmp_path / "config.yaml", {"reconnect": {"cooldown": -1}})
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="reconnect.cooldown"):
            manager.load_config()

    def test_invalid_log_level(self, tmp_path, credentials, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError, match="log level"):
            manager.load_config()

    def test_all_errors_reported_together(self, tmp_path):
        manager = ConfigurationManager(config_dir=str(tmp_path), env_file=None)

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_config()

        assert "DISCORD_TOKEN" in str(exc_info.value)
        assert "DISCORD_CHANNEL_ID" in str(exc_info.value)
