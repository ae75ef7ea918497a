"""
Configuration Management for mcbridge

Configuration is layered, lowest priority first:

1. built-in defaults (``DEFAULTS``)
2. ``config/default.yaml``
3. ``config/config.yaml``
4. environment variables, after a ``.env`` file has been loaded

The merged result is validated before any component starts; a missing
Discord token or channel id is a fatal ConfigurationError.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError


DEFAULT_EVENTS = [
    "PlayerMessage",
    "PlayerChat",
    "ChatMessage",
    "PlayerJoin",
    "PlayerLeave",
    "PlayerConnect",
    "PlayerDisconnect",
]

DEFAULTS: Dict[str, Any] = {
    "app": {
        "name": "mcbridge",
        "version": "1.0.0",
        "debug": False
    },
    "websocket": {
        "host": "0.0.0.0",
        "port": 25525,
        "subscribe_delay": 1.0,
        "probe_delay": 2.0,
        "probe_command": "list",
        "events": DEFAULT_EVENTS
    },
    "reconnect": {
        "max_attempts": 5,
        "cooldown": 2.0,
        "retry_delay": 5.0
    },
    "discord": {
        "token": None,
        "channel_id": None
    },
    "relay": {
        "system_prefix": "🔧 "
    },
    "forwarding": {
        "reserved_senders": ["Server", "System"]
    },
    "logging": {
        "level": "INFO",
        "file": "logs/mcbridge.log",
        "max_size": "10MB",
        "backup_count": 5,
        "console": True,
        "console_level": "INFO"
    }
}

ENV_MAPPINGS = {
    "WEBSOCKET_PORT": "websocket.port",
    "WEBSOCKET_HOST": "websocket.host",
    "DISCORD_TOKEN": "discord.token",
    "DISCORD_CHANNEL_ID": "discord.channel_id",
    "DEBUG_MODE": "app.debug",
    "LOG_LEVEL": "logging.level",
    "MAX_RECONNECT_ATTEMPTS": "reconnect.max_attempts",
}

# Never coerced: a numeric-looking token or a snowflake id must stay text
RAW_STRING_KEYS = frozenset({"discord.token", "discord.channel_id"})

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DELAY_KEYS = (
    "websocket.subscribe_delay",
    "websocket.probe_delay",
    "reconnect.cooldown",
    "reconnect.retry_delay",
)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested sections"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def coerce_env_value(value: str) -> Any:
    """'true'/'false' become booleans and digit strings become ints"""
    lowered = value.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    if value.isdigit():
        return int(value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ConfigSource:
    """One configuration layer"""
    name: str
    priority: int
    loader: Callable[[], Dict[str, Any]]
    path: Optional[str] = None


class ConfigurationManager:
    """
    Loads, merges and validates the bridge configuration.

    Args:
        config_dir: directory holding default.yaml and config.yaml
        env_file: .env file loaded before environment variables are read;
            None skips it. Variables already set in the process win.
    """

    def __init__(self, config_dir: str = "config", env_file: Optional[str] = ".env"):
        self.config_dir = Path(config_dir)
        self.env_file = env_file
        self.config: Dict[str, Any] = {}
        self.logger = logging.getLogger(__name__)
        self.sources: List[ConfigSource] = self._build_sources()

    def _build_sources(self) -> List[ConfigSource]:
        default_file = self.config_dir / "default.yaml"
        local_file = self.config_dir / "config.yaml"

        return [
            ConfigSource("defaults", 1, lambda: copy.deepcopy(DEFAULTS)),
            ConfigSource("default_config", 2, lambda: self._read_file(default_file), str(default_file)),
            ConfigSource("local_config", 3, lambda: self._read_file(local_file), str(local_file)),
            ConfigSource("environment", 4, self._read_environment),
        ]

    def load_config(self) -> None:
        """Merge every source and validate the result

        Raises:
            ConfigurationError: one or more settings are missing or invalid
        """
        if self.env_file:
            load_dotenv(self.env_file, override=False)

        merged: Dict[str, Any] = {}
        for source in sorted(self.sources, key=lambda s: s.priority):
            try:
                layer = source.loader()
            except (OSError, ValueError, yaml.YAMLError) as e:
                self.logger.warning(f"Skipping config source {source.name}: {e}")
                continue

            if layer:
                merged = deep_merge(merged, layer)
                self.logger.debug(f"Applied config source {source.name}")

        self.config = merged
        self._validate()
        self.logger.info(
            f"Configuration loaded (port {self.get('websocket.port')}, "
            f"channel {self.get('discord.channel_id')})"
        )

    def _read_environment(self) -> Dict[str, Any]:
        layer: Dict[str, Any] = {}
        for env_var, key in ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if not value:
                continue
            self._assign(layer, key, value if key in RAW_STRING_KEYS else coerce_env_value(value))
        return layer

    def _read_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}

        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                return yaml.safe_load(f) or {}
            if path.suffix.lower() == '.json':
                return json.load(f)

        self.logger.warning(f"Ignoring config file with unknown format: {path}")
        return {}

    @staticmethod
    def _assign(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
        *parents, leaf = dotted_key.split('.')
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value

    def _validate(self) -> None:
        errors = (
            self._check_discord()
            + self._check_websocket()
            + self._check_reconnect()
            + self._check_logging()
        )
        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def _check_discord(self) -> List[str]:
        errors = []
        if not self.get('discord.token'):
            errors.append("DISCORD_TOKEN (discord.token) is not set")

        channel_id = str(self.get('discord.channel_id') or '').strip()
        if not channel_id:
            errors.append("DISCORD_CHANNEL_ID (discord.channel_id) is not set")
        elif not channel_id.isdigit():
            errors.append(f"Invalid Discord channel id: {channel_id}")
        return errors

    def _check_websocket(self) -> List[str]:
        port = self.get('websocket.port')
        # 0 binds an ephemeral port
        if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
            return [f"Invalid WebSocket port: {port}"]
        return []

    def _check_reconnect(self) -> List[str]:
        errors = []
        for key in DELAY_KEYS:
            value = self.get(key)
            if not _is_number(value) or value < 0:
                errors.append(f"Invalid delay for {key}: {value}")

        max_attempts = self.get('reconnect.max_attempts')
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 0:
            errors.append(f"Invalid reconnect.max_attempts: {max_attempts}")
        return errors

    def _check_logging(self) -> List[str]:
        level = str(self.get('logging.level', 'INFO'))
        if level.upper() not in LOG_LEVELS:
            return [f"Invalid log level: {level}"]
        return []

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as 'websocket.port'"""
        node: Any = self.config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        self._assign(self.config, key, value)

    def get_section(self, section: str) -> Dict[str, Any]:
        return self.get(section, {})

    def is_debug(self) -> bool:
        """Raw-frame debug logging (DEBUG_MODE)"""
        return bool(self.get('app.debug', False))

    def get_discord_channel_id(self) -> int:
        return int(str(self.get('discord.channel_id')).strip())
