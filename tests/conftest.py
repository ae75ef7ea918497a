"""
Global pytest configuration and fixtures for mcbridge testing.
"""
import sys
from pathlib import Path

import pytest

# Make src/ and the tests package importable without installation
ROOT_DIR = Path(__file__).parent.parent
for path in (ROOT_DIR / "src", ROOT_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from mcbridge.bridge.pipeline import FramePipeline
from mcbridge.bridge.relay import RelaySink
from mcbridge.bridge.session import SocketSessionManager
from tests.mocks.bridge_mocks import MockChatChannel, MockGameConnection


CHANNEL_ID = 123456789


@pytest.fixture
def test_config():
    """Provide a complete, valid bridge configuration."""
    return {
        "app": {"name": "mcbridge", "version": "1.0.0", "debug": False},
        "websocket": {
            "host": "127.0.0.1",
            "port": 0,
            "subscribe_delay": 0,
            "probe_delay": 0,
            "probe_command": "list",
            "events": ["PlayerMessage", "PlayerJoin", "PlayerLeave"],
        },
        "reconnect": {"max_attempts": 3, "cooldown": 0, "retry_delay": 0},
        "discord": {"token": "test-token", "channel_id": str(CHANNEL_ID)},
        "relay": {"system_prefix": "🔧 "},
        "forwarding": {"reserved_senders": ["Server", "System"]},
        "logging": {"level": "DEBUG", "file": None, "console": False},
    }


@pytest.fixture
def chat_channel():
    """Mock chat platform client."""
    return MockChatChannel(channel_id=CHANNEL_ID)


@pytest.fixture
def relay(chat_channel):
    """Relay sink wired to the mock chat channel."""
    return RelaySink(chat_channel, CHANNEL_ID)


@pytest.fixture
def pipeline(relay):
    """Default frame pipeline."""
    return FramePipeline(relay)


@pytest.fixture
def session(test_config, pipeline, relay):
    """Session manager that never binds unless a test starts it."""
    return SocketSessionManager(
        test_config["websocket"],
        pipeline,
        relay,
        reconnect_config=test_config["reconnect"],
    )


@pytest.fixture
def game_connection():
    """Mock game connection."""
    return MockGameConnection("conn0001")
