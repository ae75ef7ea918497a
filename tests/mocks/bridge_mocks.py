"""
Mock objects for the external collaborators of the bridge.
"""
import asyncio
from typing import Any, Dict, List, Optional

from mcbridge.bridge.chat_channel import ChatChannel


class MockChannelHandle:
    """Stand-in for a resolved chat channel"""

    def __init__(self, channel_id: int):
        self.id = channel_id


class MockChatChannel(ChatChannel):
    """ChatChannel that records what would have been sent."""

    def __init__(self, channel_id: int = 123456789):
        super().__init__()
        self.channel_id = channel_id
        self.sent: List[str] = []
        self.credential: Optional[str] = None
        self.closed = False
        self.missing_channel = False
        self.send_error: Optional[BaseException] = None

    async def connect(self, credential: str) -> None:
        self.credential = credential
        self._emit_ready("bridge-bot#0001")

    async def resolve_channel(self, channel_id: int) -> Optional[Any]:
        if self.missing_channel or channel_id != self.channel_id:
            return None
        return MockChannelHandle(channel_id)

    async def send(self, channel: Any, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True


class MockGameConnection:
    """Stand-in for GameConnection; records sends and close signals."""

    def __init__(self, connection_id: str = "conn0001"):
        self.connection_id = connection_id
        self.remote_address = ("127.0.0.1", 50000)
        self.replaced = False
        self.open = True
        self.sent: List[Dict[str, Any]] = []
        self.close_calls: List[tuple] = []
        self.terminated = False
        self.log = _NullLog()

    @property
    def is_open(self) -> bool:
        return self.open

    @property
    def close_code(self) -> Optional[int]:
        return None

    @property
    def close_reason(self) -> Optional[str]:
        return None

    async def send_json(self, payload: Dict[str, Any]) -> None:
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        self.open = False

    def terminate(self) -> None:
        self.terminated = True
        self.open = False

    def purposes(self) -> List[str]:
        return [payload["header"]["messagePurpose"] for payload in self.sent]


class _NullLog:
    """Accepts structlog-style calls and drops them"""

    def __getattr__(self, name):
        def _log(*args, **kwargs):
            return None
        return _log
