"""
Chat Channel capability for mcbridge

ChatChannel is the interface the bridge needs from a chat platform:
log in, resolve a destination channel, send text, and report readiness
and errors. DiscordChatChannel implements it with discord.py.
"""

import asyncio
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

import discord


ReadyCallback = Callable[[str], None]
ErrorCallback = Callable[[BaseException], None]


class ChatChannel(ABC):
    """Abstract chat platform client"""

    def __init__(self):
        self._ready_callbacks: List[ReadyCallback] = []
        self._error_callbacks: List[ErrorCallback] = []

    @abstractmethod
    async def connect(self, credential: str) -> None:
        """Log in and start the client in the background"""
        pass

    @abstractmethod
    async def resolve_channel(self, channel_id: int) -> Optional[Any]:
        """Return a sendable channel handle, or None if it cannot be found"""
        pass

    @abstractmethod
    async def send(self, channel: Any, text: str) -> None:
        """Send text to a resolved channel handle"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the client"""
        pass

    def on_ready(self, callback: ReadyCallback) -> None:
        self._ready_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def _emit_ready(self, identity: str) -> None:
        for callback in self._ready_callbacks:
            callback(identity)

    def _emit_error(self, error: BaseException) -> None:
        for callback in self._error_callbacks:
            callback(error)


class DiscordChatChannel(ChatChannel):
    """
    ChatChannel backed by a discord.py client.

    connect() performs the login synchronously so a bad token fails startup,
    then runs the gateway connection as a background task.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__()
        self.logger = logger or logging.getLogger(__name__)

        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True

        self._client = discord.Client(intents=intents)
        self._gateway_task: Optional[asyncio.Task] = None
        self._register_events()

    def _register_events(self):
        client = self._client

        async def on_ready():
            identity = str(client.user)
            self.logger.info(f"Discord bot logged in as {identity}")
            self._emit_ready(identity)

        async def on_error(event_method, *args, **kwargs):
            error = sys.exc_info()[1]
            self.logger.error(f"Discord error in {event_method}: {error}")
            if error is not None:
                self._emit_error(error)

        client.event(on_ready)
        client.event(on_error)

    @property
    def is_ready(self) -> bool:
        return self._client.is_ready()

    async def connect(self, credential: str) -> None:
        await self._client.login(credential)
        self._gateway_task = asyncio.create_task(self._client.connect(reconnect=True))
        self._gateway_task.add_done_callback(self._on_gateway_done)

    def _on_gateway_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Discord gateway connection ended: {error}")
            self._emit_error(error)

    async def resolve_channel(self, channel_id: int) -> Optional[Any]:
        channel = self._client.get_channel(channel_id)
        if channel is not None:
            return channel

        try:
            return await self._client.fetch_channel(channel_id)
        except discord.NotFound:
            return None
        except discord.Forbidden:
            self.logger.error(f"No access to Discord channel {channel_id}")
            return None

    async def send(self, channel: Any, text: str) -> None:
        await channel.send(text)

    async def close(self) -> None:
        if not self._client.is_closed():
            await self._client.close()

        if self._gateway_task and not self._gateway_task.done():
            self._gateway_task.cancel()
            try:
                await self._gateway_task
            except asyncio.CancelledError:
                pass
