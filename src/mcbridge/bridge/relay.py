"""
Relay Sink for mcbridge

Sends lines to the destination chat channel. Every call is isolated: a
failure is logged and counted, never raised, and the message is dropped.

The socket side uses submit(), which queues the line for a background
worker so a slow Discord call never holds up frame reading or reconnection.
Lines are delivered in submission order.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import aiohttp
import discord

from .chat_channel import ChatChannel


DEFAULT_SYSTEM_PREFIX = "🔧 "
STOP_DRAIN_TIMEOUT = 5.0


class RelaySink:
    """
    Best-effort delivery to the chat platform.

    No retry: a failed line is dropped. The channel handle is resolved on
    every call so a channel that comes back after an outage is picked up
    again. The submit queue only orders delivery; it does not persist.
    """

    def __init__(self, chat_channel: ChatChannel, channel_id: int,
                 system_prefix: str = DEFAULT_SYSTEM_PREFIX,
                 logger: Optional[logging.Logger] = None):
        self.chat_channel = chat_channel
        self.channel_id = channel_id
        self.system_prefix = system_prefix
        self.logger = logger or logging.getLogger(__name__)

        self.stats = {
            'messages_sent': 0,
            'system_notices_sent': 0,
            'send_errors': 0,
            'channel_not_found': 0,
            'last_send_time': None,
            'queued': 0,
        }

        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    def submit(self, text: str, is_system_notice: bool = False) -> None:
        """Queue a line for delivery without waiting for the chat platform"""
        self._queue.put_nowait((text, is_system_notice))
        self.stats['queued'] += 1

        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._deliver_queued())

    async def _deliver_queued(self) -> None:
        while True:
            item: Tuple[str, bool] = await self._queue.get()
            try:
                await self.send(*item)
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every submitted line has been handled"""
        await self._queue.join()

    async def stop(self, timeout: float = STOP_DRAIN_TIMEOUT) -> None:
        """Give queued lines a bounded chance to go out, then stop the worker"""
        if self._worker is None:
            return

        try:
            await asyncio.wait_for(self.flush(), timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Dropping {self._queue.qsize()} undelivered Discord messages")

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def send(self, text: str, is_system_notice: bool = False) -> bool:
        """
        Relay one line.

        Args:
            text: Line to send
            is_system_notice: Prefix the line with the system marker

        Returns:
            True if the chat platform accepted the message, False otherwise
        """
        final_text = f"{self.system_prefix}{text}" if is_system_notice else text

        try:
            channel = await self.chat_channel.resolve_channel(self.channel_id)
            if channel is None:
                self.logger.error(f"Discord channel {self.channel_id} not found")
                self.stats['channel_not_found'] += 1
                return False

            await self.chat_channel.send(channel, final_text)

        except (aiohttp.ClientError, OSError) as e:
            self.logger.error(f"Network error sending to Discord: {e}")
            self.stats['send_errors'] += 1
            return False
        except discord.DiscordException as e:
            self.logger.error(f"Discord rejected message: {e}")
            self.stats['send_errors'] += 1
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error sending to Discord: {e}", exc_info=True)
            self.stats['send_errors'] += 1
            return False

        self.stats['messages_sent'] += 1
        if is_system_notice:
            self.stats['system_notices_sent'] += 1
        self.stats['last_send_time'] = datetime.utcnow()
        self.logger.info(f"Sent to Discord: {final_text}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['pending'] = self._queue.qsize()
        return stats
