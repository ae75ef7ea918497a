"""
mcbridge Main Application Entry Point

Wires configuration, logging, the Discord client and the WebSocket session
together, runs until a termination signal or a fatal condition, then tears
everything down.
"""

import asyncio
import signal
import sys
import traceback
from typing import Any, Dict, Optional

from .core.config import ConfigurationManager
from .core.exceptions import BridgeError, ChatChannelError, ConfigurationError
from .core.logging import initialize_logging, get_logger
from .bridge.chat_channel import ChatChannel, DiscordChatChannel
from .bridge.classifier import MessageClassifier
from .bridge.parser import EventParser
from .bridge.pipeline import FramePipeline
from .bridge.policy import ForwardingPolicy
from .bridge.relay import RelaySink
from .bridge.session import SocketSessionManager


class BridgeApplication:
    """Main mcbridge application class"""

    def __init__(self, config_manager: Optional[ConfigurationManager] = None,
                 chat_channel: Optional[ChatChannel] = None):
        self.config_manager = config_manager
        self.chat_channel = chat_channel
        self.relay: Optional[RelaySink] = None
        self.pipeline: Optional[FramePipeline] = None
        self.session: Optional[SocketSessionManager] = None
        self.logger = None

        self.running = False
        self.shutdown_event = asyncio.Event()
        self.fatal_error: Optional[BridgeError] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def initialize(self):
        """Load configuration and build the bridge components"""
        if self.config_manager is None:
            self.config_manager = ConfigurationManager()
            self.config_manager.load_config()

        initialize_logging(self.config_manager.config)
        self.logger = get_logger('main')

        self.logger.info("Starting Minecraft-Discord bridge...")
        self.logger.info(f"Version: {self.config_manager.get('app.version', '1.0.0')}")

        debug = self.config_manager.is_debug()
        if debug:
            self.logger.info("Debug mode enabled - raw frames will be logged")

        if self.chat_channel is None:
            self.chat_channel = DiscordChatChannel(logger=get_logger('discord'))
        self.chat_channel.on_ready(self._handle_chat_ready)
        self.chat_channel.on_error(self._handle_chat_error)

        self.relay = RelaySink(
            self.chat_channel,
            self.config_manager.get_discord_channel_id(),
            system_prefix=self.config_manager.get('relay.system_prefix', '🔧 '),
            logger=get_logger('relay')
        )

        pipeline_logger = get_logger('pipeline')
        self.pipeline = FramePipeline(
            self.relay,
            parser=EventParser(logger=get_logger('parser')),
            classifier=MessageClassifier(logger=get_logger('classifier')),
            policy=ForwardingPolicy(
                self.config_manager.get('forwarding.reserved_senders'),
                logger=pipeline_logger
            ),
            logger=pipeline_logger
        )

        self.session = SocketSessionManager(
            self.config_manager.get_section('websocket'),
            self.pipeline,
            self.relay,
            reconnect_config=self.config_manager.get_section('reconnect'),
            on_fatal=self._handle_fatal,
            debug=debug,
            logger=get_logger('session')
        )

    async def start(self):
        """Log in to Discord, then open the WebSocket listener"""
        self._loop = asyncio.get_running_loop()

        try:
            await self.chat_channel.connect(self.config_manager.get('discord.token'))
        except BridgeError:
            raise
        except Exception as e:
            raise ChatChannelError(f"Discord login failed: {e}") from e

        await self.session.start()
        self.running = True
        self.logger.info("Bridge started successfully")

    async def run(self) -> int:
        """Run until shutdown; returns the process exit status"""
        self.initialize()

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            await self.start()
            await self.shutdown_event.wait()
        except BridgeError as e:
            self.logger.critical(f"Fatal startup error: {e}")
            self.fatal_error = e
        finally:
            await self.shutdown()

        return 1 if self.fatal_error else 0

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        self.logger.info(f"Received signal {signum}, shutting down...")
        if self.session:
            self.session.shutdown_now()
        if self._loop:
            self._loop.call_soon_threadsafe(self.shutdown_event.set)
        else:
            self.shutdown_event.set()

    def _handle_fatal(self, error: BridgeError):
        """Fatal condition reported by the reconnection supervisor"""
        self.logger.critical(f"Fatal condition, exiting for external restart: {error}")
        self.fatal_error = error
        self.shutdown_event.set()

    def _handle_chat_ready(self, identity: str):
        self.logger.info(f"Discord ready as {identity}")

    def _handle_chat_error(self, error: BaseException):
        self.logger.error(f"Discord error: {error}")

    async def shutdown(self):
        """Tear down the session and the chat client"""
        self.logger.info("Shutting down bridge...")
        self.running = False

        if self.session:
            try:
                await self.session.stop()
            except Exception as e:
                self.logger.error(f"Error stopping WebSocket session: {e}")

        if self.relay:
            await self.relay.stop()

        if self.chat_channel:
            try:
                await self.chat_channel.close()
            except Exception as e:
                self.logger.error(f"Error closing Discord client: {e}")

        self.logger.info("Bridge stopped")

    def get_status(self) -> Dict[str, Any]:
        """Collect statistics from every component"""
        return {
            'running': self.running,
            'session': self.session.get_stats() if self.session else {},
            'pipeline': self.pipeline.get_stats() if self.pipeline else {},
            'relay': self.relay.get_stats() if self.relay else {},
        }


def main():
    """Console entry point"""
    try:
        config_manager = ConfigurationManager()
        config_manager.load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Set DISCORD_TOKEN and DISCORD_CHANNEL_ID in the .env file.", file=sys.stderr)
        sys.exit(1)

    app = BridgeApplication(config_manager)

    try:
        exit_code = asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nApplication interrupted")
        exit_code = 0
    except Exception as e:
        print(f"Fatal error: {e}")
        traceback.print_exc()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
