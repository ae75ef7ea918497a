"""
Socket Session Manager for mcbridge

Owns the WebSocket listener and the single live game connection. Every
replace/close of that connection goes through this class; the reconnection
supervisor drives it only through terminate_connection() and
rebuild_listener().

State machine: IDLE -> LISTENING -> CONNECTED -> LISTENING (after disconnect)
"""

import asyncio
import errno
import json
import logging
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.frames import CloseCode
from websockets.protocol import State

from ..core.exceptions import BridgeError, PortInUseError
from ..core.logging import get_structured_logger
from ..models.message import Subscription
from .pipeline import FramePipeline
from .protocol import build_command_request, build_subscribe_request
from .reconnect import ReconnectionSupervisor
from .relay import RelaySink


CONNECTED_NOTICE = "🟢 Minecraft server connected"
DISCONNECTED_NOTICE = "🔴 Minecraft server disconnected"

# Close codes we send when the peer breaks framing
FRAME_VIOLATION_CODES = frozenset({
    CloseCode.PROTOCOL_ERROR,
    CloseCode.INVALID_DATA,
    CloseCode.MESSAGE_TOO_BIG,
})


class SessionState(Enum):
    """Session manager states"""
    IDLE = "idle"
    LISTENING = "listening"
    CONNECTED = "connected"


def is_frame_violation(exc: ConnectionClosed) -> bool:
    """True if we closed the connection because of a bad frame"""
    return exc.sent is not None and exc.sent.code in FRAME_VIOLATION_CODES


class GameConnection:
    """Thin wrapper over one accepted WebSocket connection"""

    def __init__(self, websocket: ServerConnection):
        self.websocket = websocket
        self.connection_id = uuid.uuid4().hex[:8]
        self.remote_address = websocket.remote_address
        self.replaced = False
        self.log = get_structured_logger('session').bind(
            connection_id=self.connection_id,
            remote=str(self.remote_address)
        )

    @property
    def is_open(self) -> bool:
        return self.websocket.protocol.state is State.OPEN

    @property
    def close_code(self) -> Optional[int]:
        return self.websocket.close_code

    @property
    def close_reason(self) -> Optional[str]:
        return self.websocket.close_reason

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.websocket.send(json.dumps(payload, ensure_ascii=False))

    async def close(self, code: int = CloseCode.NORMAL_CLOSURE, reason: str = "") -> None:
        await self.websocket.close(code, reason)

    def terminate(self) -> None:
        """Drop the TCP connection without a closing handshake"""
        self.websocket.transport.abort()


class SocketSessionManager:
    """
    Listens for the game server and manages its connection.

    Args:
        config: websocket configuration section (host, port, subscribe_delay,
            probe_delay, probe_command, events)
        pipeline: inbound frame pipeline
        relay: relay sink used for connect/disconnect notices
        reconnect_config: reconnect configuration section
        on_fatal: called with the error when the bridge cannot continue
        debug: log every raw frame
    """

    def __init__(self, config: Dict[str, Any], pipeline: FramePipeline, relay: RelaySink,
                 reconnect_config: Optional[Dict[str, Any]] = None,
                 on_fatal: Optional[Callable[[BridgeError], None]] = None,
                 debug: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.pipeline = pipeline
        self.relay = relay
        self.debug = debug
        self.logger = logger or logging.getLogger(__name__)

        self.host = config.get('host', '0.0.0.0')
        self.port = config.get('port', 25525)
        self.subscribe_delay = config.get('subscribe_delay', 1.0)
        self.probe_delay = config.get('probe_delay', 2.0)
        self.probe_command = config.get('probe_command', 'list')
        self.events: List[str] = list(config.get('events', []))

        self.state = SessionState.IDLE
        self.subscription: Optional[Subscription] = None
        self._server: Optional[Server] = None
        self._connection: Optional[GameConnection] = None
        self._subscribe_task: Optional[asyncio.Task] = None
        self._stopping = False

        self.supervisor = ReconnectionSupervisor.from_config(
            self, reconnect_config or {}, on_fatal=on_fatal, logger=self.logger
        )

        self.stats = {
            'connection_count': 0,
            'disconnection_count': 0,
            'replaced_connections': 0,
            'frames_received': 0,
            'malformed_frames': 0,
            'commands_sent': 0,
        }

    @property
    def connection(self) -> Optional[GameConnection]:
        return self._connection

    @property
    def bound_port(self) -> int:
        """Actual listening port (differs from config when port 0 is used)"""
        if self._server and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self.port

    async def start(self, port: Optional[int] = None) -> None:
        """
        Bind the listener on all configured interfaces.

        Raises:
            PortInUseError: the port is already bound; not retried here
        """
        if port is not None:
            self.port = port

        self._stopping = False
        await self._bind()
        # Rebuilds reuse the port actually bound
        self.port = self.bound_port

        self.logger.info(f"WebSocket server waiting on port {self.bound_port}...")
        self.logger.info("Connect from Minecraft with one of these commands:")
        self.logger.info(f"/connect localhost:{self.bound_port}")
        self.logger.info(f"/wsserver localhost:{self.bound_port}")

    async def _bind(self) -> None:
        try:
            self._server = await serve(self._handle_connection, self.host, self.port)
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                self.logger.error(f"Port {self.port} is already in use")
                raise PortInUseError(self.port, self.host, e) from e
            raise

        if self._connection is None:
            self.state = SessionState.LISTENING

    async def rebuild_listener(self) -> None:
        """Close the current listener, if any, and bind a fresh one"""
        if self._server is not None:
            await self._close_server()
            self.logger.info("Closed existing WebSocket server")

        await self._bind()
        self.logger.info(f"WebSocket server rebuilt on port {self.bound_port}")

    async def _close_server(self) -> None:
        server = self._server
        self._server = None
        if server is not None:
            server.close()
            await server.wait_closed()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        connection = GameConnection(websocket)
        await self.on_connect(connection)

        try:
            async for data in websocket:
                await self.on_frame(connection, data)
        except ConnectionClosedError as exc:
            if is_frame_violation(exc):
                await self.on_malformed_frame(connection, exc)

        await self.on_close(connection, connection.close_code, connection.close_reason or "")

    async def on_connect(self, connection: GameConnection) -> None:
        """Adopt a new connection and close the one it replaces"""
        # No await between reading and swapping the held connection, so
        # overlapping connects each close exactly the one they displaced
        previous = self._connection
        self._connection = connection
        self.state = SessionState.CONNECTED
        self.subscription = Subscription()
        self.stats['connection_count'] += 1

        if previous is not None and previous is not connection:
            previous.replaced = True
            self._cancel_subscription()
            self.stats['replaced_connections'] += 1

        self._subscribe_task = asyncio.create_task(self.subscribe(connection))
        connection.log.info("Minecraft connected")
        self.relay.submit(CONNECTED_NOTICE, is_system_notice=True)

        if previous is not None and previous is not connection:
            previous.log.info("Closing previous connection, replaced by a new one")
            try:
                await previous.close(CloseCode.NORMAL_CLOSURE, "replaced by new connection")
            except ConnectionClosed:
                pass

    async def on_frame(self, connection: GameConnection, data: Union[bytes, str]) -> None:
        """Hand one frame to the pipeline"""
        self.stats['frames_received'] += 1
        self.logger.debug(f"Received frame #{self.stats['frames_received']}: {len(data)} bytes")

        if self.debug:
            raw = data if isinstance(data, str) else bytes(data).decode('utf-8', errors='replace')
            self.logger.debug(f"RAW DATA: {raw}")

        try:
            await self.pipeline.process(data)
        except Exception as e:
            self.logger.error(f"Error processing frame: {e}", exc_info=True)

    async def on_close(self, connection: GameConnection, code: Optional[int], reason: str = "") -> None:
        """Forget the connection, announce it and reconnect after abnormal closure"""
        connection.log.info(f"Minecraft connection closed - Code: {code}, Reason: {reason}")
        self.stats['disconnection_count'] += 1

        if connection is self._connection:
            self._connection = None
            self._cancel_subscription()
            self.state = SessionState.LISTENING if self._server else SessionState.IDLE

        if connection.replaced or self._stopping:
            return

        if code == CloseCode.ABNORMAL_CLOSURE:
            self.logger.warning("Unexpected disconnection, attempting to reconnect...")
            self.supervisor.trigger("abnormal closure")

        self.relay.submit(DISCONNECTED_NOTICE, is_system_notice=True)

    async def on_malformed_frame(self, connection: GameConnection, exc: Exception) -> None:
        """Terminate a connection whose framing can no longer be trusted"""
        self.stats['malformed_frames'] += 1
        connection.log.warning(f"Invalid WebSocket frame received, attempting to recover: {exc}")
        connection.terminate()

        if not self._stopping:
            self.supervisor.trigger("malformed frame")

    def terminate_connection(self) -> None:
        """Force-close the held connection, if any"""
        connection = self._connection
        if connection is None:
            return

        self._connection = None
        self._cancel_subscription()
        self.state = SessionState.LISTENING if self._server else SessionState.IDLE
        connection.log.info("Terminating connection")
        connection.terminate()

    async def subscribe(self, connection: GameConnection) -> None:
        """Request events from the game, then send the diagnostic probe"""
        await asyncio.sleep(self.subscribe_delay)

        if connection is not self._connection or not connection.is_open:
            self.logger.error("WebSocket connection is not available for subscription")
            return

        self.logger.info("Subscribing to game events...")
        subscription = self.subscription
        for event_name in self.events:
            if await self._send(connection, build_subscribe_request(event_name)):
                subscription.add(event_name)
                self.logger.debug(f"Subscription requested for {event_name}")

        await asyncio.sleep(self.probe_delay)
        self.logger.debug("Sending probe command")
        await self.send_command(self.probe_command)

    async def send_command(self, command: str) -> bool:
        """Send a commandRequest to the connected game"""
        connection = self._connection
        if connection is None:
            self.logger.error("Minecraft connection is not available")
            return False

        sent = await self._send(connection, build_command_request(command))
        if sent:
            self.stats['commands_sent'] += 1
        return sent

    async def _send(self, connection: GameConnection, payload: Dict[str, Any]) -> bool:
        if not connection.is_open:
            self.logger.error("Minecraft connection is not available")
            return False

        try:
            await connection.send_json(payload)
        except ConnectionClosed as e:
            self.logger.error(f"Connection closed while sending: {e}")
            return False

        self.logger.debug(f"Sent to Minecraft: {json.dumps(payload, ensure_ascii=False)}")
        return True

    def _cancel_subscription(self) -> None:
        task = self._subscribe_task
        self._subscribe_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def shutdown_now(self) -> None:
        """Synchronous part of teardown: drop the connection, stop accepting"""
        self._stopping = True
        self.terminate_connection()
        if self._server is not None:
            self._server.close()

    async def stop(self) -> None:
        """Stop reconnection, drop the connection and close the listener"""
        self._stopping = True
        await self.supervisor.stop()
        self.terminate_connection()
        await self._close_server()
        self.state = SessionState.IDLE
        self.logger.info("WebSocket server stopped")

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['state'] = self.state.value
        stats['subscribed_events'] = sorted(self.subscription.event_names) if self.subscription else []
        stats['reconnect'] = self.supervisor.get_stats()
        return stats
