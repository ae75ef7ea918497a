"""
Reconnection Supervisor for mcbridge

Rebuilds the WebSocket listener after an abnormal closure or a corrupted
frame. Attempts are bounded: once the cap is reached the supervisor stops
for good and reports a fatal condition so an external process manager can
restart the bridge.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from ..core.exceptions import BridgeError, PortInUseError, ReconnectExhaustedError
from ..models.message import ReconnectState


class ReconnectTarget(Protocol):
    """What the supervisor needs from the session manager"""

    def terminate_connection(self) -> None:
        ...

    async def rebuild_listener(self) -> None:
        ...


FatalCallback = Callable[[BridgeError], None]


class ReconnectionSupervisor:
    """
    Bounded-retry state machine over ReconnectState.

    - trigger() while a cycle is running is a no-op
    - a cycle force-terminates the held connection, waits the cooldown and
      rebuilds the listener
    - success resets the state; failure schedules a retry after retry_delay
      until max_attempts retries have been used, then gives up
    """

    def __init__(self, target: ReconnectTarget, max_attempts: int = 5,
                 cooldown: float = 2.0, retry_delay: float = 5.0,
                 on_fatal: Optional[FatalCallback] = None,
                 logger: Optional[logging.Logger] = None):
        self.target = target
        self.max_attempts = max_attempts
        self.cooldown = cooldown
        self.retry_delay = retry_delay
        self.on_fatal = on_fatal
        self.logger = logger or logging.getLogger(__name__)

        self.state = ReconnectState()
        self.exhausted = False
        self._cycle_task: Optional[asyncio.Task] = None
        self._retry_task: Optional[asyncio.Task] = None

        self.stats = {
            'cycles_started': 0,
            'cycles_succeeded': 0,
            'cycles_failed': 0,
            'triggers_ignored': 0,
        }

    @classmethod
    def from_config(cls, target: ReconnectTarget, config: Dict[str, Any],
                    on_fatal: Optional[FatalCallback] = None,
                    logger: Optional[logging.Logger] = None) -> 'ReconnectionSupervisor':
        return cls(
            target,
            max_attempts=config.get('max_attempts', 5),
            cooldown=config.get('cooldown', 2.0),
            retry_delay=config.get('retry_delay', 5.0),
            on_fatal=on_fatal,
            logger=logger
        )

    @property
    def in_reconnect(self) -> bool:
        return self.state.in_reconnect

    def trigger(self, reason: str = "") -> Optional[asyncio.Task]:
        """Start a reconnection cycle unless one is already running"""
        if self.exhausted:
            self.logger.warning(f"Reconnection requested ({reason}) but attempts are exhausted")
            self.stats['triggers_ignored'] += 1
            return None

        if self.state.in_reconnect:
            self.logger.debug(f"Reconnection already in progress, ignoring trigger ({reason})")
            self.stats['triggers_ignored'] += 1
            return None

        self.state.in_reconnect = True
        self.stats['cycles_started'] += 1
        self.logger.info(f"Starting reconnection ({reason or 'unspecified'})")
        self._cycle_task = asyncio.create_task(self._run_cycle())
        return self._cycle_task

    async def _run_cycle(self) -> None:
        try:
            self.target.terminate_connection()
            await asyncio.sleep(self.cooldown)
            await self.target.rebuild_listener()
        except PortInUseError as e:
            # Never retried locally
            self.state.in_reconnect = False
            self.stats['cycles_failed'] += 1
            self._give_up(e)
            return
        except Exception as e:
            self.logger.error(f"Reconnection failed: {e}", exc_info=True)
            self.stats['cycles_failed'] += 1
            self._handle_failure()
            return

        self.state.reset()
        self.stats['cycles_succeeded'] += 1
        self.logger.info("Reconnection completed, listener rebuilt")

    def _handle_failure(self) -> None:
        self.state.in_reconnect = False

        if self.state.attempts < self.max_attempts:
            self.state.attempts += 1
            self.logger.info(
                f"Retrying in {self.retry_delay:.1f} seconds "
                f"(attempt {self.state.attempts}/{self.max_attempts})"
            )
            self._retry_task = asyncio.create_task(self._retry_later())
        else:
            self._give_up(ReconnectExhaustedError(self.state.attempts))

    async def _retry_later(self) -> None:
        await asyncio.sleep(self.retry_delay)
        self.trigger("retry")

    def _give_up(self, error: BridgeError) -> None:
        self.exhausted = True
        self.logger.critical(f"Reconnection stopped: {error}. Restart the bridge.")
        if self.on_fatal:
            self.on_fatal(error)

    async def stop(self) -> None:
        """Cancel any running cycle or pending retry"""
        current = asyncio.current_task()
        for task in (self._retry_task, self._cycle_task):
            if task and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._retry_task = None
        self._cycle_task = None

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats['attempts'] = self.state.attempts
        stats['in_reconnect'] = self.state.in_reconnect
        stats['exhausted'] = self.exhausted
        return stats
