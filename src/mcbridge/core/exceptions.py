"""
Exception hierarchy for mcbridge

Malformed input never surfaces as an exception; relay failures are absorbed
by the relay sink. What remains here are the conditions a caller has to act
on: bad configuration and fatal resource problems.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors"""
    pass


class ConfigurationError(BridgeError):
    """Configuration-related errors"""
    pass


class PortInUseError(BridgeError):
    """The listening port is already bound by another process"""

    def __init__(self, port: int, host: str = "0.0.0.0", cause: Optional[OSError] = None):
        self.port = port
        self.host = host
        self.cause = cause
        super().__init__(f"Port {port} on {host} is already in use")


class ReconnectExhaustedError(BridgeError):
    """Reconnection attempts reached the configured maximum"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Gave up rebuilding the listener after {attempts} retries - restart required"
        )


class ChatChannelError(BridgeError):
    """The chat platform client could not be started"""
    pass
