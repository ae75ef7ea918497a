"""
Core module for mcbridge

Contains configuration management, logging setup and the error taxonomy
shared by the bridge components.
"""

from .exceptions import (
    BridgeError,
    ConfigurationError,
    PortInUseError,
    ReconnectExhaustedError,
    ChatChannelError
)

__all__ = [
    'BridgeError',
    'ConfigurationError',
    'PortInUseError',
    'ReconnectExhaustedError',
    'ChatChannelError'
]
