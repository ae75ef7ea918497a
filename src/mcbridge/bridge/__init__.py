"""
Bridge components for mcbridge

Inbound: parser -> classifier -> forwarding policy -> relay sink.
Connection lifecycle: session manager and reconnection supervisor.
"""

from .parser import EventParser, CHAT_PATTERNS
from .classifier import MessageClassifier
from .policy import ForwardingPolicy, ForwardDecision
from .relay import RelaySink
from .pipeline import FramePipeline
from .reconnect import ReconnectionSupervisor
from .session import SocketSessionManager, SessionState, GameConnection
from .chat_channel import ChatChannel, DiscordChatChannel

__all__ = [
    'EventParser',
    'CHAT_PATTERNS',
    'MessageClassifier',
    'ForwardingPolicy',
    'ForwardDecision',
    'RelaySink',
    'FramePipeline',
    'ReconnectionSupervisor',
    'SocketSessionManager',
    'SessionState',
    'GameConnection',
    'ChatChannel',
    'DiscordChatChannel'
]
