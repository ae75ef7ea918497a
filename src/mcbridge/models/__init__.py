"""
Data models for mcbridge

Contains the data classes used throughout the bridge pipeline.
"""

from .message import (
    MessagePurpose, InboundKind, InboundMessage,
    DomainEventType, DomainEvent, ReconnectState, Subscription
)

__all__ = [
    'MessagePurpose', 'InboundKind', 'InboundMessage',
    'DomainEventType', 'DomainEvent', 'ReconnectState', 'Subscription'
]
