"""
Message data models for mcbridge

Defines the structures that flow through the bridge: the decoded inbound
frame, the normalized domain event, and the reconnection/subscription state
owned by the session components.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set


class MessagePurpose(Enum):
    """Envelope header messagePurpose values"""
    EVENT = "event"
    COMMAND_RESPONSE = "commandResponse"
    ERROR = "error"
    SUBSCRIBE = "subscribe"
    COMMAND_REQUEST = "commandRequest"


class InboundKind(Enum):
    """Kinds of decoded inbound frames"""
    EVENT = "event"
    COMMAND_RESPONSE = "command_response"
    ERROR_REPORT = "error_report"
    UNSTRUCTURED = "unstructured"
    UNRECOGNIZED = "unrecognized"


class DomainEventType(Enum):
    """Normalized chat/presence event types"""
    CHAT = "chat"
    JOIN = "join"
    LEAVE = "leave"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InboundMessage:
    """One decoded inbound frame

    Structured frames keep their header and body; unstructured frames carry
    the sender and text recovered by the plain-text matcher.
    """
    kind: InboundKind
    header: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    purpose: Optional[str] = None
    sender: Optional[str] = None
    text: Optional[str] = None
    raw: str = ""

    @classmethod
    def unstructured(cls, sender: str, text: str, raw: str = "") -> 'InboundMessage':
        return cls(kind=InboundKind.UNSTRUCTURED, sender=sender, text=text, raw=raw)

    @property
    def is_structured(self) -> bool:
        return self.kind is not InboundKind.UNSTRUCTURED


@dataclass(frozen=True)
class DomainEvent:
    """Normalized chat or presence occurrence"""
    event_type: DomainEventType
    sender: str = ""
    text: str = ""
    player: str = ""

    @classmethod
    def chat(cls, sender: str, text: str) -> 'DomainEvent':
        return cls(event_type=DomainEventType.CHAT, sender=sender, text=text)

    @classmethod
    def join(cls, player: str) -> 'DomainEvent':
        return cls(event_type=DomainEventType.JOIN, player=player)

    @classmethod
    def leave(cls, player: str) -> 'DomainEvent':
        return cls(event_type=DomainEventType.LEAVE, player=player)

    @classmethod
    def unknown(cls) -> 'DomainEvent':
        return cls(event_type=DomainEventType.UNKNOWN)

    def is_chat(self) -> bool:
        return self.event_type is DomainEventType.CHAT

    def is_presence(self) -> bool:
        return self.event_type in (DomainEventType.JOIN, DomainEventType.LEAVE)


@dataclass
class ReconnectState:
    """Reconnection bookkeeping, written only by the reconnection supervisor"""
    attempts: int = 0
    in_reconnect: bool = False

    def reset(self) -> None:
        self.attempts = 0
        self.in_reconnect = False


@dataclass
class Subscription:
    """Event names requested from the game on one connection"""
    event_names: Set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def add(self, event_name: str) -> None:
        self.event_names.add(event_name)

    def __contains__(self, event_name: str) -> bool:
        return event_name in self.event_names

    def __len__(self) -> int:
        return len(self.event_names)
