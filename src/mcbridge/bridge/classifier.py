"""
Message Classifier for mcbridge

Maps decoded inbound frames onto domain events. The game protocol is
loosely typed and differs between versions, so field extraction walks an
ordered list of candidate keys and takes the first non-empty value.
"""

import json
import logging
from typing import Any, Dict, Optional, Sequence

from ..models.message import DomainEvent, InboundKind, InboundMessage


UNKNOWN_NAME = "Unknown"

# Candidate keys, highest priority first
SENDER_KEYS = ("sender", "player", "playerName", "source")
TEXT_KEYS = ("message", "text", "msg")
PLAYER_KEYS = ("player", "playerName", "name")

CHAT_EVENTS = frozenset({"PlayerMessage", "PlayerChat", "ChatMessage"})
JOIN_EVENTS = frozenset({"PlayerJoin", "PlayerConnect"})
LEAVE_EVENTS = frozenset({"PlayerLeave", "PlayerDisconnect"})

# Bedrock returns this when the connection lacks permission for a command
STATUS_NO_PERMISSION = -2147483643


def first_present(body: Dict[str, Any], keys: Sequence[str], default: str = "") -> str:
    """Return the first non-empty value among keys, as a string"""
    for key in keys:
        value = body.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return default


class MessageClassifier:
    """
    Turns InboundMessage objects into DomainEvent objects.

    Only event frames can yield chat/presence events. Command responses,
    error reports and unrecognized purposes are logged and classified as
    UNKNOWN so nothing downstream forwards them.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, message: InboundMessage) -> DomainEvent:
        if not message.is_structured:
            return DomainEvent.chat(message.sender or UNKNOWN_NAME, message.text or "")

        if message.kind is InboundKind.EVENT:
            return self.classify_event(message.body, message.header)

        if message.kind is InboundKind.COMMAND_RESPONSE:
            self._log_command_response(message.body)
        elif message.kind is InboundKind.ERROR_REPORT:
            self.logger.error(f"Game server reported an error: {self._dump(message.body)}")
        elif not message.header:
            self.logger.warning("Structured frame has no header, ignoring")
        else:
            self.logger.warning(f"Unknown message purpose: {message.purpose}")

        return DomainEvent.unknown()

    def classify_event(self, body: Dict[str, Any], header: Optional[Dict[str, Any]] = None) -> DomainEvent:
        """Classify the body of an event frame"""
        if not body:
            self.logger.warning("Event frame has no body")
            return DomainEvent.unknown()

        # Direct chat payload
        if body.get('type') == 'chat':
            sender = first_present(body, ("sender",), UNKNOWN_NAME)
            text = first_present(body, ("message",), "")
            return DomainEvent.chat(sender, text)

        self.logger.debug(f"Event data: {self._dump(body)}")

        event_name = body.get('eventName')
        if not event_name and header:
            event_name = header.get('eventName')
        if not isinstance(event_name, str):
            event_name = None

        if event_name in CHAT_EVENTS:
            sender = first_present(body, SENDER_KEYS, UNKNOWN_NAME)
            text = first_present(body, TEXT_KEYS, "")
            self.logger.info(f"Extracted chat - player: {sender}, message: {text}")
            return DomainEvent.chat(sender, text)

        if event_name in JOIN_EVENTS:
            player = first_present(body, PLAYER_KEYS, UNKNOWN_NAME)
            self.logger.info(f"Player joined: {player}")
            return DomainEvent.join(player)

        if event_name in LEAVE_EVENTS:
            player = first_present(body, PLAYER_KEYS, UNKNOWN_NAME)
            self.logger.info(f"Player left: {player}")
            return DomainEvent.leave(player)

        # Some versions omit eventName but still carry chat fields
        if body.get('message') and body.get('sender'):
            return DomainEvent.chat(str(body['sender']), str(body['message']))

        self.logger.debug(f"Unhandled event: {event_name}")
        return DomainEvent.unknown()

    def _log_command_response(self, body: Dict[str, Any]) -> None:
        self.logger.debug(f"Command response: {self._dump(body)}")

        if body.get('statusCode') == STATUS_NO_PERMISSION:
            self.logger.warning("Command rejected: no permission or invalid command")
            return

        if body.get('statusMessage'):
            self.logger.info(f"Status: {body['statusMessage']}")

    @staticmethod
    def _dump(body: Dict[str, Any]) -> str:
        return json.dumps(body, ensure_ascii=False, default=str)
