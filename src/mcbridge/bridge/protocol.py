"""
Outbound envelope builders for the game server WebSocket protocol.
"""

import uuid
from typing import Any, Dict

from ..models.message import MessagePurpose


PROTOCOL_VERSION = 1


def _header(purpose: MessagePurpose) -> Dict[str, Any]:
    return {
        "requestId": str(uuid.uuid4()),
        "messagePurpose": purpose.value,
        "version": PROTOCOL_VERSION,
        "messageType": "commandRequest"
    }


def build_subscribe_request(event_name: str) -> Dict[str, Any]:
    """Request delivery of one event type"""
    return {
        "header": _header(MessagePurpose.SUBSCRIBE),
        "body": {"eventName": event_name}
    }


def build_command_request(command: str) -> Dict[str, Any]:
    """Run a slash command (without the leading slash) on the game server"""
    return {
        "header": _header(MessagePurpose.COMMAND_REQUEST),
        "body": {"command": command}
    }
