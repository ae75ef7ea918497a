"""
Event Parser for mcbridge

Decodes raw WebSocket frames from the game server into InboundMessage
objects. Structured JSON envelopes are recognized by their header; anything
that does not decode as a JSON object falls back to plain-text chat matching.

The parser never raises: every payload produces some interpretation.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from ..models.message import InboundKind, InboundMessage, MessagePurpose


FALLBACK_SENDER = "Minecraft"


@dataclass(frozen=True)
class ChatPattern:
    """A plain-text chat rule: regex plus (sender, text) extractor"""
    name: str
    pattern: re.Pattern
    extract: Callable[[re.Match], Tuple[str, str]]


def _groups(match: re.Match) -> Tuple[str, str]:
    return match.group(1), match.group(2)


# Tried in order, first match wins
CHAT_PATTERNS: List[ChatPattern] = [
    ChatPattern("angle", re.compile(r"<(.+?)> (.+)"), _groups),
    ChatPattern("bracket", re.compile(r"\[(.+?)\] (.+)"), _groups),
    ChatPattern("colon", re.compile(r"(.+?): (.+)"), _groups),
    ChatPattern("says", re.compile(r"(.+?) says: (.+)"), _groups),
]

_PURPOSE_KINDS = {
    MessagePurpose.EVENT.value: InboundKind.EVENT,
    MessagePurpose.COMMAND_RESPONSE.value: InboundKind.COMMAND_RESPONSE,
    MessagePurpose.ERROR.value: InboundKind.ERROR_REPORT,
}


class EventParser:
    """
    Decodes inbound frames.

    Structured envelope: {"header": {"messagePurpose": ...}, "body": {...}}
    Plain text: matched against CHAT_PATTERNS, otherwise attributed to
    the synthetic "Minecraft" sender.
    """

    def __init__(self, patterns: Optional[List[ChatPattern]] = None,
                 logger: Optional[logging.Logger] = None):
        self.patterns = patterns if patterns is not None else CHAT_PATTERNS
        self.logger = logger or logging.getLogger(__name__)

    def parse(self, payload: Union[bytes, bytearray, str]) -> InboundMessage:
        """Decode one frame into an InboundMessage"""
        text = self._decode_text(payload)

        try:
            decoded = json.loads(text)
        except (ValueError, RecursionError) as e:
            self.logger.debug(f"Frame is not JSON ({e}), treating as plain text")
            return self.parse_plain_text(text)

        if not isinstance(decoded, dict):
            self.logger.debug(f"JSON frame is not an object ({type(decoded).__name__}), treating as plain text")
            return self.parse_plain_text(text)

        return self._parse_envelope(decoded, text)

    def parse_plain_text(self, text: str) -> InboundMessage:
        """Match plain text against the chat patterns"""
        stripped = text.strip()

        for rule in self.patterns:
            match = rule.pattern.fullmatch(stripped)
            if match:
                sender, message = rule.extract(match)
                self.logger.debug(f"Plain text matched '{rule.name}' pattern: {sender} -> {message}")
                return InboundMessage.unstructured(sender, message, raw=text)

        return InboundMessage.unstructured(FALLBACK_SENDER, stripped, raw=text)

    def _parse_envelope(self, decoded: dict, raw: str) -> InboundMessage:
        header = decoded.get('header')
        body = decoded.get('body')
        if not isinstance(body, dict):
            body = {}

        if not isinstance(header, dict):
            return InboundMessage(kind=InboundKind.UNRECOGNIZED, body=body, raw=raw)

        purpose = header.get('messagePurpose')
        if not isinstance(purpose, str):
            purpose = None
        kind = _PURPOSE_KINDS.get(purpose, InboundKind.UNRECOGNIZED)

        return InboundMessage(
            kind=kind,
            header=header,
            body=body,
            purpose=purpose,
            raw=raw
        )

    @staticmethod
    def _decode_text(payload: Union[bytes, bytearray, str]) -> str:
        if isinstance(payload, str):
            return payload
        return bytes(payload).decode('utf-8', errors='replace')
