"""
Forwarding Policy for mcbridge

Decides whether a chat event is relayed to the chat platform and, if so,
the line that is sent.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..models.message import DomainEvent


DEFAULT_RESERVED_SENDERS = ("Server", "System")


@dataclass(frozen=True)
class ForwardDecision:
    """Outcome of evaluating one chat event"""
    forward: bool
    line: Optional[str] = None
    reason: str = ""


class ForwardingPolicy:
    """
    Filters chat events before relay.

    Rules, in order - any match means the event is dropped:
    - empty or whitespace-only text
    - text starting with "/" (a command invocation)
    - sender is one of the reserved system names
    """

    def __init__(self, reserved_senders: Optional[Iterable[str]] = None,
                 logger: Optional[logging.Logger] = None):
        self.reserved_senders = frozenset(
            reserved_senders if reserved_senders is not None else DEFAULT_RESERVED_SENDERS
        )
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, event: DomainEvent) -> ForwardDecision:
        if not event.is_chat():
            return ForwardDecision(False, reason="not a chat event")

        text = event.text or ""
        if not text.strip():
            self.logger.debug("Skipping empty message")
            return ForwardDecision(False, reason="empty")

        if text.startswith('/'):
            self.logger.debug("Skipping command")
            return ForwardDecision(False, reason="command")

        if event.sender in self.reserved_senders:
            self.logger.debug(f"Skipping system message from {event.sender}")
            return ForwardDecision(False, reason="reserved sender")

        return ForwardDecision(True, line=self.format_line(event))

    def should_forward(self, event: DomainEvent) -> bool:
        return self.evaluate(event).forward

    @staticmethod
    def format_line(event: DomainEvent) -> str:
        return f"{event.sender}: {event.text}"
