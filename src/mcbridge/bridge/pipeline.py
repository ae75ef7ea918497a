"""
Inbound frame pipeline: parser -> classifier -> policy -> relay sink.

Relayed lines are submitted to the sink queue, so processing a frame never
waits on the chat platform.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..models.message import DomainEvent, DomainEventType
from .classifier import MessageClassifier
from .parser import EventParser
from .policy import ForwardingPolicy
from .relay import RelaySink


JOIN_NOTICE = "🟢 {player} joined the server"
LEAVE_NOTICE = "🔴 {player} left the server"


class FramePipeline:
    """Runs one inbound frame through the bridge and relays the result"""

    def __init__(self, relay: RelaySink,
                 parser: Optional[EventParser] = None,
                 classifier: Optional[MessageClassifier] = None,
                 policy: Optional[ForwardingPolicy] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.relay = relay
        self.parser = parser or EventParser(logger=self.logger)
        self.classifier = classifier or MessageClassifier(logger=self.logger)
        self.policy = policy or ForwardingPolicy(logger=self.logger)

        self.stats = {
            'frames_processed': 0,
            'chat_forwarded': 0,
            'chat_filtered': 0,
            'presence_relayed': 0,
            'unknown_events': 0,
        }

    async def process(self, payload: Union[bytes, str]) -> DomainEvent:
        """Parse, classify and queue the relay of one frame; returns the domain event"""
        self.stats['frames_processed'] += 1

        message = self.parser.parse(payload)
        event = self.classifier.classify(message)

        if event.is_chat():
            decision = self.policy.evaluate(event)
            if decision.forward:
                self.stats['chat_forwarded'] += 1
                self.relay.submit(decision.line)
            else:
                self.stats['chat_filtered'] += 1
        elif event.is_presence():
            self.stats['presence_relayed'] += 1
            template = JOIN_NOTICE if event.event_type is DomainEventType.JOIN else LEAVE_NOTICE
            self.relay.submit(template.format(player=event.player), is_system_notice=True)
        else:
            self.stats['unknown_events'] += 1

        return event

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()
