"""
Property-based tests for frame parsing and classification

Every payload gets an interpretation, and non-event frames never turn
into chat.
"""

import json

from hypothesis import given, strategies as st

from mcbridge.bridge.classifier import MessageClassifier
from mcbridge.bridge.parser import EventParser, FALLBACK_SENDER
from mcbridge.models.message import DomainEventType, InboundKind


parser = EventParser()
classifier = MessageClassifier()

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=10), children, max_size=4),
    max_leaves=10
)

# Names without the characters the plain-text rules split on
player_names = st.text(
    alphabet=st.characters(blacklist_characters="<>[]:\r\n", blacklist_categories=("Cs", "Zs", "Cc")),
    min_size=1,
    max_size=16
)
chat_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs", "Cc", "Zs", "Zl", "Zp")),
    min_size=1,
    max_size=50
)


class TestParserProperties:
    """
    **Feature: frame parsing**

    For any payload, parsing returns an InboundMessage and never raises.
    """

    @given(payload=st.binary(max_size=256))
    def test_parse_never_raises_on_bytes(self, payload):
        message = parser.parse(payload)

        assert message.kind in InboundKind

    @given(payload=st.text(max_size=256))
    def test_parse_never_raises_on_text(self, payload):
        message = parser.parse(payload)

        assert message.kind in InboundKind

    @given(value=json_values)
    def test_non_object_json_is_unstructured(self, value):
        if isinstance(value, dict):
            return

        message = parser.parse(json.dumps(value))

        assert message.kind is InboundKind.UNSTRUCTURED

    @given(name=player_names, text=chat_text)
    def test_angle_bracket_chat_recovers_sender(self, name, text):
        message = parser.parse(f"<{name}> {text}")

        assert message.sender == name
        assert message.text == text

    @given(text=st.text(alphabet="abcdefghijklmnopqrstuvwxyz ", min_size=1, max_size=40))
    def test_text_without_markers_uses_fallback_sender(self, text):
        message = parser.parse(text)

        assert message.sender == FALLBACK_SENDER
        assert message.text == text.strip()


class TestClassifierProperties:
    """
    **Feature: frame classification**

    Command responses, error reports and unrecognized purposes are never
    classified as chat, whatever their body contains.
    """

    @given(
        purpose=st.sampled_from(["commandResponse", "error", "subscribe", "other"]),
        body=st.dictionaries(st.sampled_from(["sender", "message", "eventName", "type", "player"]),
                             st.text(max_size=10), max_size=5)
    )
    def test_non_event_frames_never_chat(self, purpose, body):
        frame = json.dumps({"header": {"messagePurpose": purpose}, "body": body})

        event = classifier.classify(parser.parse(frame))

        assert event.event_type is DomainEventType.UNKNOWN

    @given(body=st.dictionaries(st.text(max_size=10), json_values, max_size=6))
    def test_event_classification_never_raises(self, body):
        frame = json.dumps({"header": {"messagePurpose": "event"}, "body": body})

        event = classifier.classify(parser.parse(frame))

        assert event.event_type in DomainEventType
