"""Fixtures for event publishing."""

from typing import List

import pytest

from nexus_api.domain.enums import EventType
from nexus_api.events.publisher import EventPublisher
from nexus_api.events.schemas import DomainEvent


class RecordingEventPublisher(EventPublisher):
    """Publisher that records envelopes synchronously instead of delivering them."""

    def __init__(self):
        super().__init__()
        self.events: List[DomainEvent] = []

    def publish(self, topic, key, payload=None) -> DomainEvent:
        event = DomainEvent(event_type=EventType(topic), key=str(key), payload=payload or {})
        self.events.append(event)
        return event

    def of_type(self, event_type: EventType) -> List[DomainEvent]:
        return [event for event in self.events if event.event_type is event_type]

    @property
    def types(self) -> List[str]:
        return [event.event_type.value for event in self.events]


@pytest.fixture
def recording_publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()
