"""Lifecycle events: envelope, publishers and the notification consumer."""

from nexus_api.events.publisher import EventPublisher
from nexus_api.events.publisher import LoggingEventPublisher
from nexus_api.events.publisher import QueueEventPublisher
from nexus_api.events.schemas import DomainEvent

__all__ = ["DomainEvent", "EventPublisher", "LoggingEventPublisher", "QueueEventPublisher"]
