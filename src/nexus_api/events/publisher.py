"""
Event Publisher

Fire-and-forget notification of lifecycle changes. ``publish`` schedules delivery on the
running event loop and returns at once: there is no acknowledgement wait and no retry,
and delivery failures are logged and dropped. Callers publish only after their
transaction has committed.
"""

import asyncio
from typing import Any
from typing import Dict
from typing import Optional
from typing import Set
from typing import Union

from loguru import logger

from nexus_api.domain.enums import EventType
from nexus_api.events.queue_client import EventQueueClient
from nexus_api.events.schemas import DomainEvent


class EventPublisher:
    """Base publisher: schedules ``_deliver`` as a background task per event."""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()

    def publish(self, topic: Union[EventType, str], key: Any, payload: Optional[Dict[str, Any]] = None) -> DomainEvent:
        """
        Schedule delivery of one event and return the envelope without waiting.

        Args:
            topic: Event type, e.g. ``proposal.accepted``
            key: Id of the entity the event is about
            payload: Event body (JSON-serialisable)
        """
        event = DomainEvent(event_type=EventType(topic), key=str(key), payload=payload or {})

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, event dropped", event_type=event.event_type.value, key=event.key)
            return event

        task = loop.create_task(self._deliver_safely(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return event

    async def _deliver_safely(self, event: DomainEvent) -> None:
        try:
            await self._deliver(event)
            logger.debug(
                f"Published {event.event_type.value}",
                event_id=event.event_id,
                event_type=event.event_type.value,
                key=event.key,
            )
        except Exception as e:
            logger.error(
                f"Failed to publish {event.event_type.value}: {e}",
                event_id=event.event_id,
                event_type=event.event_type.value,
                key=event.key,
                error_type=type(e).__name__,
            )

    async def _deliver(self, event: DomainEvent) -> None:
        raise NotImplementedError

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self, timeout: Optional[float] = 10.0) -> None:
        """Wait for in-flight deliveries (called on shutdown)."""
        if not self._pending:
            return
        pending = list(self._pending)
        logger.info(f"Draining {len(pending)} pending event(s)")
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} event(s) still pending after drain timeout")


class LoggingEventPublisher(EventPublisher):
    """Publisher used when no broker is configured: events are only logged."""

    async def _deliver(self, event: DomainEvent) -> None:
        logger.info(
            f"Event {event.event_type.value} (no broker configured)",
            event_id=event.event_id,
            event_type=event.event_type.value,
            key=event.key,
            payload=event.payload,
        )


class QueueEventPublisher(EventPublisher):
    """Publishes to Azure Storage Queues: ``project.*`` and ``proposal.*`` go to separate queues."""

    def __init__(self, project_queue: EventQueueClient, proposal_queue: EventQueueClient):
        super().__init__()
        self.queues = {
            "project": project_queue,
            "proposal": proposal_queue,
        }

    @classmethod
    def from_settings(cls, settings) -> "QueueEventPublisher":
        connection_string = settings.azure_queue_connection_string
        return cls(
            project_queue=EventQueueClient(connection_string, settings.project_events_queue),
            proposal_queue=EventQueueClient(connection_string, settings.proposal_events_queue),
        )

    def queue_for(self, event_type: EventType) -> EventQueueClient:
        return self.queues[event_type.entity]

    async def _deliver(self, event: DomainEvent) -> None:
        queue = self.queue_for(event.event_type)
        # QueueClient is blocking
        await asyncio.to_thread(queue.send, event.to_message())
