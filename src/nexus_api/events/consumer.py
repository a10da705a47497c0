"""
Queue Consumer for lifecycle events

Background task that polls the event queues and turns each event into in-app
notifications.
"""

import asyncio
from typing import Awaitable
from typing import Callable
from typing import Iterable

from loguru import logger

from nexus_api.events.queue_client import EventQueueClient
from nexus_api.events.schemas import DomainEvent

EventHandler = Callable[[DomainEvent], Awaitable[None]]


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error is transient and the message should be redelivered.

    Retryable errors (transient failures):
    - Timeout errors
    - Connection / network errors
    - HTTP 429, 503 and 504
    - Database connection errors

    Everything else (validation errors, malformed messages, unknown entities) is permanent.
    """
    error_str = str(error).lower()
    error_type = type(error).__name__

    if isinstance(error, (TimeoutError, ConnectionError, asyncio.TimeoutError)):
        return True

    if "timeout" in error_type.lower() or "timeout" in error_str:
        return True

    if "connection" in error_type.lower() or "connection" in error_str:
        return True

    if (
        "503" in error_str
        or "504" in error_str
        or "service unavailable" in error_str
        or "gateway timeout" in error_str
    ):
        return True

    if "429" in error_str or "rate limit" in error_str or "too many requests" in error_str:
        return True

    return False


async def process_messages(
    queue_client: EventQueueClient,
    handler: EventHandler,
    visibility_timeout: int = 60,
    max_dequeue_count: int = 5,
) -> int:
    """
    Receive one batch from a queue and hand every event to ``handler``.

    A message is deleted after it is handled, after a permanent failure, or once it has
    been dequeued ``max_dequeue_count`` times. Transient failures leave it on the queue
    to become visible again after ``visibility_timeout``.

    Returns:
        Number of messages handled successfully
    """
    messages = await asyncio.to_thread(queue_client.receive_messages, 16, visibility_timeout)
    handled = 0

    for msg in messages:
        try:
            event = DomainEvent.from_message(msg.content)
            with logger.contextualize(event_id=event.event_id, event_type=event.event_type.value):
                await handler(event)
            await asyncio.to_thread(queue_client.delete_message, msg)
            handled += 1

        except Exception as e:
            dequeue_count = getattr(msg, "dequeue_count", None) or 1
            if is_retryable_error(e) and dequeue_count < max_dequeue_count:
                logger.warning(
                    f"Transient error handling event, will be redelivered: {e}",
                    queue=queue_client.queue_name,
                    dequeue_count=dequeue_count,
                )
                continue

            logger.error(
                f"Dropping event message after failure: {e}",
                queue=queue_client.queue_name,
                dequeue_count=dequeue_count,
                error_type=type(e).__name__,
                exc_info=True,
            )
            await asyncio.to_thread(queue_client.delete_message, msg)

    return handled


async def start_event_consumer(
    queue_clients: Iterable[EventQueueClient],
    handler: EventHandler,
    poll_interval_seconds: float = 5.0,
    visibility_timeout: int = 60,
    max_dequeue_count: int = 5,
) -> None:
    """
    Poll every queue in turn until cancelled.

    Runs as an async background task in the web app (see main.create_app).
    """
    queue_clients = list(queue_clients)
    logger.info(
        "Event consumer started",
        queues=[client.queue_name for client in queue_clients],
    )

    while True:
        try:
            for queue_client in queue_clients:
                await process_messages(queue_client, handler, visibility_timeout, max_dequeue_count)
        except asyncio.CancelledError:
            logger.info("Event consumer task cancelled - shutting down")
            raise
        except Exception as e:
            logger.error(f"Event consumer error: {e}", exc_info=True)

        await asyncio.sleep(poll_interval_seconds)
