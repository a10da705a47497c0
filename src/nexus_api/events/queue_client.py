"""
Azure Storage Queue Client for lifecycle events

Thin wrapper over ``QueueClient`` used by both the publisher (send) and the notification
consumer (receive / delete). The SDK is synchronous; async callers run it in a worker thread.
"""

from typing import List
from typing import Optional

from azure.core.exceptions import AzureError
from azure.core.exceptions import ResourceExistsError
from azure.storage.queue import QueueClient
from azure.storage.queue import QueueMessage
from loguru import logger


class EventQueueClient:
    """One Azure Storage Queue holding serialized DomainEvent envelopes."""

    def __init__(self, connection_string: str, queue_name: str, client: Optional[QueueClient] = None):
        """
        Initialize queue client and make sure the queue exists.

        Args:
            connection_string: Azure Storage connection string
            queue_name: Queue name (e.g., "proposal-events")
            client: Pre-built QueueClient (tests)
        """
        self.queue_name = queue_name
        self.client = client or QueueClient.from_connection_string(connection_string, queue_name)
        self._ensure_queue()

    def _ensure_queue(self) -> None:
        try:
            self.client.create_queue()
            logger.info(f"Queue '{self.queue_name}' ready")
        except ResourceExistsError:
            logger.debug("Queue exists", queue=self.queue_name)
        except AzureError as e:
            # Broker unreachable at boot: later sends fail and are logged by the publisher
            logger.warning(f"Could not create queue '{self.queue_name}': {e}", queue=self.queue_name)

    def send(self, content: str) -> None:
        """
        Send one message.

        Raises:
            Exception: If the queue operation fails
        """
        self.client.send_message(content)

    def receive_messages(self, max_messages: int = 16, visibility_timeout: int = 60) -> List[QueueMessage]:
        """
        Receive up to ``max_messages``; they stay invisible for ``visibility_timeout`` seconds.

        Raises:
            Exception: If the queue operation fails
        """
        messages = self.client.receive_messages(max_messages=max_messages, visibility_timeout=visibility_timeout)
        return list(messages)

    def delete_message(self, message: QueueMessage) -> None:
        """Delete (acknowledge) a message after processing."""
        self.client.delete_message(message)

    def get_queue_length(self) -> int:
        """Approximate number of messages in the queue (0 if it cannot be read)."""
        try:
            properties = self.client.get_queue_properties()
            return properties.approximate_message_count
        except Exception as e:
            logger.error(f"Failed to get queue length: {e}")
            return 0
