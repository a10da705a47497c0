"""Event envelope written to the event queues."""

import json
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from uuid import uuid4

from pydantic import BaseModel
from pydantic import Field

from nexus_api.domain.enums import EventType


class DomainEvent(BaseModel):
    """
    Lifecycle event envelope.

    ``key`` is the id of the entity the event is about (project id for ``project.*``,
    proposal id for ``proposal.*``) and orders events per entity for consumers.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    key: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payload: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_message(cls, content: str) -> "DomainEvent":
        """Decode a queue message body. Raises ValueError on malformed content."""
        try:
            return cls.model_validate(json.loads(content))
        except json.JSONDecodeError as e:
            raise ValueError(f"Event message is not valid JSON: {e}") from e
