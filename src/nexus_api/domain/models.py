"""
Domain Models

Plain records built from database rows. Associations are foreign-key fields only;
related records are loaded with explicit repository calls.
"""

from datetime import date
from datetime import datetime
from decimal import Decimal
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from nexus_api.domain.enums import NotificationType
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus


class Project(BaseModel):
    """Project database model."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    title: str
    description: str
    budget_min: Decimal
    budget_max: Decimal
    required_skills: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    duration_days: Optional[int] = None
    deadline: date
    status: ProjectStatus
    assigned_freelancer_id: Optional[int] = None
    proposal_count: int = 0
    created_at: datetime
    updated_at: datetime

    @property
    def is_accepting_proposals(self) -> bool:
        return self.status is ProjectStatus.OPEN


class Proposal(BaseModel):
    """Proposal database model."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    freelancer_id: int
    cover_letter: str
    proposed_budget: Decimal
    delivery_days: int
    status: ProposalStatus
    submitted_at: datetime
    updated_at: datetime


class Notification(BaseModel):
    """Notification database model (append-only apart from the read flag)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    related_project_id: Optional[int] = None
    related_proposal_id: Optional[int] = None
    is_read: bool = False
    email_sent: bool = False
    created_at: datetime
    read_at: Optional[datetime] = None
