####################################
# --- Request/response schemas --- #
####################################

from datetime import date
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import PlainSerializer
from pydantic import field_validator
from pydantic import model_validator
from pydantic.alias_generators import to_camel

from nexus_api.domain.enums import NotificationType
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus

COVER_LETTER_MIN_LENGTH = 50
COVER_LETTER_MAX_LENGTH = 5000

# Amounts are stored as NUMERIC and returned to clients as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiModel(BaseModel):
    """Base for API bodies: camelCase on the wire, snake_case attribute names accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _normalise_skills(skills: List[str]) -> List[str]:
    cleaned = []
    for skill in skills:
        skill = skill.strip()
        if skill and skill not in cleaned:
            cleaned.append(skill)
    return cleaned


# ════════════════════════════════════════════════════════════════════════════
# Project Schemas
# ════════════════════════════════════════════════════════════════════════════


# create (Crud)
class ProjectCreateRequest(ApiModel):
    """Request body for posting a project. ``client_id`` is only honoured for ADMIN callers."""

    client_id: Optional[int] = Field(default=None, gt=0)
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    budget_min: Decimal = Field(ge=0)
    budget_max: Decimal = Field(gt=0)
    required_skills: List[str] = Field(default_factory=list)
    category: Optional[str] = Field(default=None, max_length=100)
    duration_days: Optional[int] = Field(default=None, ge=1)
    deadline: date

    @field_validator("title", "description")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("required_skills")
    @classmethod
    def validate_skills(cls, v: List[str]) -> List[str]:
        return _normalise_skills(v)

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v: date) -> date:
        """Validate that the deadline lies in the future."""
        if v <= date.today():
            raise ValueError("deadline must be in the future")
        return v

    @model_validator(mode="after")
    def validate_budget_range(self):
        """Validate that budget_min <= budget_max."""
        if self.budget_min > self.budget_max:
            raise ValueError("budget_min must not exceed budget_max")
        return self


# update (crUd)
class ProjectUpdateRequest(ApiModel):
    """Partial update of an OPEN project. Omitted fields are left unchanged."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    budget_min: Optional[Decimal] = Field(default=None, ge=0)
    budget_max: Optional[Decimal] = Field(default=None, gt=0)
    required_skills: Optional[List[str]] = None
    category: Optional[str] = Field(default=None, max_length=100)
    duration_days: Optional[int] = Field(default=None, ge=1)
    deadline: Optional[date] = None

    @field_validator("title", "description")
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("required_skills")
    @classmethod
    def validate_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _normalise_skills(v)

    @field_validator("deadline")
    @classmethod
    def validate_deadline(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v <= date.today():
            raise ValueError("deadline must be in the future")
        return v

    @model_validator(mode="after")
    def validate_budget_range(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min must not exceed budget_max")
        return self


# read (cRud)
class ProjectResponse(ApiModel):
    """Project details."""

    id: int
    client_id: int
    title: str
    description: str
    budget_min: Money
    budget_max: Money
    required_skills: List[str]
    category: Optional[str] = None
    duration_days: Optional[int] = None
    deadline: date
    status: ProjectStatus
    assigned_freelancer_id: Optional[int] = None
    proposal_count: int
    created_at: datetime
    updated_at: datetime


# ════════════════════════════════════════════════════════════════════════════
# Proposal Schemas
# ════════════════════════════════════════════════════════════════════════════


# create (Crud)
class ProposalSubmitRequest(ApiModel):
    """Request body for submitting a proposal. ``freelancer_id`` defaults to the caller."""

    freelancer_id: Optional[int] = Field(default=None, gt=0)
    cover_letter: str = Field(min_length=COVER_LETTER_MIN_LENGTH, max_length=COVER_LETTER_MAX_LENGTH)
    proposed_budget: Decimal = Field(gt=0)
    delivery_days: int = Field(ge=1)

    @field_validator("cover_letter")
    @classmethod
    def validate_cover_letter(cls, v: str) -> str:
        """Validate the cover letter length ignoring surrounding whitespace."""
        v = v.strip()
        if len(v) < COVER_LETTER_MIN_LENGTH:
            raise ValueError(f"cover letter must be at least {COVER_LETTER_MIN_LENGTH} characters")
        return v


# read (cRud)
class ProposalResponse(ApiModel):
    """Proposal details."""

    id: int
    project_id: int
    freelancer_id: int
    cover_letter: str
    proposed_budget: Money
    delivery_days: int
    status: ProposalStatus
    submitted_at: datetime
    updated_at: datetime


# ════════════════════════════════════════════════════════════════════════════
# AI Schemas
# ════════════════════════════════════════════════════════════════════════════


class RankedProposal(ProposalResponse):
    """A proposal with the AI score (0-100) and the model's reasoning."""

    ai_score: int = Field(ge=0, le=100)
    ai_reasoning: str = ""


class ProjectSummary(ApiModel):
    """AI generated project summary."""

    project_id: int
    summary: str
    key_points: List[str] = Field(default_factory=list)


class ProjectRecommendation(ApiModel):
    """An open project recommended to a freelancer."""

    project_id: int
    title: str
    match_score: int = Field(ge=0, le=100)
    reason: str = ""
    budget_min: Money
    budget_max: Money
    required_skills: List[str] = Field(default_factory=list)


# ════════════════════════════════════════════════════════════════════════════
# Notification Schemas
# ════════════════════════════════════════════════════════════════════════════


class NotificationResponse(ApiModel):
    """In-app notification."""

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    related_project_id: Optional[int] = None
    related_proposal_id: Optional[int] = None
    is_read: bool
    email_sent: bool
    created_at: datetime
    read_at: Optional[datetime] = None


class UnreadCountResponse(ApiModel):
    user_id: int
    unread_count: int


class MarkAllReadResponse(ApiModel):
    user_id: int
    updated: int
