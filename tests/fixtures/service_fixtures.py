"""Fixtures for the lifecycle managers, principals and request bodies."""

from datetime import date
from datetime import timedelta
from decimal import Decimal

import pytest

from nexus_api.auth.principal import Principal
from nexus_api.domain.enums import Role
from nexus_api.schemas.schemas import ProjectCreateRequest
from nexus_api.schemas.schemas import ProposalSubmitRequest
from nexus_api.services.notification_service import NotificationService
from nexus_api.services.project_lifecycle import ProjectLifecycleManager
from nexus_api.services.proposal_lifecycle import ProposalLifecycleManager

CLIENT_ID = 10
OTHER_CLIENT_ID = 11
FREELANCER_A_ID = 100
FREELANCER_B_ID = 200
ADMIN_ID = 1

COVER_LETTER = (
    "I have built several marketplaces with FastAPI and PostgreSQL and can deliver this on time."
)


def client_principal(user_id: int = CLIENT_ID) -> Principal:
    return Principal(user_id=user_id, email=f"client{user_id}@example.com", roles=frozenset({Role.CLIENT}))


def freelancer_principal(user_id: int = FREELANCER_A_ID) -> Principal:
    return Principal(user_id=user_id, email=f"freelancer{user_id}@example.com", roles=frozenset({Role.FREELANCER}))


def admin_principal() -> Principal:
    return Principal(user_id=ADMIN_ID, email="admin@example.com", roles=frozenset({Role.ADMIN}))


def make_project_request(**overrides) -> ProjectCreateRequest:
    """Project with budget (100, 500) due in 30 days."""
    values = {
        "title": "Build a REST API",
        "description": "Project and proposal service for a freelance marketplace.",
        "budget_min": Decimal("100"),
        "budget_max": Decimal("500"),
        "required_skills": ["Python", "FastAPI"],
        "category": "IT",
        "duration_days": 14,
        "deadline": date.today() + timedelta(days=30),
    }
    values.update(overrides)
    return ProjectCreateRequest(**values)


def make_proposal_request(**overrides) -> ProposalSubmitRequest:
    """Proposal for 200 delivered in 5 days."""
    values = {
        "cover_letter": COVER_LETTER,
        "proposed_budget": Decimal("200"),
        "delivery_days": 5,
    }
    values.update(overrides)
    return ProposalSubmitRequest(**values)


@pytest.fixture
def project_manager(in_memory_uow, recording_publisher) -> ProjectLifecycleManager:
    return ProjectLifecycleManager(in_memory_uow, recording_publisher)


@pytest.fixture
def proposal_manager(in_memory_uow, recording_publisher, project_manager, ai_service) -> ProposalLifecycleManager:
    return ProposalLifecycleManager(in_memory_uow, recording_publisher, project_manager, ai_service)


@pytest.fixture
def notification_service(in_memory_uow) -> NotificationService:
    return NotificationService(in_memory_uow)
