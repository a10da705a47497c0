"""Tests for the project lifecycle manager."""

from datetime import date
from decimal import Decimal

import pytest

from nexus_api.domain.enums import EventType
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus
from nexus_api.errors import InvalidInputError
from nexus_api.errors import InvalidStateError
from nexus_api.errors import NotFoundError
from nexus_api.errors import PermissionDeniedError
from nexus_api.schemas.schemas import ProjectCreateRequest
from nexus_api.schemas.schemas import ProjectUpdateRequest
from tests.fixtures.service_fixtures import CLIENT_ID
from tests.fixtures.service_fixtures import FREELANCER_A_ID
from tests.fixtures.service_fixtures import FREELANCER_B_ID
from tests.fixtures.service_fixtures import OTHER_CLIENT_ID
from tests.fixtures.service_fixtures import admin_principal
from tests.fixtures.service_fixtures import client_principal
from tests.fixtures.service_fixtures import freelancer_principal
from tests.fixtures.service_fixtures import make_project_request
from tests.fixtures.service_fixtures import make_proposal_request


class TestCreateProject:
    """Tests for create_project."""

    @pytest.mark.asyncio
    async def test_create_project_is_open_with_zero_proposals(self, project_manager, recording_publisher):
        project = await project_manager.create_project(client_principal(), make_project_request())

        assert project.status is ProjectStatus.OPEN
        assert project.proposal_count == 0
        assert project.client_id == CLIENT_ID
        assert project.assigned_freelancer_id is None
        assert project.budget_min == Decimal("100")
        assert project.required_skills == ["Python", "FastAPI"]

        (event,) = recording_publisher.events
        assert event.event_type is EventType.PROJECT_CREATED
        assert event.key == str(project.id)
        assert event.payload["client_id"] == CLIENT_ID
        assert event.payload["title"] == "Build a REST API"

    @pytest.mark.asyncio
    async def test_freelancer_cannot_create_project(self, project_manager, recording_publisher):
        with pytest.raises(PermissionDeniedError):
            await project_manager.create_project(freelancer_principal(), make_project_request())

        assert recording_publisher.events == []

    @pytest.mark.asyncio
    async def test_admin_creates_on_behalf_of_client(self, project_manager):
        project = await project_manager.create_project(
            admin_principal(), make_project_request(client_id=OTHER_CLIENT_ID)
        )

        assert project.client_id == OTHER_CLIENT_ID

    @pytest.mark.asyncio
    async def test_client_id_ignored_for_non_admin(self, project_manager):
        project = await project_manager.create_project(
            client_principal(), make_project_request(client_id=OTHER_CLIENT_ID)
        )

        assert project.client_id == CLIENT_ID

    @pytest.mark.asyncio
    async def test_past_deadline_rejected_even_without_schema_validation(self, project_manager):
        body = ProjectCreateRequest.model_construct(
            **make_project_request().model_dump(exclude={"deadline"}),
            deadline=date(2020, 1, 1),
        )

        with pytest.raises(InvalidInputError):
            await project_manager.create_project(client_principal(), body)


class TestProjectReads:
    """Tests for get_project / list_projects / list_client_projects."""

    @pytest.mark.asyncio
    async def test_get_missing_project_raises_not_found(self, project_manager):
        with pytest.raises(NotFoundError):
            await project_manager.get_project(999)

    @pytest.mark.asyncio
    async def test_list_projects_filters(self, project_manager):
        await project_manager.create_project(client_principal(), make_project_request(title="Mobile app", category="Mobile"))
        await project_manager.create_project(client_principal(), make_project_request(title="Data pipeline"))
        await project_manager.create_project(
            client_principal(OTHER_CLIENT_ID), make_project_request(title="Logo design", category="Design")
        )

        assert len(await project_manager.list_projects()) == 3
        assert [p.title for p in await project_manager.list_projects(keyword="pipeline")] == ["Data pipeline"]
        assert [p.title for p in await project_manager.list_projects(category="Design")] == ["Logo design"]
        assert len(await project_manager.list_projects(status=ProjectStatus.IN_PROGRESS)) == 0
        assert len(await project_manager.list_client_projects(CLIENT_ID)) == 2


class TestAssignFreelancer:
    """Tests for assign_freelancer."""

    @pytest.mark.asyncio
    async def test_assign_moves_project_in_progress(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())

        assigned = await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        assert assigned.status is ProjectStatus.IN_PROGRESS
        assert assigned.assigned_freelancer_id == FREELANCER_A_ID

    @pytest.mark.asyncio
    async def test_assign_unknown_project_raises_not_found(self, project_manager):
        with pytest.raises(NotFoundError):
            await project_manager.assign_freelancer(404, FREELANCER_A_ID)

    @pytest.mark.asyncio
    async def test_reassigning_same_freelancer_is_a_no_op(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        first = await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        second = await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        assert second.status is ProjectStatus.IN_PROGRESS
        assert second.assigned_freelancer_id == FREELANCER_A_ID
        assert second.updated_at == first.updated_at

    @pytest.mark.asyncio
    async def test_assigning_different_freelancer_raises_invalid_state(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        with pytest.raises(InvalidStateError):
            await project_manager.assign_freelancer(project.id, FREELANCER_B_ID)

        assert (await project_manager.get_project(project.id)).assigned_freelancer_id == FREELANCER_A_ID


class TestUpdateAndDelete:
    """Tests for update_project / delete_project."""

    @pytest.mark.asyncio
    async def test_owner_updates_open_project(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())

        updated = await project_manager.update_project(
            client_principal(), project.id, ProjectUpdateRequest(title="Build a GraphQL API", budget_max=Decimal("800"))
        )

        assert updated.title == "Build a GraphQL API"
        assert updated.budget_max == Decimal("800")
        assert updated.description == project.description

    @pytest.mark.asyncio
    async def test_update_publishes_project_updated(self, project_manager, recording_publisher):
        project = await project_manager.create_project(client_principal(), make_project_request())

        await project_manager.update_project(client_principal(), project.id, ProjectUpdateRequest(title="Build a GraphQL API"))

        assert recording_publisher.types == ["project.created", "project.updated"]
        (event,) = recording_publisher.of_type(EventType.PROJECT_UPDATED)
        assert event.payload == {"project_id": project.id, "client_id": CLIENT_ID, "title": "Build a GraphQL API"}

    @pytest.mark.asyncio
    async def test_rejected_update_publishes_nothing(self, project_manager, recording_publisher):
        project = await project_manager.create_project(client_principal(), make_project_request())

        with pytest.raises(InvalidInputError):
            await project_manager.update_project(client_principal(), project.id, ProjectUpdateRequest(budget_min=Decimal("900")))

        assert recording_publisher.types == ["project.created"]

    @pytest.mark.asyncio
    async def test_partial_update_cannot_invert_budget(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())

        with pytest.raises(InvalidInputError):
            await project_manager.update_project(client_principal(), project.id, ProjectUpdateRequest(budget_min=Decimal("900")))

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())

        with pytest.raises(PermissionDeniedError):
            await project_manager.update_project(
                client_principal(OTHER_CLIENT_ID), project.id, ProjectUpdateRequest(title="Hijacked")
            )

    @pytest.mark.asyncio
    async def test_update_in_progress_project_raises_invalid_state(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        with pytest.raises(InvalidStateError):
            await project_manager.update_project(client_principal(), project.id, ProjectUpdateRequest(title="Late change"))

    @pytest.mark.asyncio
    async def test_delete_removes_project_and_proposals(self, project_manager, proposal_manager, in_memory_uow):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await proposal_manager.submit_proposal(freelancer_principal(), project.id, make_proposal_request())

        await project_manager.delete_project(client_principal(), project.id)

        assert in_memory_uow.store.tables["projects"] == {}
        assert in_memory_uow.store.tables["proposals"] == {}

    @pytest.mark.asyncio
    async def test_delete_in_progress_project_raises_invalid_state(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        with pytest.raises(InvalidStateError):
            await project_manager.delete_project(client_principal(), project.id)


class TestCompleteAndCancel:
    """Tests for complete_project / cancel_project."""

    @pytest.mark.asyncio
    async def test_complete_in_progress_project(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await project_manager.assign_freelancer(project.id, FREELANCER_A_ID)

        completed = await project_manager.complete_project(client_principal(), project.id)

        assert completed.status is ProjectStatus.COMPLETED
        assert completed.assigned_freelancer_id == FREELANCER_A_ID

    @pytest.mark.asyncio
    async def test_complete_open_project_raises_invalid_state(self, project_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())

        with pytest.raises(InvalidStateError):
            await project_manager.complete_project(client_principal(), project.id)

    @pytest.mark.asyncio
    async def test_cancel_rejects_pending_proposals(self, project_manager, proposal_manager, recording_publisher):
        project = await project_manager.create_project(client_principal(), make_project_request())
        a = await proposal_manager.submit_proposal(freelancer_principal(FREELANCER_A_ID), project.id, make_proposal_request())
        b = await proposal_manager.submit_proposal(freelancer_principal(FREELANCER_B_ID), project.id, make_proposal_request())
        recording_publisher.events.clear()

        cancelled = await project_manager.cancel_project(client_principal(), project.id)

        assert cancelled.status is ProjectStatus.CANCELLED
        assert (await proposal_manager.get_proposal(a.id)).status is ProposalStatus.REJECTED
        assert (await proposal_manager.get_proposal(b.id)).status is ProposalStatus.REJECTED
        assert sorted(recording_publisher.types) == [
            "project.cancelled",
            "proposal.rejected",
            "proposal.rejected",
        ]

    @pytest.mark.asyncio
    async def test_cancelled_project_does_not_accept_proposals(self, project_manager, proposal_manager):
        project = await project_manager.create_project(client_principal(), make_project_request())
        await project_manager.cancel_project(client_principal(), project.id)

        with pytest.raises(InvalidStateError):
            await proposal_manager.submit_proposal(freelancer_principal(), project.id, make_proposal_request())
