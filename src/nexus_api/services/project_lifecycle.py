"""
Project Lifecycle Manager

Enforces the project state machine:

    OPEN --assign--> IN_PROGRESS --complete--> COMPLETED
    OPEN --cancel--> CANCELLED

Multi-row changes run inside one UnitOfWork transaction with the project row locked.
Events are published only after the transaction has committed.
"""

from datetime import date
from typing import List
from typing import Optional

from loguru import logger

from nexus_api.auth.principal import Principal
from nexus_api.db.unit_of_work import Repositories
from nexus_api.db.unit_of_work import UnitOfWork
from nexus_api.domain.enums import EventType
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus
from nexus_api.domain.enums import Role
from nexus_api.domain.models import Project
from nexus_api.domain.models import Proposal
from nexus_api.errors import InvalidInputError
from nexus_api.errors import InvalidStateError
from nexus_api.errors import NotFoundError
from nexus_api.errors import PermissionDeniedError
from nexus_api.events.publisher import EventPublisher
from nexus_api.schemas.schemas import ProjectCreateRequest
from nexus_api.schemas.schemas import ProjectUpdateRequest


def ensure_project_owner(principal: Principal, project: Project, action: str) -> None:
    """Raise PermissionDeniedError unless the caller owns the project or is ADMIN."""
    if principal.is_admin or principal.user_id == project.client_id:
        return
    raise PermissionDeniedError(f"Only the project owner can {action}")


class ProjectLifecycleManager:
    """Creates projects and drives their status transitions."""

    def __init__(self, unit_of_work: UnitOfWork, publisher: EventPublisher):
        self.uow = unit_of_work
        self.publisher = publisher

    # ────────────────────────────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────────────────────────────

    async def get_project(self, project_id: int) -> Project:
        project = await self.uow.repositories().projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project not found with id: {project_id}")
        return project

    async def list_projects(
        self,
        keyword: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
        category: Optional[str] = None,
    ) -> List[Project]:
        return await self.uow.repositories().projects.list(keyword=keyword, status=status, category=category)

    async def list_client_projects(self, client_id: int) -> List[Project]:
        return await self.uow.repositories().projects.list_by_client(client_id)

    # ────────────────────────────────────────────────────────────────────
    # Writes
    # ────────────────────────────────────────────────────────────────────

    async def create_project(self, principal: Principal, body: ProjectCreateRequest) -> Project:
        """
        Post a new OPEN project owned by the caller.

        An ADMIN may post on behalf of ``body.client_id``.

        Raises:
            PermissionDeniedError: Caller is neither CLIENT nor ADMIN
            InvalidInputError: Budget range inverted or deadline not in the future
        """
        principal.require_role(Role.CLIENT)

        if body.budget_min > body.budget_max:
            raise InvalidInputError("budget_min must not exceed budget_max")
        if body.deadline <= date.today():
            raise InvalidInputError("deadline must be in the future")

        owner_id = body.client_id if (principal.is_admin and body.client_id) else principal.user_id

        project = await self.uow.repositories().projects.create(
            {
                "client_id": owner_id,
                "title": body.title,
                "description": body.description,
                "budget_min": body.budget_min,
                "budget_max": body.budget_max,
                "required_skills": body.required_skills,
                "category": body.category,
                "duration_days": body.duration_days,
                "deadline": body.deadline,
            }
        )

        logger.info("Project created", project_id=project.id, client_id=project.client_id)
        self.publisher.publish(
            EventType.PROJECT_CREATED,
            project.id,
            {"project_id": project.id, "client_id": project.client_id, "title": project.title},
        )
        return project

    async def update_project(self, principal: Principal, project_id: int, body: ProjectUpdateRequest) -> Project:
        """
        Edit an OPEN project.

        Raises:
            NotFoundError: Project does not exist
            PermissionDeniedError: Caller is not the owner
            InvalidStateError: Project is not OPEN
            InvalidInputError: The resulting budget range would be inverted
        """
        fields = body.model_dump(exclude_unset=True, exclude_none=True)

        async with self.uow.transaction() as repos:
            project = await self._lock_project(repos, project_id)
            ensure_project_owner(principal, project, "update this project")

            if project.status is not ProjectStatus.OPEN:
                raise InvalidStateError(f"Cannot update a project in status {project.status.value}")

            budget_min = fields.get("budget_min", project.budget_min)
            budget_max = fields.get("budget_max", project.budget_max)
            if budget_min > budget_max:
                raise InvalidInputError("budget_min must not exceed budget_max")

            updated = await repos.projects.update_fields(project_id, fields)

        logger.info("Project updated", project_id=project_id, fields=sorted(fields))
        self.publisher.publish(
            EventType.PROJECT_UPDATED,
            project_id,
            {"project_id": project_id, "client_id": updated.client_id, "title": updated.title},
        )
        return updated

    async def delete_project(self, principal: Principal, project_id: int) -> None:
        """
        Delete a project and (by cascade) its proposals.

        Raises:
            NotFoundError: Project does not exist
            PermissionDeniedError: Caller is not the owner
            InvalidStateError: Project is IN_PROGRESS
        """
        async with self.uow.transaction() as repos:
            project = await self._lock_project(repos, project_id)
            ensure_project_owner(principal, project, "delete this project")

            if project.status is ProjectStatus.IN_PROGRESS:
                raise InvalidStateError("Cannot delete a project that is in progress")

            await repos.projects.delete(project_id)

        logger.info("Project deleted", project_id=project_id)

    async def assign_freelancer(
        self,
        project_id: int,
        freelancer_id: int,
        repos: Optional[Repositories] = None,
    ) -> Project:
        """
        Assign a freelancer and move the project to IN_PROGRESS.

        Assigning the freelancer who is already assigned is a no-op. When ``repos`` is given
        the assignment joins the caller's transaction (the project row must already be locked).

        Raises:
            NotFoundError: Project does not exist
            InvalidStateError: Project is not OPEN and has a different (or no) freelancer
        """
        if repos is not None:
            return await self._assign(repos, project_id, freelancer_id)

        async with self.uow.transaction() as tx:
            return await self._assign(tx, project_id, freelancer_id)

    async def _assign(self, repos: Repositories, project_id: int, freelancer_id: int) -> Project:
        project = await self._lock_project(repos, project_id)

        if project.assigned_freelancer_id == freelancer_id and project.status is not ProjectStatus.OPEN:
            logger.debug("Freelancer already assigned", project_id=project_id, freelancer_id=freelancer_id)
            return project

        if project.status is not ProjectStatus.OPEN:
            raise InvalidStateError(
                f"Cannot assign a freelancer to a project in status {project.status.value}"
            )

        updated = await repos.projects.set_assignment(project_id, freelancer_id, ProjectStatus.IN_PROGRESS)
        logger.info("Freelancer assigned", project_id=project_id, freelancer_id=freelancer_id)
        return updated

    async def complete_project(self, principal: Principal, project_id: int) -> Project:
        """
        Mark an IN_PROGRESS project COMPLETED.

        Raises:
            NotFoundError, PermissionDeniedError, InvalidStateError
        """
        async with self.uow.transaction() as repos:
            project = await self._lock_project(repos, project_id)
            ensure_project_owner(principal, project, "complete this project")

            if project.status is not ProjectStatus.IN_PROGRESS:
                raise InvalidStateError(f"Cannot complete a project in status {project.status.value}")

            updated = await repos.projects.set_status(project_id, ProjectStatus.COMPLETED)

        logger.info("Project completed", project_id=project_id)
        return updated

    async def cancel_project(self, principal: Principal, project_id: int) -> Project:
        """
        Cancel an OPEN project and reject every PENDING proposal on it.

        Raises:
            NotFoundError, PermissionDeniedError, InvalidStateError
        """
        async with self.uow.transaction() as repos:
            project = await self._lock_project(repos, project_id)
            ensure_project_owner(principal, project, "cancel this project")

            if project.status is not ProjectStatus.OPEN:
                raise InvalidStateError(f"Cannot cancel a project in status {project.status.value}")

            pending = await repos.proposals.list_by_project_and_status(project_id, ProposalStatus.PENDING)
            rejected = await repos.proposals.update_status([p.id for p in pending], ProposalStatus.REJECTED)
            updated = await repos.projects.set_status(project_id, ProjectStatus.CANCELLED)

        logger.info("Project cancelled", project_id=project_id, rejected_proposals=len(rejected))
        self._publish_rejections(updated, rejected)
        self.publisher.publish(
            EventType.PROJECT_CANCELLED,
            project_id,
            {"project_id": project_id, "client_id": updated.client_id, "title": updated.title},
        )
        return updated

    # ────────────────────────────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────────────────────────────

    async def _lock_project(self, repos: Repositories, project_id: int) -> Project:
        project = await repos.projects.get_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project not found with id: {project_id}")
        return project

    def _publish_rejections(self, project: Project, rejected: List[Proposal]) -> None:
        for proposal in rejected:
            self.publisher.publish(
                EventType.PROPOSAL_REJECTED,
                proposal.id,
                proposal_event_payload(project, proposal),
            )


def proposal_event_payload(project: Project, proposal: Proposal) -> dict:
    """Payload shared by all proposal.* events."""
    return {
        "proposal_id": proposal.id,
        "project_id": project.id,
        "project_title": project.title,
        "client_id": project.client_id,
        "freelancer_id": proposal.freelancer_id,
    }

