"""
Proposal Lifecycle Manager

Enforces the proposal state machine:

    PENDING --accept--> ACCEPTED
    PENDING --reject--> REJECTED

Accepting a proposal rejects every other PENDING proposal on the project and assigns the
freelancer, all in one transaction holding the project row lock. A concurrent second
accept on the same project waits for the lock, then sees a non-PENDING proposal (or a
non-OPEN project) and fails with InvalidStateError.
"""

from typing import List

from loguru import logger

from nexus_api.auth.principal import Principal
from nexus_api.db.unit_of_work import Repositories
from nexus_api.db.unit_of_work import UnitOfWork
from nexus_api.domain.enums import EventType
from nexus_api.domain.enums import ProposalStatus
from nexus_api.domain.enums import Role
from nexus_api.domain.models import Project
from nexus_api.domain.models import Proposal
from nexus_api.errors import ConflictError
from nexus_api.errors import InvalidStateError
from nexus_api.errors import NotFoundError
from nexus_api.errors import PermissionDeniedError
from nexus_api.events.publisher import EventPublisher
from nexus_api.schemas.schemas import ProposalSubmitRequest
from nexus_api.schemas.schemas import RankedProposal
from nexus_api.services.ai_service import AIService
from nexus_api.services.project_lifecycle import ProjectLifecycleManager
from nexus_api.services.project_lifecycle import ensure_project_owner
from nexus_api.services.project_lifecycle import proposal_event_payload


class ProposalLifecycleManager:
    """Proposal intake, acceptance and rejection."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        publisher: EventPublisher,
        project_manager: ProjectLifecycleManager,
        ai_service: AIService,
    ):
        self.uow = unit_of_work
        self.publisher = publisher
        self.project_manager = project_manager
        self.ai_service = ai_service

    # ────────────────────────────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────────────────────────────

    async def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = await self.uow.repositories().proposals.get_by_id(proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal not found with id: {proposal_id}")
        return proposal

    async def list_project_proposals(self, project_id: int) -> List[Proposal]:
        repos = self.uow.repositories()
        if not await repos.projects.exists(project_id):
            raise NotFoundError(f"Project not found with id: {project_id}")
        return await repos.proposals.list_by_project(project_id)

    async def list_freelancer_proposals(self, freelancer_id: int) -> List[Proposal]:
        return await self.uow.repositories().proposals.list_by_freelancer(freelancer_id)

    async def get_ranked_proposals(self, project_id: int) -> List[RankedProposal]:
        """
        Proposals of a project ranked by the AI service, best first.

        Returns an empty list whenever the AI collaborator fails or times out.

        Raises:
            NotFoundError: Project does not exist
        """
        repos = self.uow.repositories()
        project = await repos.projects.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project not found with id: {project_id}")

        proposals = await repos.proposals.list_by_project(project_id)
        return await self.ai_service.rank_proposals(project, proposals)

    # ────────────────────────────────────────────────────────────────────
    # Writes
    # ────────────────────────────────────────────────────────────────────

    async def submit_proposal(self, principal: Principal, project_id: int, submission: ProposalSubmitRequest) -> Proposal:
        """
        Submit a PENDING proposal against an OPEN project.

        Raises:
            PermissionDeniedError: Caller is not a FREELANCER or submits for someone else
            NotFoundError: Project does not exist
            InvalidStateError: Project is not OPEN
            ConflictError: The freelancer already has a proposal on the project
        """
        principal.require_role(Role.FREELANCER)

        freelancer_id = submission.freelancer_id or principal.user_id
        if freelancer_id != principal.user_id and not principal.is_admin:
            raise PermissionDeniedError("Cannot submit a proposal on behalf of another freelancer")

        async with self.uow.transaction() as repos:
            project = await self._lock_project(repos, project_id)

            if not project.is_accepting_proposals:
                raise InvalidStateError("Project is not accepting proposals")

            if await repos.proposals.exists_by_project_and_freelancer(project_id, freelancer_id):
                raise ConflictError("You have already submitted a proposal for this project")

            proposal = await repos.proposals.create(
                {
                    "project_id": project_id,
                    "freelancer_id": freelancer_id,
                    "cover_letter": submission.cover_letter,
                    "proposed_budget": submission.proposed_budget,
                    "delivery_days": submission.delivery_days,
                }
            )
            proposal_count = await repos.projects.refresh_proposal_count(project_id)

        logger.info(
            "Proposal submitted",
            proposal_id=proposal.id,
            project_id=project_id,
            freelancer_id=freelancer_id,
            proposal_count=proposal_count,
        )
        self.publisher.publish(EventType.PROPOSAL_SUBMITTED, proposal.id, proposal_event_payload(project, proposal))
        return proposal

    async def accept_proposal(self, principal: Principal, proposal_id: int) -> Proposal:
        """
        Accept a proposal: reject the other PENDING proposals and assign the freelancer.

        Raises:
            NotFoundError: Proposal (or its project) does not exist
            PermissionDeniedError: Caller does not own the project
            InvalidStateError: Proposal is not PENDING or the project is not OPEN
        """
        async with self.uow.transaction() as repos:
            proposal = await self._get_proposal(repos, proposal_id)
            project = await self._lock_project(repos, proposal.project_id)
            ensure_project_owner(principal, project, "accept proposals")

            # Re-read under the lock: a concurrent accept may have changed it
            proposal = await self._get_proposal(repos, proposal_id)
            if proposal.status is not ProposalStatus.PENDING:
                raise InvalidStateError(f"Proposal is not pending (status: {proposal.status.value})")

            pending = await repos.proposals.list_by_project_and_status(project.id, ProposalStatus.PENDING)
            others = [p.id for p in pending if p.id != proposal.id]

            rejected = await repos.proposals.update_status(others, ProposalStatus.REJECTED)
            (accepted,) = await repos.proposals.update_status([proposal.id], ProposalStatus.ACCEPTED)
            project = await self.project_manager.assign_freelancer(project.id, accepted.freelancer_id, repos=repos)

        logger.info(
            "Proposal accepted",
            proposal_id=accepted.id,
            project_id=project.id,
            freelancer_id=accepted.freelancer_id,
            rejected_proposals=len(rejected),
        )
        self.publisher.publish(EventType.PROPOSAL_ACCEPTED, accepted.id, proposal_event_payload(project, accepted))
        for loser in rejected:
            self.publisher.publish(EventType.PROPOSAL_REJECTED, loser.id, proposal_event_payload(project, loser))
        return accepted

    async def reject_proposal(self, principal: Principal, proposal_id: int) -> Proposal:
        """
        Reject one PENDING proposal. Other proposals are left untouched.

        Raises:
            NotFoundError, PermissionDeniedError, InvalidStateError
        """
        async with self.uow.transaction() as repos:
            proposal = await self._get_proposal(repos, proposal_id)
            project = await self._lock_project(repos, proposal.project_id)
            ensure_project_owner(principal, project, "reject proposals")

            proposal = await self._get_proposal(repos, proposal_id)
            if proposal.status is not ProposalStatus.PENDING:
                raise InvalidStateError(f"Proposal is not pending (status: {proposal.status.value})")

            (rejected,) = await repos.proposals.update_status([proposal.id], ProposalStatus.REJECTED)

        logger.info("Proposal rejected", proposal_id=proposal_id, project_id=project.id)
        self.publisher.publish(EventType.PROPOSAL_REJECTED, rejected.id, proposal_event_payload(project, rejected))
        return rejected

    # ────────────────────────────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────────────────────────────

    async def _get_proposal(self, repos: Repositories, proposal_id: int) -> Proposal:
        proposal = await repos.proposals.get_by_id(proposal_id)
        if proposal is None:
            raise NotFoundError(f"Proposal not found with id: {proposal_id}")
        return proposal

    async def _lock_project(self, repos: Repositories, project_id: int) -> Project:
        project = await repos.projects.get_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project not found with id: {project_id}")
        return project
