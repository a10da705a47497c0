"""
Proposal API Routes

REST API endpoints for submitting proposals and accepting or rejecting them.
"""

from typing import List
from typing import Union

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import status

from nexus_api.auth.principal import Principal
from nexus_api.dependencies import get_principal
from nexus_api.dependencies import get_proposal_manager
from nexus_api.schemas.schemas import ProposalResponse
from nexus_api.schemas.schemas import ProposalSubmitRequest
from nexus_api.schemas.schemas import RankedProposal
from nexus_api.services.proposal_lifecycle import ProposalLifecycleManager

ROUTER_PROPOSALS = APIRouter(tags=["Proposals"])


# create (Crud)
@ROUTER_PROPOSALS.post(
    "/projects/{project_id}/proposals",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a proposal",
    responses={
        201: {"description": "Proposal stored as PENDING"},
        404: {"description": "Project not found"},
        409: {"description": "Project not OPEN, or a proposal from this freelancer already exists"},
    },
)
async def submit_proposal(
    project_id: int,
    body: ProposalSubmitRequest,
    principal: Principal = Depends(get_principal),
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    return await manager.submit_proposal(principal, project_id, body)


# read (cRud)
@ROUTER_PROPOSALS.get(
    "/projects/{project_id}/proposals",
    response_model=List[Union[RankedProposal, ProposalResponse]],
    summary="List a project's proposals",
    description="With `ranked=true` the proposals are scored by the AI service (empty when it is unavailable).",
)
async def list_project_proposals(
    project_id: int,
    ranked: bool = Query(default=False),
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    if ranked:
        return await manager.get_ranked_proposals(project_id)
    return await manager.list_project_proposals(project_id)


@ROUTER_PROPOSALS.get(
    "/proposals/freelancer/{freelancer_id}",
    response_model=List[ProposalResponse],
    summary="List a freelancer's proposals",
)
async def list_freelancer_proposals(
    freelancer_id: int,
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    return await manager.list_freelancer_proposals(freelancer_id)


@ROUTER_PROPOSALS.get(
    "/proposals/{proposal_id}",
    response_model=ProposalResponse,
    summary="Get a proposal",
    responses={404: {"description": "Proposal not found"}},
)
async def get_proposal(
    proposal_id: int,
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    return await manager.get_proposal(proposal_id)


# update (crUd)
@ROUTER_PROPOSALS.put(
    "/proposals/{proposal_id}/accept",
    response_model=ProposalResponse,
    summary="Accept a proposal",
    description="Accepts the proposal, rejects the other pending proposals and assigns the freelancer.",
    responses={
        403: {"description": "Caller does not own the project"},
        404: {"description": "Proposal not found"},
        409: {"description": "Proposal is not pending"},
    },
)
async def accept_proposal(
    proposal_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    return await manager.accept_proposal(principal, proposal_id)


@ROUTER_PROPOSALS.put(
    "/proposals/{proposal_id}/reject",
    response_model=ProposalResponse,
    summary="Reject a proposal",
    responses={
        403: {"description": "Caller does not own the project"},
        404: {"description": "Proposal not found"},
        409: {"description": "Proposal is not pending"},
    },
)
async def reject_proposal(
    proposal_id: int,
    principal: Principal = Depends(get_principal),
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    return await manager.reject_proposal(principal, proposal_id)
