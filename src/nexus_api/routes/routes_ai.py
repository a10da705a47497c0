"""AI endpoints: proposal ranking, project summaries and project recommendations."""

from typing import List
from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query

from nexus_api.dependencies import get_ai_service
from nexus_api.dependencies import get_project_manager
from nexus_api.dependencies import get_proposal_manager
from nexus_api.domain.enums import ProjectStatus
from nexus_api.schemas.schemas import ProjectRecommendation
from nexus_api.schemas.schemas import ProjectSummary
from nexus_api.schemas.schemas import RankedProposal
from nexus_api.services.ai_service import AIService
from nexus_api.services.project_lifecycle import ProjectLifecycleManager
from nexus_api.services.proposal_lifecycle import ProposalLifecycleManager

ROUTER_AI = APIRouter(tags=["AI"], prefix="/ai")


@ROUTER_AI.get(
    "/proposals/rank/{project_id}",
    response_model=List[RankedProposal],
    summary="Rank a project's proposals",
    responses={404: {"description": "Project not found"}},
)
async def rank_proposals(
    project_id: int,
    manager: ProposalLifecycleManager = Depends(get_proposal_manager),
):
    """Proposals scored 0-100, best first. Empty when the AI service is unavailable."""
    return await manager.get_ranked_proposals(project_id)


@ROUTER_AI.get(
    "/summary/project/{project_id}",
    response_model=ProjectSummary,
    summary="Summarise a project",
    responses={404: {"description": "Project not found"}},
)
async def summarize_project(
    project_id: int,
    manager: ProjectLifecycleManager = Depends(get_project_manager),
    ai_service: AIService = Depends(get_ai_service),
):
    project = await manager.get_project(project_id)
    return await ai_service.summarize_project(project)


@ROUTER_AI.get(
    "/recommendations/freelancer/{freelancer_id}",
    response_model=List[ProjectRecommendation],
    summary="Recommend open projects to a freelancer",
)
async def recommend_projects(
    freelancer_id: int,
    skills: Optional[str] = Query(default=None, description="Comma separated skills"),
    bio: Optional[str] = Query(default=None),
    manager: ProjectLifecycleManager = Depends(get_project_manager),
    ai_service: AIService = Depends(get_ai_service),
):
    skill_list = [skill.strip() for skill in (skills or "").split(",") if skill.strip()]
    open_projects = await manager.list_projects(status=ProjectStatus.OPEN)
    return await ai_service.recommend_projects(freelancer_id, skill_list, bio, open_projects)
