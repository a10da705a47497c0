"""
AI Service

Ranking, summaries and recommendations backed by Gemini. Every operation has a fallback:
when the model is not configured, fails, times out or replies with something unusable,
callers get an empty ranking / recommendation list or a placeholder summary instead of
an error.
"""

import asyncio
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

from loguru import logger

from nexus_api.domain.models import Project
from nexus_api.domain.models import Proposal
from nexus_api.integrations.gemini_client import GeminiClient
from nexus_api.schemas.schemas import ProjectRecommendation
from nexus_api.schemas.schemas import ProjectSummary
from nexus_api.schemas.schemas import ProposalResponse
from nexus_api.schemas.schemas import RankedProposal

SUMMARY_FALLBACK = "Summary generation failed"


def clamp_score(value: Any) -> int:
    """Coerce a model-provided score to an int within 0-100."""
    score = int(round(float(value)))
    return max(0, min(100, score))


def _items(reply: Any, key: str) -> List[Dict[str, Any]]:
    """Accept either a bare JSON array or an object wrapping it under ``key``."""
    if isinstance(reply, dict):
        reply = reply.get(key, [])
    if not isinstance(reply, list):
        raise ValueError(f"Expected a JSON array of {key}")
    return [item for item in reply if isinstance(item, dict)]


def _first(item: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in item:
            return item[name]
    return None


class AIService:
    """Gemini-backed ranking, summary and recommendation operations."""

    def __init__(self, client: Optional[GeminiClient], timeout_seconds: float = 10.0):
        self.client = client
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _ask(self, prompt: str) -> Any:
        return await asyncio.wait_for(self.client.generate_json(prompt), timeout=self.timeout_seconds)

    # ────────────────────────────────────────────────────────────────────
    # Ranking
    # ────────────────────────────────────────────────────────────────────

    async def rank_proposals(self, project: Project, proposals: List[Proposal]) -> List[RankedProposal]:
        """
        Score every proposal against the project, highest score first.

        Ids the model invents are ignored and proposals it omits are left out. Scores are
        clamped to 0-100. Returns [] on any failure.
        """
        if not proposals or not self.enabled:
            return []

        try:
            reply = await self._ask(build_ranking_prompt(project, proposals))
            by_id = {proposal.id: proposal for proposal in proposals}

            ranked: List[RankedProposal] = []
            seen = set()
            for item in _items(reply, "rankings"):
                try:
                    proposal_id = int(_first(item, "proposalId", "proposal_id", "id"))
                    score = clamp_score(_first(item, "score", "aiScore") or 0)
                except (TypeError, ValueError, OverflowError):
                    continue
                if proposal_id not in by_id or proposal_id in seen:
                    continue
                seen.add(proposal_id)

                base = ProposalResponse.model_validate(by_id[proposal_id]).model_dump()
                ranked.append(
                    RankedProposal(
                        **base,
                        ai_score=score,
                        ai_reasoning=str(_first(item, "reasoning", "reason") or ""),
                    )
                )

            ranked.sort(key=lambda r: r.ai_score, reverse=True)
            logger.info("Proposals ranked", project_id=project.id, ranked=len(ranked), submitted=len(proposals))
            return ranked

        except Exception as e:
            logger.warning(
                f"Proposal ranking failed, returning empty ranking: {e}",
                project_id=project.id,
                error_type=type(e).__name__,
            )
            return []

    # ────────────────────────────────────────────────────────────────────
    # Summary
    # ────────────────────────────────────────────────────────────────────

    async def summarize_project(self, project: Project) -> ProjectSummary:
        """Short summary plus key points for a project; placeholder summary on failure."""
        if not self.enabled:
            return ProjectSummary(project_id=project.id, summary=SUMMARY_FALLBACK)

        try:
            reply = await self._ask(build_summary_prompt(project))
            if not isinstance(reply, dict) or not reply.get("summary"):
                raise ValueError("Reply has no summary")

            key_points = reply.get("keyPoints") or reply.get("key_points") or []
            return ProjectSummary(
                project_id=project.id,
                summary=str(reply["summary"]),
                key_points=[str(point) for point in key_points if point],
            )

        except Exception as e:
            logger.warning(
                f"Project summary failed, returning fallback: {e}",
                project_id=project.id,
                error_type=type(e).__name__,
            )
            return ProjectSummary(project_id=project.id, summary=SUMMARY_FALLBACK)

    # ────────────────────────────────────────────────────────────────────
    # Recommendations
    # ────────────────────────────────────────────────────────────────────

    async def recommend_projects(
        self,
        freelancer_id: int,
        skills: Iterable[str],
        bio: Optional[str],
        open_projects: List[Project],
    ) -> List[ProjectRecommendation]:
        """Rank open projects for a freelancer, best match first; [] on failure."""
        if not open_projects or not self.enabled:
            return []

        try:
            reply = await self._ask(build_recommendation_prompt(list(skills), bio, open_projects))
            by_id = {project.id: project for project in open_projects}

            recommendations: List[ProjectRecommendation] = []
            for item in _items(reply, "recommendations"):
                try:
                    project_id = int(_first(item, "projectId", "project_id", "id"))
                    match_score = clamp_score(_first(item, "matchScore", "score") or 0)
                except (TypeError, ValueError, OverflowError):
                    continue
                project = by_id.pop(project_id, None)
                if project is None:
                    continue

                recommendations.append(
                    ProjectRecommendation(
                        project_id=project.id,
                        title=project.title,
                        match_score=match_score,
                        reason=str(_first(item, "reason", "reasoning") or ""),
                        budget_min=project.budget_min,
                        budget_max=project.budget_max,
                        required_skills=project.required_skills,
                    )
                )

            recommendations.sort(key=lambda r: r.match_score, reverse=True)
            logger.info("Projects recommended", freelancer_id=freelancer_id, count=len(recommendations))
            return recommendations

        except Exception as e:
            logger.warning(
                f"Project recommendation failed, returning empty list: {e}",
                freelancer_id=freelancer_id,
                error_type=type(e).__name__,
            )
            return []


# ════════════════════════════════════════════════════════════════════════════
# Prompts
# ════════════════════════════════════════════════════════════════════════════


def _describe_project(project: Project) -> str:
    skills = ", ".join(project.required_skills) or "not specified"
    return (
        f"Title: {project.title}\n"
        f"Description: {project.description}\n"
        f"Budget: {project.budget_min} - {project.budget_max}\n"
        f"Required skills: {skills}\n"
        f"Category: {project.category or 'not specified'}\n"
        f"Deadline: {project.deadline.isoformat()}"
    )


def build_ranking_prompt(project: Project, proposals: List[Proposal]) -> str:
    lines = [
        "You are an expert freelance project evaluator.",
        "Score each proposal from 0 to 100 for how well it fits the project below.",
        "",
        "PROJECT",
        _describe_project(project),
        "",
        "PROPOSALS",
    ]
    for proposal in proposals:
        lines.append(
            f"- proposalId: {proposal.id}; budget: {proposal.proposed_budget}; "
            f"delivery days: {proposal.delivery_days}; cover letter: {proposal.cover_letter}"
        )
    lines += [
        "",
        'Reply with JSON only: [{"proposalId": <id>, "score": <0-100>, "reasoning": "<one sentence>"}]',
    ]
    return "\n".join(lines)


def build_summary_prompt(project: Project) -> str:
    return "\n".join(
        [
            "Summarise this freelance project for a busy freelancer.",
            "",
            _describe_project(project),
            "",
            'Reply with JSON only: {"summary": "<2-3 sentences>", "keyPoints": ["<point>", ...]}',
        ]
    )


def build_recommendation_prompt(skills: List[str], bio: Optional[str], projects: List[Project]) -> str:
    lines = [
        "Recommend the best matching open projects for this freelancer.",
        f"Skills: {', '.join(skills) or 'not specified'}",
        f"Bio: {bio or 'not provided'}",
        "",
        "OPEN PROJECTS",
    ]
    for project in projects:
        lines.append(
            f"- projectId: {project.id}; title: {project.title}; "
            f"skills: {', '.join(project.required_skills) or 'not specified'}; "
            f"budget: {project.budget_min} - {project.budget_max}"
        )
    lines += [
        "",
        'Reply with JSON only: [{"projectId": <id>, "matchScore": <0-100>, "reason": "<one sentence>"}]',
    ]
    return "\n".join(lines)
