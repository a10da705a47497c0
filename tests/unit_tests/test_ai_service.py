"""Tests for the AI service (ranking, summaries, recommendations) and its fallbacks."""

import asyncio
from datetime import date
from datetime import datetime
from datetime import timezone
from decimal import Decimal

import pytest

from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.enums import ProposalStatus
from nexus_api.domain.models import Project
from nexus_api.domain.models import Proposal
from nexus_api.errors import ExternalServiceError
from nexus_api.services.ai_service import SUMMARY_FALLBACK
from nexus_api.services.ai_service import AIService
from nexus_api.services.ai_service import build_ranking_prompt
from nexus_api.services.ai_service import clamp_score

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _project(project_id=1, title="Test Project", skills=("Java", "Spring")) -> Project:
    return Project(
        id=project_id,
        client_id=10,
        title=title,
        description="Backend work",
        budget_min=Decimal("100"),
        budget_max=Decimal("500"),
        required_skills=list(skills),
        category="IT",
        deadline=date(2027, 1, 1),
        status=ProjectStatus.OPEN,
        created_at=NOW,
        updated_at=NOW,
    )


def _proposal(proposal_id, freelancer_id) -> Proposal:
    return Proposal(
        id=proposal_id,
        project_id=1,
        freelancer_id=freelancer_id,
        cover_letter="Cover letter",
        proposed_budget=Decimal("200"),
        delivery_days=5,
        status=ProposalStatus.PENDING,
        submitted_at=NOW,
        updated_at=NOW,
    )


PROPOSALS = [_proposal(1, 100), _proposal(2, 200), _proposal(3, 300)]


class TestRankProposals:
    """Tests for rank_proposals."""

    @pytest.mark.asyncio
    async def test_sorted_descending_and_clamped(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = [
            {"proposalId": 1, "score": 55, "reasoning": "ok"},
            {"proposalId": 2, "score": 140, "reasoning": "great"},
            {"proposalId": 3, "score": -5, "reasoning": "poor"},
        ]

        ranked = await ai_service.rank_proposals(_project(), PROPOSALS)

        assert [r.id for r in ranked] == [2, 1, 3]
        assert [r.ai_score for r in ranked] == [100, 55, 0]
        assert ranked[0].ai_reasoning == "great"

    @pytest.mark.asyncio
    async def test_unknown_ids_are_ignored(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = {
            "rankings": [
                {"proposalId": 99, "score": 100, "reasoning": "hallucinated"},
                {"proposalId": "2", "score": 70},
                {"proposalId": "not-a-number", "score": 10},
            ]
        }

        ranked = await ai_service.rank_proposals(_project(), PROPOSALS)

        assert [r.id for r in ranked] == [2]

    @pytest.mark.asyncio
    async def test_unparseable_score_skips_only_that_entry(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = [
            {"proposalId": 1, "score": 80, "reasoning": "solid"},
            {"proposalId": 2, "score": "high", "reasoning": "great"},
            {"proposalId": 3, "score": "NaN"},
        ]

        ranked = await ai_service.rank_proposals(_project(), PROPOSALS)

        assert [(r.id, r.ai_score) for r in ranked] == [(1, 80)]

    @pytest.mark.asyncio
    async def test_collaborator_error_returns_empty(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.side_effect = ExternalServiceError("AI service returned HTTP 500")

        assert await ai_service.rank_proposals(_project(), PROPOSALS) == []

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self, mock_gemini_client):
        async def slow_reply(prompt):
            await asyncio.sleep(5)
            return []

        mock_gemini_client.generate_json.side_effect = slow_reply
        service = AIService(mock_gemini_client, timeout_seconds=0.01)

        assert await service.rank_proposals(_project(), PROPOSALS) == []

    @pytest.mark.asyncio
    async def test_malformed_reply_returns_empty(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = "I think proposal 2 is best"

        assert await ai_service.rank_proposals(_project(), PROPOSALS) == []

    @pytest.mark.asyncio
    async def test_no_proposals_skips_the_model(self, ai_service, mock_gemini_client):
        assert await ai_service.rank_proposals(_project(), []) == []
        mock_gemini_client.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_service_returns_empty(self, disabled_ai_service):
        assert await disabled_ai_service.rank_proposals(_project(), PROPOSALS) == []


class TestSummarizeProject:
    """Tests for summarize_project."""

    @pytest.mark.asyncio
    async def test_summary_from_model(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = {
            "summary": "A backend project.",
            "keyPoints": ["Java", "Spring", ""],
        }

        summary = await ai_service.summarize_project(_project())

        assert summary.project_id == 1
        assert summary.summary == "A backend project."
        assert summary.key_points == ["Java", "Spring"]

    @pytest.mark.asyncio
    async def test_fallback_summary_when_model_fails(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.side_effect = RuntimeError("DB error")

        summary = await ai_service.summarize_project(_project())

        assert summary.project_id == 1
        assert summary.summary == SUMMARY_FALLBACK
        assert summary.key_points == []

    @pytest.mark.asyncio
    async def test_fallback_summary_when_disabled(self, disabled_ai_service):
        summary = await disabled_ai_service.summarize_project(_project())

        assert summary.summary == "Summary generation failed"


class TestRecommendProjects:
    """Tests for recommend_projects."""

    @pytest.mark.asyncio
    async def test_recommendations_ranked_by_match_score(self, ai_service, mock_gemini_client):
        projects = [_project(1, "Java API"), _project(2, "Spring batch")]
        mock_gemini_client.generate_json.return_value = [
            {"projectId": 1, "matchScore": 60, "reason": "Some overlap"},
            {"projectId": 2, "matchScore": 85, "reason": "Exact stack"},
        ]

        recommendations = await ai_service.recommend_projects(7, ["Java"], "Bio", projects)

        assert [r.project_id for r in recommendations] == [2, 1]
        assert recommendations[0].title == "Spring batch"
        assert recommendations[0].match_score == 85

    @pytest.mark.asyncio
    async def test_unparseable_match_score_skips_only_that_entry(self, ai_service, mock_gemini_client):
        projects = [_project(1, "Java API"), _project(2, "Spring batch")]
        mock_gemini_client.generate_json.return_value = [
            {"projectId": 1, "matchScore": "strong", "reason": "?"},
            {"projectId": 2, "matchScore": 70, "reason": "Exact stack"},
        ]

        recommendations = await ai_service.recommend_projects(7, ["Java"], "Bio", projects)

        assert [r.project_id for r in recommendations] == [2]

    @pytest.mark.asyncio
    async def test_no_open_projects_returns_empty(self, ai_service, mock_gemini_client):
        assert await ai_service.recommend_projects(7, ["Java"], None, []) == []
        mock_gemini_client.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_array_reply_returns_empty(self, ai_service, mock_gemini_client):
        mock_gemini_client.generate_json.return_value = {"unexpected": True}

        assert await ai_service.recommend_projects(7, ["Java"], "Bio", [_project()]) == []


def test_clamp_score():
    assert clamp_score(101) == 100
    assert clamp_score(-1) == 0
    assert clamp_score("72.6") == 73


def test_ranking_prompt_lists_every_proposal():
    prompt = build_ranking_prompt(_project(), PROPOSALS)

    for proposal in PROPOSALS:
        assert f"proposalId: {proposal.id}" in prompt
    assert "Java, Spring" in prompt
