"""
Proposal Repository

Repository for proposal rows. The UNIQUE(project_id, freelancer_id) constraint and the
partial unique index on ACCEPTED proposals back the lifecycle rules at the database level.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Sequence

import asyncpg

from nexus_api.db.repository_base import BaseRepository
from nexus_api.db.repository_base import Executor
from nexus_api.domain.enums import ProposalStatus
from nexus_api.domain.models import Proposal
from nexus_api.errors import ConflictError


class ProposalRepository(BaseRepository[Proposal]):
    """Proposal repository."""

    def __init__(self, executor: Executor):
        super().__init__(executor, "proposals", Proposal)

    async def create(self, fields: Dict[str, Any]) -> Proposal:
        """
        Insert a new PENDING proposal.

        Raises:
            ConflictError: The freelancer already has a proposal on this project
        """
        values = {"status": ProposalStatus.PENDING.value, **fields}
        try:
            return await self._insert(values)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("You have already submitted a proposal for this project") from e

    async def list_by_project(self, project_id: int) -> List[Proposal]:
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} WHERE project_id = $1 ORDER BY submitted_at, id",
            project_id,
        )
        return self._to_models(rows)

    async def list_by_freelancer(self, freelancer_id: int) -> List[Proposal]:
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} WHERE freelancer_id = $1 ORDER BY submitted_at DESC, id DESC",
            freelancer_id,
        )
        return self._to_models(rows)

    async def list_by_project_and_status(self, project_id: int, status: ProposalStatus) -> List[Proposal]:
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} WHERE project_id = $1 AND status = $2 ORDER BY submitted_at, id",
            project_id,
            ProposalStatus(status).value,
        )
        return self._to_models(rows)

    async def exists_by_project_and_freelancer(self, project_id: int, freelancer_id: int) -> bool:
        """True if the freelancer has any proposal on the project, whatever its status."""
        return bool(
            await self.executor.fetchval(
                f"SELECT EXISTS(SELECT 1 FROM {self.table} WHERE project_id = $1 AND freelancer_id = $2)",
                project_id,
                freelancer_id,
            )
        )

    async def update_status(self, proposal_ids: Sequence[int], status: ProposalStatus) -> List[Proposal]:
        """Set the status of one or more proposals and return the updated rows."""
        if not proposal_ids:
            return []
        rows = await self.executor.fetch(
            f"""
            UPDATE {self.table}
            SET status = $2, updated_at = NOW()
            WHERE id = ANY($1::bigint[])
            RETURNING *
            """,
            list(proposal_ids),
            ProposalStatus(status).value,
        )
        return self._to_models(rows)
