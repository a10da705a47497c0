"""
Project Repository

Repository for project rows. Projects are hard-deleted (proposals cascade).
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from nexus_api.db.pool import SCHEMA_NAME
from nexus_api.db.repository_base import BaseRepository
from nexus_api.db.repository_base import Executor
from nexus_api.domain.enums import ProjectStatus
from nexus_api.domain.models import Project


class ProjectRepository(BaseRepository[Project]):
    """Project repository."""

    def __init__(self, executor: Executor):
        super().__init__(executor, "projects", Project)

    async def create(self, fields: Dict[str, Any]) -> Project:
        """
        Insert a new project.

        Status defaults to OPEN and proposal_count to 0 unless given in ``fields``.
        """
        values = {"status": ProjectStatus.OPEN.value, "proposal_count": 0, **fields}
        return await self._insert(values)

    async def get_for_update(self, project_id: int) -> Optional[Project]:
        """
        Get a project and lock its row until the enclosing transaction ends.

        Only meaningful when the repository runs on a connection inside a transaction.
        """
        row = await self.executor.fetchrow(f"SELECT * FROM {self.table} WHERE id = $1 FOR UPDATE", project_id)
        return self._to_model(row)

    async def list(
        self,
        keyword: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
        category: Optional[str] = None,
    ) -> List[Project]:
        """List projects, newest first, optionally filtered by keyword, status and category."""
        conditions = []
        params: List[Any] = []

        if keyword:
            params.append(f"%{keyword}%")
            conditions.append(f"(title ILIKE ${len(params)} OR description ILIKE ${len(params)})")
        if status is not None:
            params.append(ProjectStatus(status).value)
            conditions.append(f"status = ${len(params)}")
        if category:
            params.append(category)
            conditions.append(f"category = ${len(params)}")

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} {where} ORDER BY created_at DESC, id DESC",
            *params,
        )
        return self._to_models(rows)

    async def list_by_client(self, client_id: int) -> List[Project]:
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} WHERE client_id = $1 ORDER BY created_at DESC, id DESC",
            client_id,
        )
        return self._to_models(rows)

    async def update_fields(self, project_id: int, fields: Dict[str, Any]) -> Optional[Project]:
        """Update editable columns (title, description, budget, skills, ...)."""
        return await self._update(project_id, fields)

    async def set_status(self, project_id: int, status: ProjectStatus) -> Optional[Project]:
        return await self._update(project_id, {"status": ProjectStatus(status).value})

    async def set_assignment(
        self,
        project_id: int,
        freelancer_id: int,
        status: ProjectStatus = ProjectStatus.IN_PROGRESS,
    ) -> Optional[Project]:
        """Record the assigned freelancer together with the new status."""
        return await self._update(
            project_id,
            {"assigned_freelancer_id": freelancer_id, "status": ProjectStatus(status).value},
        )

    async def refresh_proposal_count(self, project_id: int) -> int:
        """Recompute proposal_count from the proposals table and return it."""
        return await self.executor.fetchval(
            f"""
            UPDATE {self.table}
            SET proposal_count = (
                SELECT COUNT(*) FROM {SCHEMA_NAME}.proposals WHERE project_id = $1
            ),
                updated_at = NOW()
            WHERE id = $1
            RETURNING proposal_count
            """,
            project_id,
        )
