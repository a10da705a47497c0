"""
Unit of Work

Hands out repositories bound either to the pool (single statements, auto-commit) or to
one connection inside a transaction. Multi-row lifecycle changes (submit, accept, cancel)
run inside ``transaction()`` and lock the project row first with
``repos.projects.get_for_update``.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from nexus_api.db.pool import DatabasePool
from nexus_api.db.repository_base import Executor
from nexus_api.db.repository_notification import NotificationRepository
from nexus_api.db.repository_project import ProjectRepository
from nexus_api.db.repository_proposal import ProposalRepository


@dataclass
class Repositories:
    """Repositories sharing one executor."""

    projects: ProjectRepository
    proposals: ProposalRepository
    notifications: NotificationRepository

    @classmethod
    def bind(cls, executor: Executor) -> "Repositories":
        return cls(
            projects=ProjectRepository(executor),
            proposals=ProposalRepository(executor),
            notifications=NotificationRepository(executor),
        )


class UnitOfWork:
    """Transaction scope factory over the database pool."""

    def __init__(self, db_pool: DatabasePool):
        self.db_pool = db_pool

    def repositories(self) -> Repositories:
        """Repositories for reads and single-statement writes."""
        if not self.db_pool.pool:
            raise RuntimeError("Database pool not initialized - call initialize() first")
        return Repositories.bind(self.db_pool.pool)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repositories]:
        """
        Open a transaction on one pooled connection.

        Commits when the block exits normally and rolls back if it raises.

        Usage:
            async with uow.transaction() as repos:
                project = await repos.projects.get_for_update(project_id)
                ...
        """
        async with self.db_pool.acquire() as conn:
            async with conn.transaction():
                yield Repositories.bind(conn)
