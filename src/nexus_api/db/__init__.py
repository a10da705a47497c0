"""Persistence layer (asyncpg)."""

from nexus_api.db.pool import DatabasePool
from nexus_api.db.unit_of_work import Repositories
from nexus_api.db.unit_of_work import UnitOfWork

__all__ = ["DatabasePool", "Repositories", "UnitOfWork"]
