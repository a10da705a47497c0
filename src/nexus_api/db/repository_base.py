"""
Base Repository

Base class shared by the concrete repositories. A repository runs its statements on an
"executor", which is either the asyncpg pool (auto-commit, one connection per statement)
or a single connection inside a UnitOfWork transaction. Both expose the same
fetch / fetchrow / fetchval / execute methods.
"""

from typing import Any
from typing import Dict
from typing import Generic
from typing import List
from typing import Optional
from typing import Type
from typing import TypeVar
from typing import Union

import asyncpg
from pydantic import BaseModel

from nexus_api.db.pool import SCHEMA_NAME

Executor = Union[asyncpg.Pool, asyncpg.Connection]
ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseRepository(Generic[ModelT]):
    """Common single-table operations for a table keyed by a BIGSERIAL ``id``."""

    def __init__(self, executor: Executor, table_name: str, model: Type[ModelT]):
        """
        Initialize base repository.

        Args:
            executor: asyncpg pool or connection
            table_name: Database table name (without schema prefix)
            model: Pydantic model rows are converted into
        """
        self.executor = executor
        self.table = f"{SCHEMA_NAME}.{table_name}"
        self.model = model

    def _to_model(self, row: Optional[asyncpg.Record]) -> Optional[ModelT]:
        if row is None:
            return None
        return self.model.model_validate(dict(row))

    def _to_models(self, rows: List[asyncpg.Record]) -> List[ModelT]:
        return [self.model.model_validate(dict(row)) for row in rows]

    async def get_by_id(self, entity_id: int) -> Optional[ModelT]:
        """Get a row by primary key, or None if it does not exist."""
        row = await self.executor.fetchrow(f"SELECT * FROM {self.table} WHERE id = $1", entity_id)
        return self._to_model(row)

    async def exists(self, entity_id: int) -> bool:
        return bool(await self.executor.fetchval(f"SELECT EXISTS(SELECT 1 FROM {self.table} WHERE id = $1)", entity_id))

    async def delete(self, entity_id: int) -> bool:
        """Hard delete a row. Returns True if a row was removed."""
        result = await self.executor.execute(f"DELETE FROM {self.table} WHERE id = $1", entity_id)
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"

    async def _insert(self, fields: Dict[str, Any]) -> ModelT:
        """Insert a row from a column -> value dict and return the stored row."""
        columns = list(fields.keys())
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        row = await self.executor.fetchrow(
            f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
            *fields.values(),
        )
        return self._to_model(row)

    async def _update(self, entity_id: int, fields: Dict[str, Any]) -> Optional[ModelT]:
        """Update the given columns (and updated_at) on one row and return it."""
        if not fields:
            return await self.get_by_id(entity_id)

        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(fields.keys(), start=2))
        row = await self.executor.fetchrow(
            f"UPDATE {self.table} SET {assignments}, updated_at = NOW() WHERE id = $1 RETURNING *",
            entity_id,
            *fields.values(),
        )
        return self._to_model(row)
