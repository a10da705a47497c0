"""
Notification Repository

Repository for in-app notifications (append-only apart from the read flag).
"""

from typing import List
from typing import Optional

from nexus_api.db.repository_base import BaseRepository
from nexus_api.db.repository_base import Executor
from nexus_api.domain.enums import NotificationType
from nexus_api.domain.models import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Notification repository."""

    def __init__(self, executor: Executor):
        super().__init__(executor, "notifications", Notification)

    async def create(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        related_project_id: Optional[int] = None,
        related_proposal_id: Optional[int] = None,
    ) -> Notification:
        """Create a new unread notification."""
        return await self._insert(
            {
                "user_id": user_id,
                "type": NotificationType(notification_type).value,
                "title": title,
                "message": message,
                "related_project_id": related_project_id,
                "related_proposal_id": related_proposal_id,
            }
        )

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        """List a user's notifications, newest first."""
        unread_clause = "AND is_read = FALSE" if unread_only else ""
        rows = await self.executor.fetch(
            f"SELECT * FROM {self.table} WHERE user_id = $1 {unread_clause} ORDER BY created_at DESC, id DESC",
            user_id,
        )
        return self._to_models(rows)

    async def count_unread(self, user_id: int) -> int:
        return await self.executor.fetchval(
            f"SELECT COUNT(*) FROM {self.table} WHERE user_id = $1 AND is_read = FALSE",
            user_id,
        )

    async def mark_read(self, notification_id: int) -> Optional[Notification]:
        """Mark one notification as read (read_at is kept from the first read)."""
        row = await self.executor.fetchrow(
            f"""
            UPDATE {self.table}
            SET is_read = TRUE, read_at = COALESCE(read_at, NOW())
            WHERE id = $1
            RETURNING *
            """,
            notification_id,
        )
        return self._to_model(row)

    async def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of a user as read. Returns how many changed."""
        result = await self.executor.execute(
            f"""
            UPDATE {self.table}
            SET is_read = TRUE, read_at = NOW()
            WHERE user_id = $1 AND is_read = FALSE
            """,
            user_id,
        )
        return int(result.split()[-1])
