"""
Notification Service

Turns lifecycle events into in-app notifications and serves a user's notifications.
Email delivery is not implemented: ``email_sent`` stays False.
"""

from typing import List

from loguru import logger

from nexus_api.auth.principal import Principal
from nexus_api.db.unit_of_work import UnitOfWork
from nexus_api.domain.enums import EventType
from nexus_api.domain.enums import NotificationType
from nexus_api.domain.models import Notification
from nexus_api.errors import NotFoundError
from nexus_api.events.schemas import DomainEvent


class NotificationService:
    """Notification writes (from events) and reads (for the owning user)."""

    def __init__(self, unit_of_work: UnitOfWork):
        self.uow = unit_of_work

    async def handle_event(self, event: DomainEvent) -> List[Notification]:
        """
        Create the notifications for one lifecycle event.

        Recipients:
        - project.created / project.cancelled -> project owner
        - proposal.submitted -> freelancer (confirmation) and project owner
        - proposal.accepted / proposal.rejected -> freelancer

        Raises:
            KeyError: Payload misses a required field (not retryable)
        """
        payload = event.payload
        created: List[Notification] = []

        async with self.uow.transaction() as repos:
            for user_id, notification_type, title, message in _recipients(event):
                notification = await repos.notifications.create(
                    user_id=user_id,
                    notification_type=notification_type,
                    title=title,
                    message=message,
                    related_project_id=payload.get("project_id"),
                    related_proposal_id=payload.get("proposal_id"),
                )
                created.append(notification)

        logger.info(
            f"Created {len(created)} notification(s) for {event.event_type.value}",
            event_id=event.event_id,
            key=event.key,
        )
        return created

    async def list_for_user(self, principal: Principal, user_id: int) -> List[Notification]:
        principal.require_self_or_admin(user_id, "read these notifications")
        return await self.uow.repositories().notifications.list_for_user(user_id)

    async def list_unread(self, principal: Principal, user_id: int) -> List[Notification]:
        principal.require_self_or_admin(user_id, "read these notifications")
        return await self.uow.repositories().notifications.list_for_user(user_id, unread_only=True)

    async def count_unread(self, principal: Principal, user_id: int) -> int:
        principal.require_self_or_admin(user_id, "read these notifications")
        return await self.uow.repositories().notifications.count_unread(user_id)

    async def mark_read(self, principal: Principal, notification_id: int) -> Notification:
        """
        Mark one notification as read.

        Raises:
            NotFoundError: Notification does not exist
            PermissionDeniedError: Notification belongs to another user
        """
        repos = self.uow.repositories()
        notification = await repos.notifications.get_by_id(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification not found with id: {notification_id}")
        principal.require_self_or_admin(notification.user_id, "update this notification")
        return await repos.notifications.mark_read(notification_id)

    async def mark_all_read(self, principal: Principal, user_id: int) -> int:
        principal.require_self_or_admin(user_id, "update these notifications")
        updated = await self.uow.repositories().notifications.mark_all_read(user_id)
        logger.debug("Notifications marked read", user_id=user_id, updated=updated)
        return updated


def _recipients(event: DomainEvent):
    """Yield (user_id, type, title, message) for every notification an event produces."""
    payload = event.payload
    event_type = event.event_type

    if event_type is EventType.PROJECT_CREATED:
        yield (
            int(payload["client_id"]),
            NotificationType.PROJECT_CREATED,
            "Project posted",
            f"Your project \"{payload['title']}\" is now open for proposals.",
        )

    elif event_type is EventType.PROJECT_UPDATED:
        yield (
            int(payload["client_id"]),
            NotificationType.PROJECT_UPDATED,
            "Project updated",
            f"Your project \"{payload['title']}\" has been updated.",
        )

    elif event_type is EventType.PROJECT_CANCELLED:
        yield (
            int(payload["client_id"]),
            NotificationType.PROJECT_CANCELLED,
            "Project cancelled",
            f"Your project \"{payload['title']}\" has been cancelled.",
        )

    elif event_type is EventType.PROPOSAL_SUBMITTED:
        title = payload["project_title"]
        yield (
            int(payload["freelancer_id"]),
            NotificationType.PROPOSAL_SUBMITTED,
            "Proposal submitted",
            f"Your proposal for \"{title}\" has been submitted.",
        )
        yield (
            int(payload["client_id"]),
            NotificationType.PROPOSAL_SUBMITTED,
            "New proposal received",
            f"A freelancer submitted a proposal for \"{title}\".",
        )

    elif event_type is EventType.PROPOSAL_ACCEPTED:
        yield (
            int(payload["freelancer_id"]),
            NotificationType.PROPOSAL_ACCEPTED,
            "Proposal accepted",
            f"Congratulations! Your proposal for \"{payload['project_title']}\" was accepted.",
        )

    elif event_type is EventType.PROPOSAL_REJECTED:
        yield (
            int(payload["freelancer_id"]),
            NotificationType.PROPOSAL_REJECTED,
            "Proposal not selected",
            f"Your proposal for \"{payload['project_title']}\" was not selected.",
        )
