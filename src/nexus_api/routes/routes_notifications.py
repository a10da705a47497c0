"""Notification API Routes."""

from typing import List

from fastapi import APIRouter
from fastapi import Depends

from nexus_api.auth.principal import Principal
from nexus_api.dependencies import get_notification_service
from nexus_api.dependencies import get_principal
from nexus_api.schemas.schemas import MarkAllReadResponse
from nexus_api.schemas.schemas import NotificationResponse
from nexus_api.schemas.schemas import UnreadCountResponse
from nexus_api.services.notification_service import NotificationService

ROUTER_NOTIFICATIONS = APIRouter(tags=["Notifications"], prefix="/notifications")


@ROUTER_NOTIFICATIONS.get("/user/{user_id}", response_model=List[NotificationResponse], summary="List notifications")
async def list_notifications(
    user_id: int,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_for_user(principal, user_id)


@ROUTER_NOTIFICATIONS.get(
    "/user/{user_id}/unread",
    response_model=List[NotificationResponse],
    summary="List unread notifications",
)
async def list_unread_notifications(
    user_id: int,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_unread(principal, user_id)


@ROUTER_NOTIFICATIONS.get(
    "/user/{user_id}/unread/count",
    response_model=UnreadCountResponse,
    summary="Count unread notifications",
)
async def count_unread_notifications(
    user_id: int,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    count = await service.count_unread(principal, user_id)
    return UnreadCountResponse(user_id=user_id, unread_count=count)


@ROUTER_NOTIFICATIONS.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_notification_read(
    notification_id: int,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_read(principal, notification_id)


@ROUTER_NOTIFICATIONS.put(
    "/user/{user_id}/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    user_id: int,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(get_notification_service),
):
    updated = await service.mark_all_read(principal, user_id)
    return MarkAllReadResponse(user_id=user_id, updated=updated)
