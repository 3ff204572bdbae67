"""Notifications API endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from ..schemas.notification import ListNotificationsRequest, NotificationListResult
from ..schemas.user import CallerIdentity
from ..services.auth_service import get_current_caller
from ..services.notification_service import NotificationService, get_notification_service

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.post(
    "/list",
    response_model=NotificationListResult,
    summary="List notifications",
    description="Page through the caller's notifications, newest first, with the unread counter.",
    responses={
        200: {"description": "Page of notifications"},
        401: {"description": "Not authenticated"},
    },
)
async def list_notifications(
    caller: Annotated[CallerIdentity, Depends(get_current_caller)],
    body: Optional[ListNotificationsRequest] = None,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResult:
    return await service.list_notifications(caller, body or ListNotificationsRequest())
