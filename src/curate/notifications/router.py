"""Notification API endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from curate.access.gateway import AccessGateway
from curate.access.policy import Caller
from curate.auth.dependencies import require_user
from curate.dependencies import get_gateway
from curate.notifications.schemas import (
    CreateNotificationRequest,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
    UpdateNotificationRequest,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.post("/notifications", response_model=NotificationResponse, status_code=201)
async def create_notification(
    body: CreateNotificationRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> NotificationResponse:
    """Create a notification for a recipient (system writers may target anyone)."""
    notification = await gateway.create_notification(
        body.owner_id, body.type, body.title, body.message, body.payload
    )
    return NotificationResponse.model_validate(notification)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    caller: Caller = Depends(require_user),
    gateway: AccessGateway = Depends(get_gateway),
) -> NotificationListResponse:
    """List the caller's notifications (paginated, most recent first)."""
    notifications, total = await gateway.list_notifications(
        caller.user_id, unread_only=unread_only, page=page, per_page=per_page
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    caller: Caller = Depends(require_user),
    gateway: AccessGateway = Depends(get_gateway),
) -> UnreadCountResponse:
    count = await gateway.unread_count(caller.user_id)
    return UnreadCountResponse(unread_count=count)


@router.post("/notifications/read-all", status_code=200)
async def mark_all_read(
    caller: Caller = Depends(require_user),
    gateway: AccessGateway = Depends(get_gateway),
) -> dict[str, str]:
    count = await gateway.mark_all_read(caller.user_id)
    return {"detail": f"Marked {count} notifications as read"}


@router.get("/notifications/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> NotificationResponse:
    notification = await gateway.get_notification(notification_id)
    return NotificationResponse.model_validate(notification)


@router.patch("/notifications/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: uuid.UUID,
    body: UpdateNotificationRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> NotificationResponse:
    """Toggle the read flag. Only the recipient may do this."""
    notification = await gateway.set_read(notification_id, body.is_read)
    return NotificationResponse.model_validate(notification)
