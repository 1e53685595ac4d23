"""Pydantic schemas for notification endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreateNotificationRequest(BaseModel):
    owner_id: uuid.UUID
    type: str = Field(..., min_length=1, max_length=32)
    title: str = Field(..., min_length=1, max_length=256)
    message: str = Field(..., min_length=1)
    payload: dict[str, Any] = {}


class UpdateNotificationRequest(BaseModel):
    is_read: bool


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    type: str
    title: str
    message: str
    payload: dict[str, Any] = {}
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int
