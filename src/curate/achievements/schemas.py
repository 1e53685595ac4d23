"""Pydantic schemas for achievement endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AwardAchievementRequest(BaseModel):
    owner_id: uuid.UUID | None = None  # defaults to the caller
    kind: str = Field(..., min_length=1, max_length=64)
    payload: dict[str, Any] = {}


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    kind: str
    payload: dict[str, Any] = {}
    earned_at: datetime


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]
    total: int
