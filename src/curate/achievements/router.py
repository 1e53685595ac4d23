"""Achievement endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from curate.access.gateway import AccessGateway
from curate.achievements.schemas import (
    AchievementListResponse,
    AchievementResponse,
    AwardAchievementRequest,
)
from curate.dependencies import get_gateway

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


@router.post("/achievements", response_model=AchievementResponse, status_code=201)
async def award_achievement(
    body: AwardAchievementRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> AchievementResponse:
    """Record an earned achievement.

    Awarding to another user requires the system-writer role. Earning the
    same kind twice is a 409.
    """
    owner_id = body.owner_id or gateway.caller.user_id
    achievement = await gateway.award_achievement(owner_id, body.kind, body.payload)
    return AchievementResponse.model_validate(achievement)


@router.get("/users/{owner_id}/achievements", response_model=AchievementListResponse)
async def list_achievements(
    owner_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> AchievementListResponse:
    achievements = await gateway.list_achievements(owner_id)
    return AchievementListResponse(
        achievements=[AchievementResponse.model_validate(a) for a in achievements],
        total=len(achievements),
    )


@router.get("/achievements/{achievement_id}", response_model=AchievementResponse)
async def get_achievement(
    achievement_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> AchievementResponse:
    achievement = await gateway.get_achievement(achievement_id)
    return AchievementResponse.model_validate(achievement)
