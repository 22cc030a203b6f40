# =============================================================================
# app/routers/follows.py - Follow Endpoints
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.social import FollowNotificationsUpdate, FollowRequest
from core.services.follow_service import FollowService

router = APIRouter()


@router.get("/stats")
async def get_follow_stats(character_id: Annotated[str, Query(alias="characterId")]):
    return FollowService.get_stats(character_id)


@router.get("/status")
async def get_follow_status(
    character_id: Annotated[str, Query(alias="characterId")],
    user: AuthUser = Depends(get_current_user),
):
    return FollowService.get_status(user.id, character_id)


@router.get("")
async def list_follows(user: AuthUser = Depends(get_current_user)):
    """Characters the caller follows, newest first."""
    return {"follows": FollowService.list_follows(user.id)}


@router.post("")
async def follow(request: FollowRequest, user: AuthUser = Depends(get_current_user)):
    return FollowService.follow(user.id, request.character_id, request.notifications_enabled)


@router.delete("")
async def unfollow(
    character_id: Annotated[str, Query(alias="characterId")],
    user: AuthUser = Depends(get_current_user),
):
    return FollowService.unfollow(user.id, character_id)


@router.patch("")
async def update_notifications(
    request: FollowNotificationsUpdate,
    user: AuthUser = Depends(get_current_user),
):
    return FollowService.set_notifications(user.id, request.character_id, request.notifications_enabled)
