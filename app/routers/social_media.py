# =============================================================================
# app/routers/social_media.py - Late Social Publishing & Captions
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.social import CaptionRequest, SocialConfigUpdate, SocialListType, SocialPostCreate
from core.services.social_media_service import SocialMediaService

router = APIRouter()


@router.get("")
def list_remote(
    user: AuthUser = Depends(get_current_user),
    list_type: Annotated[SocialListType, Query(alias="type")] = SocialListType.PROFILES,
    profile_id: Annotated[str | None, Query(alias="profileId")] = None,
    queue_id: Annotated[str | None, Query(alias="queueId")] = None,
    status: Annotated[str | None, Query()] = None,
    all_queues: Annotated[bool, Query(alias="all")] = False,
):
    """
    Proxy a read to Late.

    queue and next-slot need profileId.
    """
    return SocialMediaService.list_remote(
        user.id,
        list_type,
        profile_id=profile_id,
        queue_id=queue_id,
        status=status,
        all_queues=all_queues,
    )


@router.post("")
def create_post(request: SocialPostCreate, user: AuthUser = Depends(get_current_user)):
    return SocialMediaService.create_post(user.id, request)


@router.put("/config")
def update_config(request: SocialConfigUpdate, user: AuthUser = Depends(get_current_user)):
    return SocialMediaService.update_config(user.id, request)


@router.get("/posts")
def list_posts(
    user: AuthUser = Depends(get_current_user),
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    return {"posts": SocialMediaService.list_local_posts(user.id, limit)}


@router.post("/generate")
def generate_caption(request: CaptionRequest, user: AuthUser = Depends(get_current_user)):
    """Draft post text (type=content) or hashtags (type=hashtags) for an image."""
    return SocialMediaService.generate_caption(request)
