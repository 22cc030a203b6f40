# =============================================================================
# app/routers/image_interactions.py - Image Likes & Comments
# =============================================================================
# Reads work signed out (isLiked is then always false); writes need a user.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user, get_current_user_optional
from core.models.social import ImageInteractionRequest
from core.services.image_interaction_service import ImageInteractionService

router = APIRouter()


@router.get("")
def get_image_interactions(
    character_id: Annotated[str, Query(alias="characterId")],
    image_index: Annotated[int, Query(alias="imageIndex", ge=0)],
    kind: Annotated[str | None, Query(alias="type")] = None,
    user: AuthUser | None = Depends(get_current_user_optional),
):
    """Like status (type=like) or the latest comments (type=comments)."""
    return ImageInteractionService.get(character_id, image_index, kind, user.id if user else None)


@router.post("")
def interact(request: ImageInteractionRequest, user: AuthUser = Depends(get_current_user)):
    """Like, unlike or comment on an image."""
    return ImageInteractionService.act(user.id, request)


@router.get("/liked")
def liked_images(
    user: AuthUser = Depends(get_current_user),
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return ImageInteractionService.liked_images(user.id, limit, offset)
