# =============================================================================
# app/routers/interactions.py - Interaction Tracking
# =============================================================================
# Anonymous callers may only record views; everything else needs a user.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user, get_current_user_optional
from core.models.social import InteractionCreate
from core.services.interaction_service import InteractionService

router = APIRouter()


@router.post("")
async def track_interaction(
    request: InteractionCreate,
    user: AuthUser | None = Depends(get_current_user_optional),
):
    if user is None:
        InteractionService.track_anonymous(request.character_id, request.interaction_type)
        return {"success": True, "anonymous": True}

    interaction_id = InteractionService.track(
        user.id,
        request.character_id,
        request.interaction_type,
        metadata=request.metadata,
        duration_seconds=request.duration_seconds,
    )
    return {"success": True, "interactionId": interaction_id}


@router.get("")
async def list_interactions(
    user: AuthUser = Depends(get_current_user),
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    interaction_type: Annotated[str | None, Query(alias="type")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    interactions, total = InteractionService.list_interactions(
        user.id,
        character_id=character_id,
        interaction_type=interaction_type,
        limit=limit,
        offset=offset,
    )
    return {"interactions": interactions, "total": total}
