# =============================================================================
# app/routers/tiers.py - Creator Subscription Tiers
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.auth import AuthUser, get_current_user
from core.models.monetization import TierCreateRequest, TierUpdateRequest
from core.services.tier_service import TierService

router = APIRouter()


@router.get("")
async def list_tiers(
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    creator_id: Annotated[str | None, Query(alias="creatorId")] = None,
):
    """Active tiers by level; one of characterId or creatorId is required."""
    return {"tiers": TierService.list_tiers(character_id, creator_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tier(request: TierCreateRequest, user: AuthUser = Depends(get_current_user)):
    return {"success": True, "tier": TierService.create_tier(user.id, request)}


@router.patch("/{tier_id}")
async def update_tier(
    tier_id: str,
    request: TierUpdateRequest,
    user: AuthUser = Depends(get_current_user),
):
    return {"success": True, "tier": TierService.update_tier(tier_id, user.id, request)}


@router.delete("/{tier_id}")
async def delete_tier(tier_id: str, user: AuthUser = Depends(get_current_user)):
    """Refused while the tier has active subscribers."""
    TierService.delete_tier(tier_id, user.id)
    return {"success": True}
