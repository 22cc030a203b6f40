# =============================================================================
# app/routers/monetization.py - Character Monetization Settings
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import MonetizationSettingsRequest
from core.services.monetization_service import MonetizationService

router = APIRouter()


@router.get("")
async def get_monetization(character_id: Annotated[str, Query(alias="characterId")]):
    """Public settings and active tiers of a character."""
    return MonetizationService.get_settings(character_id)


@router.post("")
async def enable_monetization(
    request: MonetizationSettingsRequest,
    user: AuthUser = Depends(get_current_user),
):
    """Enable monetization for an owned character; premium only."""
    return MonetizationService.enable(user.id, request)


@router.patch("")
async def update_monetization(
    request: MonetizationSettingsRequest,
    user: AuthUser = Depends(get_current_user),
):
    return MonetizationService.update(user.id, request)
