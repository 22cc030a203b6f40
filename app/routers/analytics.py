# =============================================================================
# app/routers/analytics.py - Creator Analytics
# =============================================================================

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("")
async def get_analytics(
    user: AuthUser = Depends(get_current_user),
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    period: Annotated[Literal["7d", "30d", "90d"], Query()] = "30d",
):
    """
    Dashboard for the caller's characters; premium only.

    Changes compare the period with the one immediately before it.
    """
    return AnalyticsService.get_analytics(user.id, character_id, period)
