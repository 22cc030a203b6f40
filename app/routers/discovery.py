# =============================================================================
# app/routers/discovery.py - Character Discovery
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user_optional
from core.services.discovery_service import DiscoveryService, DiscoverySort

router = APIRouter()


@router.get("")
async def discover(
    user: AuthUser | None = Depends(get_current_user_optional),
    category: Annotated[str | None, Query()] = None,
    tags: Annotated[str | None, Query(description="Comma-separated tags")] = None,
    search: Annotated[str | None, Query()] = None,
    monetized: Annotated[bool | None, Query()] = None,
    min_price: Annotated[float, Query(alias="minPrice", ge=0)] = 0.0,
    max_price: Annotated[float | None, Query(alias="maxPrice", ge=0)] = None,
    sort: Annotated[DiscoverySort, Query(alias="sortBy")] = DiscoverySort.TRENDING,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    Public characters, featured first.

    Signed-in callers also get isFollowing, isSubscribed and currentTierId.
    """
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    return DiscoveryService.discover(
        user_id=user.id if user else None,
        category=category,
        tags=tag_list,
        search=search,
        monetized=monetized,
        min_price=min_price,
        max_price=max_price,
        sort=sort,
        page=page,
        limit=limit,
    )
