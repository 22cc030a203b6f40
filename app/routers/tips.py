# =============================================================================
# app/routers/tips.py - Tipping Endpoints
# =============================================================================
# Coin tips complete immediately. Card tips return a PaymentIntent client
# secret; the tip is recorded by /tips/confirm or the Stripe webhook,
# whichever comes first.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import TipConfirmRequest, TipCreateRequest, TipDirection
from core.services.tip_service import TipService

router = APIRouter()


@router.get("")
def list_tips(
    user: AuthUser = Depends(get_current_user),
    direction: Annotated[TipDirection, Query(alias="type")] = TipDirection.RECEIVED,
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return TipService.list_tips(user.id, direction, character_id, limit=limit, offset=offset)


@router.post("")
def send_tip(request: TipCreateRequest, user: AuthUser = Depends(get_current_user)):
    return TipService.send(user.id, request, email=user.email)


@router.post("/confirm")
def confirm_tip(request: TipConfirmRequest, user: AuthUser = Depends(get_current_user)):
    return TipService.confirm(user.id, request.payment_intent_id, request.character_id)
