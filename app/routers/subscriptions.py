# =============================================================================
# app/routers/subscriptions.py - Fan Subscriptions
# =============================================================================
# Flow:
# 1. POST /subscriptions         -> incomplete Stripe subscription + client secret
# 2. Client confirms the payment with Stripe.js
# 3. POST /subscriptions/confirm -> local record, counts, earnings
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import (
    FanSubscribeRequest,
    FanSubscriptionActionRequest,
    FanSubscriptionConfirmRequest,
    FanSubscriptionStatus,
)
from core.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("")
def list_subscriptions(
    user: AuthUser = Depends(get_current_user),
    status: Annotated[FanSubscriptionStatus | None, Query()] = None,
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
):
    subscriptions = SubscriptionService.list_subscriptions(
        user.id,
        status=status.value if status else None,
        character_id=character_id,
    )
    return {"subscriptions": subscriptions}


@router.post("")
def subscribe(request: FanSubscribeRequest, user: AuthUser = Depends(get_current_user)):
    return SubscriptionService.subscribe(user.id, request.tier_id, email=user.email)


@router.post("/confirm")
def confirm_subscription(
    request: FanSubscriptionConfirmRequest,
    user: AuthUser = Depends(get_current_user),
):
    return SubscriptionService.confirm(user.id, request.subscription_id)


@router.patch("/{subscription_id}")
def update_subscription(
    subscription_id: str,
    request: FanSubscriptionActionRequest,
    user: AuthUser = Depends(get_current_user),
):
    return SubscriptionService.update(subscription_id, user.id, request.action)
