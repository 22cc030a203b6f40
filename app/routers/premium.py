# =============================================================================
# app/routers/premium.py - Creator Premium Subscription
# =============================================================================
# With Stripe configured, POST returns a Checkout URL and the webhook
# activates the subscription. Without Stripe (or with adminBypass) the
# subscription is activated immediately.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import PremiumActionRequest, PremiumSubscribeRequest
from core.services.premium_service import PremiumService

router = APIRouter()


@router.get("")
def get_premium_status(user: AuthUser = Depends(get_current_user)):
    """{isPremium, subscription, plan, daysRemaining}"""
    return PremiumService.get_status(user.id)


@router.get("/plans")
def list_plans():
    return {"plans": PremiumService.list_plans()}


@router.post("")
def subscribe(request: PremiumSubscribeRequest, user: AuthUser = Depends(get_current_user)):
    return PremiumService.subscribe(
        user.id,
        user.email,
        plan_id=request.plan_id,
        plan_name=request.plan_name,
        billing_cycle=request.billing_cycle,
        admin_bypass=request.admin_bypass,
    )


@router.patch("")
def update_subscription(request: PremiumActionRequest, user: AuthUser = Depends(get_current_user)):
    """Cancel at period end, or undo a pending cancellation."""
    return PremiumService.update(user.id, request.action, subscription_id=request.subscription_id)


@router.delete("")
def cancel_subscription(
    user: AuthUser = Depends(get_current_user),
    immediate: Annotated[bool, Query()] = False,
    subscription_id: Annotated[str | None, Query(alias="subscriptionId")] = None,
):
    return PremiumService.cancel(user.id, immediate=immediate, subscription_id=subscription_id)
