# =============================================================================
# app/routers/stripe_connect.py - Creator Payouts via Stripe Connect
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import ConnectOnboardRequest, PayoutCreateRequest
from core.services.stripe_connect_service import StripeConnectService

router = APIRouter()


@router.get("/payout")
def get_payouts(
    user: AuthUser = Depends(get_current_user),
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return StripeConnectService.get_payout_overview(user.id, limit=limit, offset=offset)


@router.post("/payout")
def request_payout(request: PayoutCreateRequest, user: AuthUser = Depends(get_current_user)):
    """
    Transfer available earnings to the creator's Connect account.

    Minimum $20; requires payouts to be enabled on the account.
    """
    return StripeConnectService.request_payout(user.id, request.amount)


@router.get("/account")
def get_account(user: AuthUser = Depends(get_current_user)):
    return StripeConnectService.get_account(user.id)


@router.post("/account/login-link")
def create_login_link(user: AuthUser = Depends(get_current_user)):
    return StripeConnectService.create_login_link(user.id)


@router.post("/onboard")
def onboard(
    request: ConnectOnboardRequest | None = None,
    user: AuthUser = Depends(get_current_user),
):
    """Create (or reuse) an Express account and return its onboarding link."""
    request = request or ConnectOnboardRequest()
    return StripeConnectService.onboard(
        user.id,
        email=user.email,
        refresh_url=request.refresh_url,
        return_url=request.return_url,
    )
