# =============================================================================
# app/routers/coins.py - Coin Balance & Packages
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import AutoRechargeUpdate, CoinPurchaseRequest
from core.services.coin_service import CoinService

router = APIRouter()


@router.get("")
async def get_balance(
    user: AuthUser = Depends(get_current_user),
    include_transactions: Annotated[bool, Query(alias="includeTransactions")] = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """Caller's balance, created with zeros on first access."""
    result = {"balance": CoinService.get_balance(user.id)}
    if include_transactions:
        result["transactions"] = CoinService.list_transactions(user.id, limit)
    return result


@router.post("/purchase")
async def purchase_coins(request: CoinPurchaseRequest, user: AuthUser = Depends(get_current_user)):
    return CoinService.purchase_package(user.id, request.package_id)


@router.patch("/auto-recharge")
async def update_auto_recharge(request: AutoRechargeUpdate, user: AuthUser = Depends(get_current_user)):
    return CoinService.update_auto_recharge(
        user.id,
        request.enabled,
        threshold=request.threshold,
        package_id=request.package_id,
    )


@router.get("/packages")
async def list_packages():
    return {"packages": CoinService.list_packages()}
