# =============================================================================
# app/routers/earnings.py - Creator Earnings Ledger
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user
from core.models.monetization import EarningSource, EarningStatus
from core.services.earnings_service import EarningsService

router = APIRouter()


@router.get("")
async def list_earnings(
    user: AuthUser = Depends(get_current_user),
    status: Annotated[EarningStatus | None, Query()] = None,
    source_type: Annotated[EarningSource | None, Query(alias="sourceType")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """
    Paginated earnings plus totals.

    Returns:
        {earnings, total, summary: {totalGross, totalFees, totalNet, pending, available, paidOut}}
    """
    earnings, total = EarningsService.list_earnings(
        user.id,
        status=status.value if status else None,
        source_type=source_type.value if source_type else None,
        limit=limit,
        offset=offset,
    )
    return {
        "earnings": earnings,
        "total": total,
        "summary": EarningsService.summary(user.id),
    }
