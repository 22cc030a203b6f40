# =============================================================================
# core/services/earnings_service.py - Creator Earnings Ledger
# =============================================================================
# Every tip and fan subscription payment produces one creator_earnings row
# holding the gross amount, the platform fee and the creator's net share.
#
# Status on creation:
# - pending: paid with coins (not yet cleared)
# - available: paid by card through Stripe (already settled)
#
# Revenue is also rolled into character_daily_stats for analytics.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, round_money, today_str, utc_now_iso
from core.constants import PLATFORM_FEE_PERCENTAGE
from core.models.monetization import EarningSource, EarningStatus

logger = logging.getLogger(__name__)


class EarningsService:
    """Service for creator earnings and revenue statistics."""

    @staticmethod
    def split(gross: float) -> tuple[float, float]:
        """
        Split a gross amount into (platform_fee, net) at the platform rate.

        Example:
            EarningsService.split(10.00)  # (1.5, 8.5)
        """
        fee = round_money(gross * PLATFORM_FEE_PERCENTAGE / 100)
        return fee, round_money(gross - fee)

    @staticmethod
    def record(
        creator_id: UUID | str,
        character_id: str | None,
        source_type: EarningSource,
        source_id: str | None,
        gross: float,
        status: EarningStatus,
    ) -> dict[str, Any] | None:
        """
        Insert an earnings row for a completed payment.

        The payment has already happened when this runs, so a failed insert
        is logged rather than raised.

        Returns:
            The inserted row, or None if the insert failed
        """
        fee, net = EarningsService.split(gross)
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("creator_earnings")
                .insert({
                    "creator_id": normalize_uuid(creator_id),
                    "character_id": character_id,
                    "source_type": source_type.value,
                    "source_id": source_id,
                    "gross_amount": round_money(gross),
                    "platform_fee": fee,
                    "platform_fee_percentage": PLATFORM_FEE_PERCENTAGE,
                    "net_amount": net,
                    "status": status.value,
                })
                .execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            logger.error(f"Failed to record {source_type.value} earnings for {creator_id}: {e}")
            return None

    @staticmethod
    def bump_daily_stats(
        character_id: str,
        tip: float = 0.0,
        subscription: float = 0.0,
        new_subscribers: int = 0,
    ) -> None:
        """
        Add revenue to today's character_daily_stats row.

        Reads the current row and writes the sums back with an upsert on
        (character_id, date). Failures are logged and skipped.
        """
        client = SupabaseClient.get_client()
        today = today_str()

        try:
            existing = SupabaseClient.fetch_one(
                "character_daily_stats",
                columns="tip_revenue, subscription_revenue, total_revenue, new_subscribers",
                character_id=character_id,
                date=today,
            ) or {}

            row = {
                "character_id": character_id,
                "date": today,
                "tip_revenue": round_money(float(existing.get("tip_revenue") or 0) + tip),
                "subscription_revenue": round_money(
                    float(existing.get("subscription_revenue") or 0) + subscription
                ),
                "total_revenue": round_money(float(existing.get("total_revenue") or 0) + tip + subscription),
                "new_subscribers": int(existing.get("new_subscribers") or 0) + new_subscribers,
                "updated_at": utc_now_iso(),
            }
            client.table("character_daily_stats").upsert(row, on_conflict="character_id,date").execute()

        except Exception as e:
            logger.warning(f"Failed to update daily stats for {character_id}: {e}")

    @staticmethod
    def list_earnings(
        creator_id: UUID | str,
        status: str | None = None,
        source_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        A creator's earnings, newest first, with character summaries.

        Returns:
            Tuple of (earnings, total_count)
        """
        client = SupabaseClient.get_client()

        query = (
            client.table("creator_earnings")
            .select("*, characters (id, name, thumbnail)", count="exact")
            .eq("creator_id", normalize_uuid(creator_id))
        )
        if status:
            query = query.eq("status", status)
        if source_type:
            query = query.eq("source_type", source_type)

        response = (
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return response.data or [], response.count or 0

    @staticmethod
    def summary(creator_id: UUID | str) -> dict[str, float]:
        """
        Totals over all of a creator's earnings.

        Returns:
            Dict with totalGross, totalFees, totalNet, pending, available, paidOut
        """
        client = SupabaseClient.get_client()

        response = (
            client.table("creator_earnings")
            .select("gross_amount, platform_fee, net_amount, status")
            .eq("creator_id", normalize_uuid(creator_id))
            .execute()
        )

        totals = {
            "totalGross": 0.0,
            "totalFees": 0.0,
            "totalNet": 0.0,
            "pending": 0.0,
            "available": 0.0,
            "paidOut": 0.0,
        }
        by_status = {
            EarningStatus.PENDING.value: "pending",
            EarningStatus.AVAILABLE.value: "available",
            EarningStatus.PAID_OUT.value: "paidOut",
        }

        for row in response.data or []:
            net = float(row.get("net_amount") or 0)
            totals["totalGross"] += float(row.get("gross_amount") or 0)
            totals["totalFees"] += float(row.get("platform_fee") or 0)
            totals["totalNet"] += net
            key = by_status.get(row.get("status"))
            if key:
                totals[key] += net

        return {key: round_money(value) for key, value in totals.items()}
