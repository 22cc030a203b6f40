# =============================================================================
# core/services/analytics_service.py - Creator Analytics
# =============================================================================
# Aggregates character_daily_stats for a creator's characters over a period
# and compares it with the period immediately before it.
#
# Periods: 7d, 30d, 90d (default 30d)
# =============================================================================

import logging
import math
from datetime import timedelta
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, round_money, utc_now
from core.constants import ANALYTICS_PERIOD_DAYS
from core.models.monetization import TipStatus
from core.services.premium_service import PremiumService

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = "30d"

# character_daily_stats column -> aggregate key
STAT_COLUMNS = {
    "total_revenue": "revenue",
    "subscription_revenue": "subscriptionRevenue",
    "tip_revenue": "tipRevenue",
    "messages_received": "messages",
    "images_generated": "images",
    "new_followers": "newFollowers",
    "unfollows": "unfollows",
    "new_subscribers": "newSubscribers",
    "churned_subscribers": "churnedSubscribers",
}


def percentage_change(current: float, previous: float) -> int:
    """
    Period-over-period change in whole percent.

    Example:
        percentage_change(150, 100)  # 50
        percentage_change(5, 0)      # 100
        percentage_change(9, 8)      # 13, halves round up
    """
    if previous == 0:
        return 100 if current > 0 else 0
    return math.floor((current - previous) / previous * 100 + 0.5)


def aggregate_stats(rows: list[dict[str, Any]]) -> dict[str, float]:
    """Sum daily stats rows; views = profile_views + post_views."""
    totals = {key: 0.0 for key in STAT_COLUMNS.values()}
    totals["views"] = 0.0

    for row in rows:
        for column, key in STAT_COLUMNS.items():
            totals[key] += float(row.get(column) or 0)
        totals["views"] += float(row.get("profile_views") or 0) + float(row.get("post_views") or 0)

    return totals


def empty_analytics() -> dict[str, Any]:
    """Analytics payload for a creator without characters."""
    return {
        "overview": {
            "totalRevenue": 0,
            "revenueChange": 0,
            "totalSubscribers": 0,
            "subscriberChange": 0,
            "totalFollowers": 0,
            "followerChange": 0,
            "totalInteractions": 0,
            "interactionChange": 0,
        },
        "revenue": {
            "subscriptionRevenue": 0,
            "tipRevenue": 0,
            "totalRevenue": 0,
            "averageRevenuePerSubscriber": 0,
            "topTippers": [],
            "revenueByTier": [],
        },
        "engagement": {
            "totalMessages": 0,
            "totalImageGenerated": 0,
            "totalViews": 0,
            "engagementRate": 0,
        },
        "growth": {
            "newFollowers": 0,
            "lostFollowers": 0,
            "netFollowerGrowth": 0,
            "newSubscribers": 0,
            "churnedSubscribers": 0,
            "netSubscriberGrowth": 0,
            "conversionRate": 0,
        },
        "dailyStats": [],
        "characters": [],
    }


class AnalyticsService:
    """Service for creator analytics dashboards."""

    @staticmethod
    def _stats_between(character_ids: list[str], start: str, end: str, inclusive: bool) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = (
            client.table("character_daily_stats")
            .select("*")
            .in_("character_id", character_ids)
            .gte("date", start)
        )
        query = query.lte("date", end) if inclusive else query.lt("date", end)
        return query.order("date").execute().data or []

    @staticmethod
    def _top_tippers(character_ids: list[str], since: str) -> list[dict[str, Any]]:
        """Biggest tippers in the period, anonymous tips listed individually."""
        client = SupabaseClient.get_client()
        response = (
            client.table("tips")
            .select("fan_id, amount, is_anonymous, profiles!tips_fan_id_fkey (full_name)")
            .in_("character_id", character_ids)
            .eq("status", TipStatus.COMPLETED.value)
            .gte("created_at", since)
            .order("amount", desc=True)
            .limit(100)
            .execute()
        )

        by_fan: dict[str, dict[str, Any]] = {}
        anonymous: list[dict[str, Any]] = []
        for tip in response.data or []:
            amount = float(tip.get("amount") or 0)
            if tip.get("is_anonymous") or not tip.get("fan_id"):
                anonymous.append({
                    "userId": None,
                    "displayName": "Anonymous",
                    "totalTips": amount,
                    "isAnonymous": True,
                })
                continue

            profile = tip.get("profiles") or {}
            if isinstance(profile, list):
                profile = profile[0] if profile else {}
            entry = by_fan.setdefault(tip["fan_id"], {
                "userId": tip["fan_id"],
                "displayName": profile.get("full_name") or "User",
                "totalTips": 0.0,
                "isAnonymous": False,
            })
            entry["totalTips"] += amount

        tippers = list(by_fan.values()) + anonymous
        tippers.sort(key=lambda t: t["totalTips"], reverse=True)
        for tipper in tippers:
            tipper["totalTips"] = round_money(tipper["totalTips"])
        return tippers[:10]

    @staticmethod
    def get_analytics(
        user_id: UUID | str,
        character_id: str | None = None,
        period: str = DEFAULT_PERIOD,
    ) -> dict[str, Any]:
        """
        Dashboard analytics for the caller's characters.

        Raises:
            PremiumRequiredError: If the caller isn't premium
        """
        PremiumService.require_premium(user_id, "analytics")

        days = ANALYTICS_PERIOD_DAYS.get(period, ANALYTICS_PERIOD_DAYS[DEFAULT_PERIOD])
        now = utc_now()
        start = now - timedelta(days=days)
        previous_start = start - timedelta(days=days)

        start_str = start.date().isoformat()
        end_str = now.date().isoformat()

        client = SupabaseClient.get_client()
        query = (
            client.table("characters")
            .select("id, name, thumbnail")
            .eq("user_id", normalize_uuid(user_id))
        )
        if character_id:
            query = query.eq("id", character_id)
        characters = query.execute().data or []
        character_ids = [c["id"] for c in characters]

        if not character_ids:
            return empty_analytics()

        daily_stats = AnalyticsService._stats_between(character_ids, start_str, end_str, inclusive=True)
        previous_stats = AnalyticsService._stats_between(
            character_ids, previous_start.date().isoformat(), start_str, inclusive=False
        )
        current = aggregate_stats(daily_stats)
        previous = aggregate_stats(previous_stats)

        rankings = (
            client.table("character_rankings")
            .select("*")
            .in_("character_id", character_ids)
            .execute()
        ).data or []
        total_followers = sum(int(r.get("follower_count") or 0) for r in rankings)
        total_subscribers = sum(int(r.get("subscriber_count") or 0) for r in rankings)

        tiers = (
            client.table("creator_tiers")
            .select("id, name, subscriber_count, price_monthly")
            .in_("character_id", character_ids)
            .eq("is_active", True)
            .execute()
        ).data or []

        interactions = current["messages"] + current["images"] + current["views"]

        return {
            "overview": {
                "totalRevenue": round_money(current["revenue"]),
                "revenueChange": percentage_change(current["revenue"], previous["revenue"]),
                "totalSubscribers": total_subscribers,
                "subscriberChange": percentage_change(current["newSubscribers"], previous["newSubscribers"]),
                "totalFollowers": total_followers,
                "followerChange": percentage_change(current["newFollowers"], previous["newFollowers"]),
                "totalInteractions": int(interactions),
                "interactionChange": percentage_change(current["messages"], previous["messages"]),
            },
            "revenue": {
                "subscriptionRevenue": round_money(current["subscriptionRevenue"]),
                "tipRevenue": round_money(current["tipRevenue"]),
                "totalRevenue": round_money(current["revenue"]),
                "averageRevenuePerSubscriber": (
                    round_money(current["subscriptionRevenue"] / total_subscribers)
                    if total_subscribers else 0
                ),
                "topTippers": AnalyticsService._top_tippers(character_ids, start.isoformat()),
                "revenueByTier": [
                    {
                        "tierId": tier["id"],
                        "tierName": tier["name"],
                        "subscriberCount": int(tier.get("subscriber_count") or 0),
                        "revenue": round_money(
                            int(tier.get("subscriber_count") or 0) * float(tier.get("price_monthly") or 0)
                        ),
                    }
                    for tier in tiers
                ],
            },
            "engagement": {
                "totalMessages": int(current["messages"]),
                "totalImageGenerated": int(current["images"]),
                "totalViews": int(current["views"]),
                "engagementRate": (
                    round((current["messages"] + current["images"]) / current["views"] * 100, 2)
                    if current["views"] else 0
                ),
            },
            "growth": {
                "newFollowers": int(current["newFollowers"]),
                "lostFollowers": int(current["unfollows"]),
                "netFollowerGrowth": int(current["newFollowers"] - current["unfollows"]),
                "newSubscribers": int(current["newSubscribers"]),
                "churnedSubscribers": int(current["churnedSubscribers"]),
                "netSubscriberGrowth": int(current["newSubscribers"] - current["churnedSubscribers"]),
                "conversionRate": (
                    round(total_subscribers / total_followers * 100, 2) if total_followers else 0
                ),
            },
            "dailyStats": daily_stats,
            "characters": characters,
        }
