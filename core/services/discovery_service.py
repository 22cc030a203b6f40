# =============================================================================
# core/services/discovery_service.py - Character Discovery
# =============================================================================
# Public character browsing with ranking, monetization and tier summaries.
#
# Filtering happens in two places:
# - Database: is_public, category, tags, name/description search
# - In memory: monetized flag and tier price range (derived fields)
# Featured characters are always listed first; the chosen sort is kept
# within the featured and non-featured groups.
# =============================================================================

import logging
import math
from enum import Enum
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from core.models.monetization import FanSubscriptionStatus

logger = logging.getLogger(__name__)


class DiscoverySort(str, Enum):
    TRENDING = "trending"
    POPULARITY = "popularity"
    ENGAGEMENT = "engagement"
    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"


DISCOVERY_SELECT = """
    id, name, description, thumbnail, category, tags, user_id, created_at,
    profiles!characters_user_id_fkey (id, full_name, avatar_url),
    character_rankings (follower_count, subscriber_count, engagement_score, trending_score, is_featured),
    character_monetization (is_monetized, tips_enabled),
    creator_tiers (id, price_monthly, is_active)
"""


def _one(value: Any) -> dict[str, Any]:
    """PostgREST embeds one-to-one relations as an object or a 1-item list."""
    if isinstance(value, list):
        return value[0] if value else {}
    return value or {}


def shape_character(row: dict[str, Any]) -> dict[str, Any]:
    """Discovery card for a characters row with its embedded relations."""
    ranking = _one(row.get("character_rankings"))
    monetization = _one(row.get("character_monetization"))
    profile = _one(row.get("profiles"))
    tiers = [t for t in row.get("creator_tiers") or [] if t.get("is_active", True)]
    prices = [float(t["price_monthly"]) for t in tiers if t.get("price_monthly") is not None]

    return {
        "id": row["id"],
        "name": row.get("name"),
        "description": row.get("description"),
        "thumbnail": row.get("thumbnail"),
        "category": row.get("category"),
        "tags": row.get("tags") or [],
        "creatorId": row.get("user_id"),
        "creatorName": profile.get("full_name"),
        "creatorAvatar": profile.get("avatar_url"),
        "followerCount": int(ranking.get("follower_count") or 0),
        "subscriberCount": int(ranking.get("subscriber_count") or 0),
        "engagementScore": float(ranking.get("engagement_score") or 0),
        "trendingScore": float(ranking.get("trending_score") or 0),
        "isFeatured": bool(ranking.get("is_featured")),
        "isMonetized": bool(monetization.get("is_monetized")),
        "tipsEnabled": bool(monetization.get("tips_enabled")),
        "lowestTierPrice": min(prices) if prices else None,
        "tierCount": len(tiers),
    }


def filter_and_sort(
    results: list[dict[str, Any]],
    monetized: bool | None = None,
    min_price: float = 0.0,
    max_price: float | None = None,
    sort: DiscoverySort = DiscoverySort.TRENDING,
) -> list[dict[str, Any]]:
    """
    Apply the in-memory filters and sort.

    The price range only applies to monetized characters that have tiers.
    """
    if monetized is not None:
        results = [r for r in results if r["isMonetized"] == monetized]

    def in_price_range(card: dict[str, Any]) -> bool:
        price = card["lowestTierPrice"]
        if not card["isMonetized"] or price is None:
            return True
        return price >= min_price and (max_price is None or price <= max_price)

    results = [r for r in results if in_price_range(r)]

    sort_keys = {
        DiscoverySort.POPULARITY: (lambda r: r["followerCount"], True),
        DiscoverySort.ENGAGEMENT: (lambda r: r["engagementScore"], True),
        DiscoverySort.TRENDING: (lambda r: r["trendingScore"], True),
        DiscoverySort.PRICE_LOW: (lambda r: r["lowestTierPrice"] or 0, False),
        DiscoverySort.PRICE_HIGH: (lambda r: r["lowestTierPrice"] or 0, True),
    }
    if sort in sort_keys:
        key, reverse = sort_keys[sort]
        results = sorted(results, key=key, reverse=reverse)

    # Stable: keeps the chosen order inside each group
    return sorted(results, key=lambda r: not r["isFeatured"])


class DiscoveryService:
    """Service for browsing public characters."""

    @staticmethod
    def _viewer_state(user_id: str, character_ids: list[str]) -> tuple[set[str], dict[str, str]]:
        """(followed character IDs, character ID -> subscribed tier ID)"""
        if not character_ids:
            return set(), {}

        client = SupabaseClient.get_client()
        follows = (
            client.table("user_follows")
            .select("character_id")
            .eq("follower_id", user_id)
            .in_("character_id", character_ids)
            .execute()
        ).data or []
        subscriptions = (
            client.table("fan_subscriptions")
            .select("character_id, tier_id")
            .eq("fan_id", user_id)
            .eq("status", FanSubscriptionStatus.ACTIVE.value)
            .in_("character_id", character_ids)
            .execute()
        ).data or []

        return (
            {f["character_id"] for f in follows},
            {s["character_id"]: s["tier_id"] for s in subscriptions},
        )

    @staticmethod
    def discover(
        user_id: UUID | str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        search: str | None = None,
        monetized: bool | None = None,
        min_price: float = 0.0,
        max_price: float | None = None,
        sort: DiscoverySort = DiscoverySort.TRENDING,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        One page of public characters.

        Returns:
            Dict with characters, total, page, totalPages
        """
        client = SupabaseClient.get_client()
        offset = (page - 1) * limit

        query = (
            client.table("characters")
            .select(DISCOVERY_SELECT, count="exact")
            .eq("is_public", True)
        )
        if category and category != "all":
            query = query.eq("category", category)
        if tags:
            query = query.contains("tags", tags)
        if search:
            term = search.replace(",", " ").strip()
            query = query.or_(f"name.ilike.%{term}%,description.ilike.%{term}%")

        response = (
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )

        results = filter_and_sort(
            [shape_character(row) for row in response.data or []],
            monetized=monetized,
            min_price=min_price,
            max_price=max_price,
            sort=sort,
        )

        if user_id:
            followed, subscribed = DiscoveryService._viewer_state(
                normalize_uuid(user_id), [r["id"] for r in results]
            )
            for card in results:
                card["isFollowing"] = card["id"] in followed
                card["isSubscribed"] = card["id"] in subscribed
                card["currentTierId"] = subscribed.get(card["id"])

        total = response.count if response.count is not None else len(results)
        return {
            "characters": results,
            "total": total,
            "page": page,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }
