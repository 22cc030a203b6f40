# =============================================================================
# core/services/tier_service.py - Creator Subscription Tiers
# =============================================================================
# Premium creators define monthly tiers per character. tier_level orders
# them (1 = entry tier) and is assigned on creation.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso
from core.models.monetization import FanSubscriptionStatus, TierCreateRequest, TierUpdateRequest
from core.services.character_service import CharacterService
from core.services.premium_service import PremiumService
from app.exceptions import ForbiddenError, TierNotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)


class TierService:
    """Service for creator tier management."""

    @staticmethod
    def list_tiers(
        character_id: str | None = None,
        creator_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Active tiers for a character or creator, lowest level first.

        Raises:
            ValidationFailedError: If neither filter is given
        """
        client = SupabaseClient.get_client()
        query = client.table("creator_tiers").select("*").eq("is_active", True)

        if character_id:
            query = query.eq("character_id", character_id)
        elif creator_id:
            query = query.eq("creator_id", creator_id)
        else:
            raise ValidationFailedError("Character ID or Creator ID required")

        response = query.order("tier_level").execute()
        return response.data or []

    @staticmethod
    def get_tier(tier_id: str, active_only: bool = False) -> dict[str, Any]:
        filters = {"id": tier_id}
        if active_only:
            filters["is_active"] = True

        tier = SupabaseClient.fetch_one("creator_tiers", **filters)
        if not tier:
            raise TierNotFoundError(tier_id)
        return tier

    @staticmethod
    def get_owned_tier(tier_id: str, user_id: UUID | str) -> dict[str, Any]:
        tier = TierService.get_tier(tier_id)
        if str(tier.get("creator_id")) != normalize_uuid(user_id):
            raise ForbiddenError("You don't own this tier", code="NOT_TIER_OWNER")
        return tier

    @staticmethod
    def create_tier(user_id: UUID | str, request: TierCreateRequest) -> dict[str, Any]:
        """
        Create the next tier for an owned character.

        Raises:
            PremiumRequiredError: If the creator isn't premium
            CharacterNotFoundError / NotCharacterOwnerError: Bad character
        """
        PremiumService.require_premium(user_id, "subscription tiers")
        CharacterService.get_owned_character(request.character_id, user_id)

        client = SupabaseClient.get_client()
        highest = (
            client.table("creator_tiers")
            .select("tier_level")
            .eq("character_id", request.character_id)
            .order("tier_level", desc=True)
            .limit(1)
            .execute()
        )
        next_level = int((highest.data or [{}])[0].get("tier_level") or 0) + 1

        row = request.model_dump()
        row.update({
            "creator_id": normalize_uuid(user_id),
            "tier_level": next_level,
            "is_active": True,
        })

        try:
            response = client.table("creator_tiers").insert(row).execute()
            tier = response.data[0]
            logger.info(f"Created tier {tier['id']} (level {next_level}) for {request.character_id}")
            return tier

        except Exception as e:
            logger.error(f"Failed to create tier: {e}")
            raise

    @staticmethod
    def update_tier(
        tier_id: str,
        user_id: UUID | str,
        request: TierUpdateRequest,
    ) -> dict[str, Any]:
        tier = TierService.get_owned_tier(tier_id, user_id)

        updates = request.model_dump(exclude_unset=True)
        if not updates:
            return tier
        updates["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("creator_tiers")
                .update(updates)
                .eq("id", tier_id)
                .execute()
            )
            logger.info(f"Updated tier {tier_id}: {sorted(updates)}")
            return response.data[0] if response.data else {**tier, **updates}

        except Exception as e:
            logger.error(f"Failed to update tier {tier_id}: {e}")
            raise

    @staticmethod
    def delete_tier(tier_id: str, user_id: UUID | str) -> None:
        """
        Delete a tier that has no active subscribers.

        Raises:
            ValidationFailedError: If fans are still subscribed
        """
        TierService.get_owned_tier(tier_id, user_id)
        client = SupabaseClient.get_client()

        subscribers = (
            client.table("fan_subscriptions")
            .select("id", count="exact")
            .eq("tier_id", tier_id)
            .eq("status", FanSubscriptionStatus.ACTIVE.value)
            .execute()
        )
        if subscribers.count:
            raise ValidationFailedError(
                "Cannot delete tier with active subscribers",
                suggestion="Deactivate it instead with isActive=false",
            )

        client.table("creator_tiers").delete().eq("id", tier_id).execute()
        logger.info(f"Deleted tier {tier_id}")

    @staticmethod
    def adjust_subscriber_count(tier_id: str, delta: int) -> None:
        """Add delta to a tier's subscriber_count (never below zero)."""
        try:
            tier = SupabaseClient.fetch_one("creator_tiers", columns="subscriber_count", id=tier_id)
            if not tier:
                return
            count = max(0, int(tier.get("subscriber_count") or 0) + delta)
            (
                SupabaseClient.get_client()
                .table("creator_tiers")
                .update({"subscriber_count": count})
                .eq("id", tier_id)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Failed to update subscriber count for tier {tier_id}: {e}")
