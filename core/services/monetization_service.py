# =============================================================================
# core/services/monetization_service.py - Character Monetization Settings
# =============================================================================
# One character_monetization row per character controls tips, fan image
# requests and the chat welcome message. Enabling monetization also creates
# the character's ranking row so it shows up in discovery.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso
from core.models.monetization import MonetizationSettingsRequest
from core.services.character_service import CharacterService
from core.services.premium_service import PremiumService
from core.services.tier_service import TierService
from app.exceptions import ResourceNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MIN_TIP = 1.00


class MonetizationService:
    """Service for per-character monetization settings."""

    @staticmethod
    def get_settings(character_id: str) -> dict[str, Any]:
        """Settings (or None) plus active tiers for a character."""
        monetization = SupabaseClient.fetch_one("character_monetization", character_id=character_id)
        tiers = TierService.list_tiers(character_id=character_id)
        return {
            "settings": monetization,
            "tiers": tiers,
            "isMonetized": bool(monetization and monetization.get("is_monetized")),
        }

    @staticmethod
    def enable(user_id: UUID | str, request: MonetizationSettingsRequest) -> dict[str, Any]:
        """
        Turn monetization on for an owned character.

        Provided fields override the defaults (tips on, $1 minimum).

        Raises:
            PremiumRequiredError: If the creator isn't premium
        """
        PremiumService.require_premium(user_id, "monetization")
        character = CharacterService.get_owned_character(request.character_id, user_id)

        row = {
            "character_id": request.character_id,
            "creator_id": normalize_uuid(user_id),
            "is_monetized": True,
            "tips_enabled": True,
            "min_tip_amount": DEFAULT_MIN_TIP,
        }
        row.update(request.model_dump(exclude_none=True, exclude={"character_id"}))

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("character_monetization")
                .upsert(row, on_conflict="character_id")
                .execute()
            )
            monetization = response.data[0] if response.data else row

        except Exception as e:
            logger.error(f"Failed to enable monetization for {request.character_id}: {e}")
            raise

        try:
            (
                client.table("character_rankings")
                .upsert({
                    "character_id": request.character_id,
                    "category": character.get("category"),
                }, on_conflict="character_id")
                .execute()
            )
        except Exception as e:
            logger.warning(f"Failed to initialize ranking for {request.character_id}: {e}")

        logger.info(f"Monetization enabled for {request.character_id}")
        return {
            "success": True,
            "settings": monetization,
            "message": "Monetization enabled successfully!",
        }

    @staticmethod
    def update(user_id: UUID | str, request: MonetizationSettingsRequest) -> dict[str, Any]:
        """
        Update an owned character's settings.

        Raises:
            ResourceNotFoundError: If monetization was never enabled
        """
        CharacterService.get_owned_character(request.character_id, user_id)

        existing = SupabaseClient.fetch_one(
            "character_monetization", character_id=request.character_id
        )
        if not existing:
            raise ResourceNotFoundError("Monetization settings", request.character_id)

        updates = request.model_dump(exclude_unset=True, exclude={"character_id"})
        if not updates:
            return {"success": True, "settings": existing, "message": "No changes"}
        updates["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("character_monetization")
                .update(updates)
                .eq("character_id", request.character_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update monetization for {request.character_id}: {e}")
            raise

        return {
            "success": True,
            "settings": response.data[0] if response.data else {**existing, **updates},
            "message": "Monetization settings updated!",
        }
