# =============================================================================
# core/services/character_service.py - Character Business Logic
# =============================================================================
# Handles character CRUD, visibility rules and plan limits.
#
# Visibility:
# - Public characters are readable by anyone
# - Private characters are only readable by their owner; everyone else gets
#   "not found" so the ID's existence isn't revealed
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.llm import json_completion
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso
from core.constants import CHARACTER_LIMITS
from core.models.character import CharacterCreate, CharacterScope, CharacterUpdate, GalleryStatus
from core.services.premium_service import PremiumService
from app.exceptions import CharacterLimitError, CharacterNotFoundError, NotCharacterOwnerError

logger = logging.getLogger(__name__)

TAG_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates relevant tags for AI influencer "
    "characters. Return only valid JSON."
)


def serialize_character(row: dict[str, Any], images: list[str] | None = None) -> dict[str, Any]:
    """Database row -> API shape (camelCase keys, image URL list)."""
    return {
        "id": row.get("id"),
        "userId": row.get("user_id"),
        "name": row.get("name"),
        "description": row.get("description"),
        "thumbnail": row.get("thumbnail") or "",
        "category": row.get("category"),
        "images": images or [],
        "isPublic": bool(row.get("is_public")),
        "personality": row.get("personality") or {},
        "physicalAttributes": row.get("physical_attributes") or {},
        "tags": row.get("tags") or [],
        "mainFaceImage": row.get("main_face_image"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


class CharacterService:
    """
    Service for character management operations.
    """

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def get_character(
        character_id: str,
        user_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        """
        Get a character the caller may see.

        Raises:
            CharacterNotFoundError: If missing, or private and not the caller's
        """
        character = SupabaseClient.fetch_character(character_id)
        if not character:
            raise CharacterNotFoundError(character_id)

        is_owner = user_id is not None and str(character.get("user_id")) == normalize_uuid(user_id)
        if not character.get("is_public") and not is_owner:
            raise CharacterNotFoundError(character_id)

        return character

    @staticmethod
    def get_owned_character(character_id: str, user_id: UUID | str) -> dict[str, Any]:
        """
        Get a character and verify the caller owns it.

        Raises:
            CharacterNotFoundError: If the character doesn't exist
            NotCharacterOwnerError: If it belongs to someone else
        """
        character = SupabaseClient.fetch_character(character_id)
        if not character:
            raise CharacterNotFoundError(character_id)
        if str(character.get("user_id")) != normalize_uuid(user_id):
            raise NotCharacterOwnerError(character_id)
        return character

    @staticmethod
    def posted_images(character_ids: list[str]) -> dict[str, list[str]]:
        """Posted image URLs grouped by character ID, oldest first."""
        if not character_ids:
            return {}

        client = SupabaseClient.get_client()
        response = (
            client.table("character_images")
            .select("character_id, image_url")
            .in_("character_id", character_ids)
            .eq("gallery_status", GalleryStatus.POSTED.value)
            .order("created_at")
            .execute()
        )

        grouped: dict[str, list[str]] = {}
        for image in response.data or []:
            grouped.setdefault(image["character_id"], []).append(image["image_url"])
        return grouped

    @staticmethod
    def get_with_images(
        character_id: str,
        user_id: UUID | str | None = None,
        include_all: bool = False,
    ) -> dict[str, Any]:
        """
        Character plus its gallery.

        Only posted images are included unless the owner asks for all.
        """
        character = CharacterService.get_character(character_id, user_id)
        is_owner = user_id is not None and str(character.get("user_id")) == normalize_uuid(user_id)

        client = SupabaseClient.get_client()
        query = (
            client.table("character_images")
            .select("image_url, gallery_status")
            .eq("character_id", character_id)
        )
        if not (is_owner and include_all):
            query = query.eq("gallery_status", GalleryStatus.POSTED.value)

        images = [row["image_url"] for row in (query.order("created_at").execute().data or [])]
        return serialize_character(character, images)

    @staticmethod
    def list_characters(
        scope: CharacterScope,
        user_id: UUID | str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List characters, newest first.

        - mine: the caller's characters (empty when anonymous)
        - public: public characters
        - all: public characters plus the caller's own
        """
        client = SupabaseClient.get_client()
        query = client.table("characters").select("*")
        user_id_str = normalize_uuid(user_id) if user_id else None

        if scope == CharacterScope.MINE:
            if not user_id_str:
                return []
            query = query.eq("user_id", user_id_str)
        elif scope == CharacterScope.ALL and user_id_str:
            query = query.or_(f"is_public.eq.true,user_id.eq.{user_id_str}")
        else:
            query = query.eq("is_public", True)

        characters = query.order("created_at", desc=True).execute().data or []
        images = CharacterService.posted_images([c["id"] for c in characters])
        return [serialize_character(c, images.get(c["id"])) for c in characters]

    # -------------------------------------------------------------------------
    # Limits
    # -------------------------------------------------------------------------

    @staticmethod
    def count_for_user(user_id: UUID | str) -> int:
        client = SupabaseClient.get_client()
        response = (
            client.table("characters")
            .select("id", count="exact")
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )
        return response.count or 0

    @staticmethod
    def get_limits(user_id: UUID | str) -> dict[str, Any]:
        """
        Character limit for the caller's plan.

        Returns:
            Dict with current, limit, remaining, isPremium, canCreate
        """
        is_premium = PremiumService.is_premium(user_id)
        limit = CHARACTER_LIMITS["premium"] if is_premium else CHARACTER_LIMITS["free"]
        current = CharacterService.count_for_user(user_id)
        return {
            "current": current,
            "limit": limit,
            "remaining": max(0, limit - current),
            "isPremium": is_premium,
            "canCreate": current < limit,
        }

    # -------------------------------------------------------------------------
    # Create / Update / Delete
    # -------------------------------------------------------------------------

    @staticmethod
    def fallback_tags(data: CharacterCreate) -> list[str]:
        """Tags derived from attributes when the model is unavailable."""
        attributes = data.physical_attributes
        traits = data.personality.get("traits") or []
        tags = [
            attributes.get("gender"),
            attributes.get("ethnicity"),
            attributes.get("hairColor"),
            data.category.lower(),
            *traits[:3],
        ]
        return [tag for tag in tags if tag]

    @staticmethod
    def generate_tags(data: CharacterCreate) -> tuple[list[str], str]:
        """
        Generate 10-15 search tags and a suggested category.

        Returns:
            Tuple of (tags, category); attribute-derived on any failure
        """
        attrs = data.physical_attributes
        personality = data.personality
        prompt = f"""Based on the following AI character profile, generate relevant tags for categorization and search. The character is for an AI influencer platform.

Character Name: {data.name}
Description: {data.description}
Category: {data.category}

Physical Attributes:
- Gender: {attrs.get("gender")}
- Age: {attrs.get("age")}
- Ethnicity: {attrs.get("ethnicity")}
- Hair: {attrs.get("hairColor")} {attrs.get("hairLength")} {attrs.get("hairStyle")}
- Eye Color: {attrs.get("eyeColor")}
- Body Type: {attrs.get("bodyType")}
- Fashion Style: {attrs.get("fashionStyle")}
- Distinctive Features: {", ".join(attrs.get("distinctiveFeatures") or []) or "None"}

Personality:
- Traits: {", ".join(personality.get("traits") or [])}
- Speaking Style: {personality.get("speakingStyle")}
- Occupation: {personality.get("occupation")}
- Interests: {", ".join(personality.get("interests") or [])}
- Relationship Style: {personality.get("relationshipStyle")}

Generate 10-15 relevant tags that would help users find this character. Include tags for appearance, personality, style, and content type.
Example format: {{"tags": ["brunette", "friendly", "fashion", "lifestyle", "casual"], "suggestedCategory": "Lifestyle"}}"""

        try:
            result = json_completion([
                {"role": "system", "content": TAG_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ])
            tags = [str(tag) for tag in result.get("tags") or []]
            return tags, result.get("suggestedCategory") or data.category

        except Exception as e:
            logger.warning(f"Tag generation failed, using attribute tags: {e}")
            return CharacterService.fallback_tags(data), data.category

    @staticmethod
    def create_character(user_id: UUID | str, data: CharacterCreate) -> dict[str, Any]:
        """
        Create a private character with generated tags.

        Raises:
            CharacterLimitError: If the caller is at their plan's limit
        """
        limits = CharacterService.get_limits(user_id)
        if not limits["canCreate"]:
            raise CharacterLimitError(limits["current"], limits["limit"], limits["isPremium"])

        tags, category = CharacterService.generate_tags(data)
        client = SupabaseClient.get_client()

        row = {
            "user_id": normalize_uuid(user_id),
            "name": data.name,
            "description": data.description,
            "category": category,
            "thumbnail": data.thumbnail,
            "personality": data.personality,
            "physical_attributes": data.physical_attributes,
            "tags": tags,
            "is_public": False,
        }

        try:
            response = client.table("characters").insert(row).execute()
            character = response.data[0]
            logger.info(f"Created character: {character['id']} for user: {user_id}")
            return serialize_character(character)

        except Exception as e:
            logger.error(f"Failed to create character: {e}")
            raise

    @staticmethod
    def update_character(
        character_id: str,
        user_id: UUID | str,
        data: CharacterUpdate,
    ) -> dict[str, Any]:
        """Apply the provided fields to an owned character."""
        character = CharacterService.get_owned_character(character_id, user_id)

        update_data = data.model_dump(exclude_none=True)
        if not update_data:
            return serialize_character(character)
        update_data["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("characters")
                .update(update_data)
                .eq("id", character_id)
                .execute()
            )
            logger.info(f"Updated character {character_id}: {sorted(update_data)}")
            return serialize_character(response.data[0] if response.data else {**character, **update_data})

        except Exception as e:
            logger.error(f"Failed to update character {character_id}: {e}")
            raise

    @staticmethod
    def delete_character(character_id: str, user_id: UUID | str) -> None:
        """Delete an owned character (images and stats cascade in the database)."""
        CharacterService.get_owned_character(character_id, user_id)
        client = SupabaseClient.get_client()

        try:
            client.table("characters").delete().eq("id", character_id).execute()
            logger.info(f"Deleted character: {character_id}")

        except Exception as e:
            logger.error(f"Failed to delete character {character_id}: {e}")
            raise
