# =============================================================================
# core/services/follow_service.py - Following Characters
# =============================================================================
# Users follow public characters they don't own. Follower counts feed the
# character_rankings row used by discovery.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now_iso
from core.models.monetization import FanSubscriptionStatus
from core.services.interaction_service import InteractionService
from app.exceptions import CharacterNotFoundError, ResourceNotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)


class FollowService:
    """Service for follows and follower statistics."""

    @staticmethod
    def _count(table: str, **filters: Any) -> int:
        client = SupabaseClient.get_client()
        query = client.table(table).select("id", count="exact")
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().count or 0

    @staticmethod
    def get_stats(character_id: str) -> dict[str, int]:
        """Follower and active subscriber counts for a character."""
        return {
            "followerCount": FollowService._count("user_follows", character_id=character_id),
            "subscriberCount": FollowService._count(
                "fan_subscriptions",
                character_id=character_id,
                status=FanSubscriptionStatus.ACTIVE.value,
            ),
        }

    @staticmethod
    def get_status(user_id: UUID | str, character_id: str) -> dict[str, Any]:
        follow = SupabaseClient.fetch_one(
            "user_follows",
            follower_id=normalize_uuid(user_id),
            character_id=character_id,
        )
        return {
            "isFollowing": follow is not None,
            "notificationsEnabled": bool(follow and follow.get("notifications_enabled")),
            "follow": follow,
        }

    @staticmethod
    def list_follows(user_id: UUID | str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        response = (
            client.table("user_follows")
            .select("*, characters (id, name, thumbnail, description, category)")
            .eq("follower_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @staticmethod
    def refresh_ranking(character_id: str) -> None:
        """Write the current follower count to the ranking row."""
        try:
            count = FollowService._count("user_follows", character_id=character_id)
            (
                SupabaseClient.get_client()
                .table("character_rankings")
                .upsert({
                    "character_id": character_id,
                    "follower_count": count,
                    "updated_at": utc_now_iso(),
                }, on_conflict="character_id")
                .execute()
            )
        except Exception as e:
            logger.warning(f"Failed to refresh ranking for {character_id}: {e}")

    @staticmethod
    def follow(
        user_id: UUID | str,
        character_id: str,
        notifications_enabled: bool = True,
    ) -> dict[str, Any]:
        """
        Follow a public character.

        Raises:
            CharacterNotFoundError: Missing or private character
            ValidationFailedError: Own character, or already following
        """
        follower_id = normalize_uuid(user_id)
        character = SupabaseClient.fetch_one(
            "characters", columns="id, user_id, name", id=character_id, is_public=True
        )
        if not character:
            raise CharacterNotFoundError(character_id)
        if str(character["user_id"]) == follower_id:
            raise ValidationFailedError("Cannot follow your own character")

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("user_follows")
                .insert({
                    "follower_id": follower_id,
                    "character_id": character_id,
                    "notifications_enabled": notifications_enabled,
                })
                .execute()
            )
            follow = response.data[0]

        except Exception as e:
            if SupabaseClient.is_unique_violation(e):
                raise ValidationFailedError("Already following this character")
            logger.error(f"Failed to follow {character_id}: {e}")
            raise

        InteractionService.record(follower_id, character_id, "followed")
        FollowService.refresh_ranking(character_id)

        return {
            "success": True,
            "follow": follow,
            "message": f"Now following {character['name']}!",
        }

    @staticmethod
    def unfollow(user_id: UUID | str, character_id: str) -> dict[str, Any]:
        follower_id = normalize_uuid(user_id)
        client = SupabaseClient.get_client()
        (
            client.table("user_follows")
            .delete()
            .eq("follower_id", follower_id)
            .eq("character_id", character_id)
            .execute()
        )

        InteractionService.record(follower_id, character_id, "unfollowed")
        FollowService.refresh_ranking(character_id)
        return {"success": True, "message": "Unfollowed successfully"}

    @staticmethod
    def set_notifications(
        user_id: UUID | str,
        character_id: str,
        enabled: bool,
    ) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        response = (
            client.table("user_follows")
            .update({"notifications_enabled": enabled})
            .eq("follower_id", normalize_uuid(user_id))
            .eq("character_id", character_id)
            .execute()
        )
        if not response.data:
            raise ResourceNotFoundError("Follow", character_id)
        return {"success": True, "follow": response.data[0]}
