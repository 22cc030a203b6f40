# =============================================================================
# core/services/interaction_service.py - Interaction Tracking
# =============================================================================
# Records what users do with characters (views, follows, messages, tips...).
# The record_interaction database function writes user_interactions and
# rolls the event into character_daily_stats and character_rankings.
#
# Tracking is a side effect: callers use record() which never raises.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, today_str
from core.constants import ANONYMOUS_INTERACTION_TYPES
from app.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

# Daily stats column bumped for anonymous views
ANONYMOUS_STAT_COLUMNS = {
    "profile_viewed": "profile_views",
    "post_viewed": "post_views",
}


class InteractionService:
    """Service for interaction tracking and history."""

    @staticmethod
    def track(
        user_id: UUID | str,
        character_id: str,
        interaction_type: str,
        metadata: dict[str, Any] | None = None,
        duration_seconds: int | None = None,
    ) -> Any:
        """
        Record an interaction and return its ID.

        Raises:
            SupabaseClientError: If the database function fails
        """
        return SupabaseClient.rpc("record_interaction", {
            "p_user_id": normalize_uuid(user_id),
            "p_character_id": character_id,
            "p_interaction_type": interaction_type,
            "p_metadata": metadata or {},
            "p_duration_seconds": duration_seconds,
        })

    @staticmethod
    def record(
        user_id: UUID | str | None,
        character_id: str,
        interaction_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Best-effort version of track() for side effects of other actions."""
        if not user_id:
            return
        try:
            InteractionService.track(user_id, character_id, interaction_type, metadata)
        except Exception as e:
            logger.warning(f"Failed to record {interaction_type} for {character_id}: {e}")

    @staticmethod
    def track_anonymous(character_id: str, interaction_type: str) -> None:
        """
        Count a view from a signed-out visitor.

        Only view-type interactions are accepted anonymously.

        Raises:
            AuthenticationRequiredError: For any other interaction type
        """
        if interaction_type not in ANONYMOUS_INTERACTION_TYPES:
            raise AuthenticationRequiredError("Authentication required for this interaction type")

        client = SupabaseClient.get_client()
        today = today_str()

        try:
            (
                client.table("character_daily_stats")
                .upsert({"character_id": character_id, "date": today}, on_conflict="character_id,date")
                .execute()
            )
            column = ANONYMOUS_STAT_COLUMNS.get(interaction_type)
            if column:
                SupabaseClient.rpc("increment_stat", {
                    "p_character_id": character_id,
                    "p_date": today,
                    "p_column": column,
                })
        except Exception as e:
            logger.warning(f"Failed to count anonymous {interaction_type} for {character_id}: {e}")

    @staticmethod
    def list_interactions(
        user_id: UUID | str,
        character_id: str | None = None,
        interaction_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        A user's interaction history, newest first.

        Returns:
            Tuple of (interactions, total_count)
        """
        client = SupabaseClient.get_client()

        query = (
            client.table("user_interactions")
            .select("*, characters (id, name, thumbnail)", count="exact")
            .eq("user_id", normalize_uuid(user_id))
        )
        if character_id:
            query = query.eq("character_id", character_id)
        if interaction_type:
            query = query.eq("interaction_type", interaction_type)

        response = (
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return response.data or [], response.count or 0
