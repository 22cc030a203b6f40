# =============================================================================
# core/services/image_interaction_service.py - Image Likes & Comments
# =============================================================================
# Fans like and comment on single images of a character's public gallery.
# An image is addressed by "<character_id>-<image_index>", the index being
# its position in the character's posted images.
#
# Likes and comments also record post_liked / post_commented interactions
# (best effort) so they show up in the creator's analytics.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import CharacterNotFoundError, ValidationFailedError
from core.models.social import ImageInteractionAction, ImageInteractionRequest
from core.services.character_service import CharacterService
from core.services.interaction_service import InteractionService
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

COMMENTS_LIMIT = 50
COMMENT_SELECT = "id, user_id, text, created_at, profiles (full_name, avatar_url)"


def image_identifier(character_id: str, image_index: int) -> str:
    return f"{character_id}-{image_index}"


def index_from_identifier(identifier: str) -> int:
    """
    Image index from the end of an identifier; 0 when it isn't a number.

    Example:
        index_from_identifier("3333-...-3333-2")  # 2
    """
    try:
        return int(identifier.rsplit("-", 1)[-1])
    except ValueError:
        return 0


class ImageInteractionService:
    """Service for image likes and comments."""

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def like_count(identifier: str) -> int:
        client = SupabaseClient.get_client()
        response = (
            client.table("image_likes")
            .select("id", count="exact")
            .eq("image_identifier", identifier)
            .execute()
        )
        return response.count or 0

    @staticmethod
    def like_status(
        character_id: str,
        image_index: int,
        user_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        """Like count, and whether the caller liked it (False when signed out)."""
        identifier = image_identifier(character_id, image_index)
        is_liked = False
        if user_id is not None:
            is_liked = SupabaseClient.fetch_one(
                "image_likes",
                columns="id",
                image_identifier=identifier,
                user_id=normalize_uuid(user_id),
            ) is not None
        return {"isLiked": is_liked, "likeCount": ImageInteractionService.like_count(identifier)}

    @staticmethod
    def list_comments(character_id: str, image_index: int) -> list[dict[str, Any]]:
        """Latest comments first, with the commenter's profile."""
        client = SupabaseClient.get_client()
        response = (
            client.table("image_comments")
            .select(COMMENT_SELECT)
            .eq("image_identifier", image_identifier(character_id, image_index))
            .order("created_at", desc=True)
            .limit(COMMENTS_LIMIT)
            .execute()
        )
        return response.data or []

    @staticmethod
    def get(
        character_id: str,
        image_index: int,
        kind: str | None,
        user_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        """
        Dispatch a read by kind.

        Raises:
            ValidationFailedError: kind is neither like nor comments
        """
        if kind == "like":
            return ImageInteractionService.like_status(character_id, image_index, user_id)
        if kind == "comments":
            return {"comments": ImageInteractionService.list_comments(character_id, image_index)}
        raise ValidationFailedError("Type parameter must be 'like' or 'comments'")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def act(user_id: UUID | str, request: ImageInteractionRequest) -> dict[str, Any]:
        """
        Like, unlike or comment on an image.

        Raises:
            ValidationFailedError: Unknown action, or a comment without text
            CharacterNotFoundError: Unknown character
        """
        try:
            action = ImageInteractionAction(request.action)
        except ValueError:
            raise ValidationFailedError("Invalid action. Must be 'like', 'unlike', or 'comment'")

        if not SupabaseClient.fetch_character(request.character_id, columns="id"):
            raise CharacterNotFoundError(request.character_id)

        if action == ImageInteractionAction.LIKE:
            return ImageInteractionService.like(user_id, request.character_id, request.image_index)
        if action == ImageInteractionAction.UNLIKE:
            return ImageInteractionService.unlike(user_id, request.character_id, request.image_index)
        return ImageInteractionService.comment(
            user_id, request.character_id, request.image_index, request.text
        )

    @staticmethod
    def like(user_id: UUID | str, character_id: str, image_index: int) -> dict[str, Any]:
        identifier = image_identifier(character_id, image_index)
        existing = SupabaseClient.fetch_one(
            "image_likes", columns="id", image_identifier=identifier, user_id=normalize_uuid(user_id)
        )
        if existing:
            return {
                "message": "Already liked",
                "isLiked": True,
                "likeCount": ImageInteractionService.like_count(identifier),
            }

        client = SupabaseClient.get_client()
        try:
            client.table("image_likes").insert({
                "image_identifier": identifier,
                "character_id": character_id,
                "user_id": normalize_uuid(user_id),
            }).execute()
        except Exception as e:
            # A concurrent like from the same user
            if SupabaseClient.is_unique_violation(e):
                return {
                    "message": "Already liked",
                    "isLiked": True,
                    "likeCount": ImageInteractionService.like_count(identifier),
                }
            logger.error(f"Failed to like image {identifier}: {e}")
            raise

        InteractionService.record(user_id, character_id, "post_liked", {"image_index": image_index})
        return {
            "success": True,
            "isLiked": True,
            "likeCount": ImageInteractionService.like_count(identifier) or 1,
        }

    @staticmethod
    def unlike(user_id: UUID | str, character_id: str, image_index: int) -> dict[str, Any]:
        identifier = image_identifier(character_id, image_index)
        client = SupabaseClient.get_client()
        try:
            (
                client.table("image_likes")
                .delete()
                .eq("image_identifier", identifier)
                .eq("user_id", normalize_uuid(user_id))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to unlike image {identifier}: {e}")
            raise

        return {
            "success": True,
            "isLiked": False,
            "likeCount": ImageInteractionService.like_count(identifier),
        }

    @staticmethod
    def comment(
        user_id: UUID | str,
        character_id: str,
        image_index: int,
        text: str | None,
    ) -> dict[str, Any]:
        if not text or not text.strip():
            raise ValidationFailedError("Comment text is required")

        client = SupabaseClient.get_client()
        try:
            comment = client.table("image_comments").insert({
                "image_identifier": image_identifier(character_id, image_index),
                "character_id": character_id,
                "user_id": normalize_uuid(user_id),
                "text": text.strip(),
            }).execute().data[0]
        except Exception as e:
            logger.error(f"Failed to comment on {character_id}-{image_index}: {e}")
            raise

        InteractionService.record(user_id, character_id, "post_commented", {
            "image_index": image_index,
            "comment_id": comment.get("id"),
        })
        return {"success": True, "comment": comment}

    # -------------------------------------------------------------------------
    # Liked Images
    # -------------------------------------------------------------------------

    @staticmethod
    def liked_images(user_id: UUID | str, limit: int = 50, offset: int = 0) -> dict[str, Any]:
        """
        The caller's liked images, newest like first.

        Likes whose character is gone, or whose image no longer resolves to
        a URL, are dropped from the page.
        """
        client = SupabaseClient.get_client()
        response = (
            client.table("image_likes")
            .select(
                "id, image_identifier, character_id, created_at, "
                "characters (id, name, thumbnail, description, category, is_public)",
                count="exact",
            )
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        likes = response.data or []
        total = response.count or 0

        galleries = CharacterService.posted_images(
            list({like["character_id"] for like in likes if like.get("character_id")})
        )

        liked = []
        for like in likes:
            character = like.get("characters")
            if isinstance(character, list):
                character = character[0] if character else None
            if not character:
                continue

            index = index_from_identifier(like["image_identifier"])
            gallery = galleries.get(like["character_id"], [])
            image_url = gallery[index] if index < len(gallery) else character.get("thumbnail")
            if not image_url:
                continue

            liked.append({
                "id": like["id"],
                "imageIdentifier": like["image_identifier"],
                "characterId": like["character_id"],
                "imageIndex": index,
                "imageUrl": image_url,
                "likedAt": like.get("created_at"),
                "character": {
                    "id": character.get("id"),
                    "name": character.get("name"),
                    "thumbnail": character.get("thumbnail"),
                    "description": character.get("description"),
                    "category": character.get("category"),
                    "isPublic": bool(character.get("is_public")),
                },
            })

        return {"likedImages": liked, "total": total, "hasMore": offset + limit < total}
