# =============================================================================
# core/services/social_media_service.py - Late Social Publishing
# =============================================================================
# Publishes character images to connected social accounts through Late, and
# drafts post text and hashtags for them with OpenAI.
#
# API key resolution:
# 1. The user's user_social_config.late_api_key
# 2. The shared LATE_API_KEY setting
# 3. Otherwise the request fails with 400
# =============================================================================

import logging
import re
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import ExternalServiceError, ValidationFailedError
from lib.images import is_data_url, parse_data_url
from lib.late import LateAPIError, LateClient, fetch_remote_bytes
from lib.llm import LLMError, chat_completion
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now, utc_now_iso
from core.models.social import (
    CaptionRequest,
    CaptionType,
    SocialConfigUpdate,
    SocialListType,
    SocialPostCreate,
)

logger = logging.getLogger(__name__)

POST_MEDIA_TYPE = "image/webp"

MAX_HASHTAGS = 10

CONTENT_SYSTEM_PROMPT = """You are an expert in creating content for social media.
You create engaging, catchy texts adapted to social platforms.
The text should be short (2-3 sentences max), impactful and encourage engagement.
Do NOT include hashtags in your response (they will be added separately).
Use emojis moderately to make the text more lively.
Respond only with the publication text, without introduction or explanation."""

HASHTAGS_SYSTEM_PROMPT = """You are a social media marketing expert.
You generate relevant and popular hashtags to maximize post visibility.
Generate between 5 and 10 hashtags.
Respond ONLY with hashtags separated by spaces, without the # symbol.
For example: "art digital character illustration creative"
Do not put # in front of the words, just the words separated by spaces."""


def format_post_content(content: str, hashtags: list[str]) -> str:
    """
    Append hashtags to the post text, adding missing '#' prefixes.

    Example:
        format_post_content("Sunday", ["brunch", "#la"])  # "Sunday\\n\\n#brunch #la"
    """
    tags = [tag if tag.startswith("#") else f"#{tag}" for tag in hashtags if tag.strip()]
    if not tags:
        return content
    return f"{content}\n\n{' '.join(tags)}"


def parse_hashtags(text: str) -> list[str]:
    """
    Model reply -> at most 10 bare hashtags.

    Example:
        parse_hashtags("#coffee, lisbon  #morning")  # ["coffee", "lisbon", "morning"]
    """
    words = re.split(r"[\s,]+", text.replace("#", ""))
    return [word for word in words if word][:MAX_HASHTAGS]


def mask_key(api_key: str | None) -> str | None:
    if not api_key:
        return None
    return f"{'*' * 8}{api_key[-4:]}"


class SocialMediaService:
    """Service for Late-backed social media publishing."""

    @staticmethod
    def get_config(user_id: UUID | str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one("user_social_config", user_id=normalize_uuid(user_id))

    @staticmethod
    def get_client(user_id: UUID | str) -> LateClient:
        """
        Late client for the user's key or the shared key.

        Raises:
            ValidationFailedError: If no key is configured anywhere
        """
        config = SocialMediaService.get_config(user_id) or {}
        api_key = config.get("late_api_key") or settings.LATE_API_KEY
        if not api_key:
            raise ValidationFailedError(
                "Late API key not configured. Please add your API key in settings.",
                suggestion="Save a key via PUT /api/v1/social-media/config",
            )
        return LateClient(api_key)

    @staticmethod
    def list_remote(
        user_id: UUID | str,
        list_type: SocialListType,
        profile_id: str | None = None,
        queue_id: str | None = None,
        status: str | None = None,
        all_queues: bool = False,
    ) -> Any:
        """Proxy a read to Late."""
        if list_type in (SocialListType.QUEUE, SocialListType.NEXT_SLOT) and not profile_id:
            raise ValidationFailedError(f"Profile ID is required for {list_type.value}")

        client = SocialMediaService.get_client(user_id)
        try:
            if list_type == SocialListType.PROFILES:
                return client.list_profiles()
            if list_type == SocialListType.ACCOUNTS:
                return client.list_accounts(profile_id)
            if list_type == SocialListType.QUEUE:
                return client.queue_slots(profile_id, queue_id, all_queues)
            if list_type == SocialListType.NEXT_SLOT:
                return client.next_slot(profile_id, queue_id)
            return client.list_posts(profile_id, status)

        except LateAPIError as e:
            raise ExternalServiceError("Late", e.message)

    @staticmethod
    def _image_bytes(image_url: str) -> bytes:
        if is_data_url(image_url):
            content, _ = parse_data_url(image_url)
            return content
        return fetch_remote_bytes(image_url)

    @staticmethod
    def build_post_payload(request: SocialPostCreate, media_url: str) -> dict[str, Any]:
        """
        Late post body.

        Scheduling precedence: publish now, then the profile queue, then a
        fixed time. With none of them Late keeps the post as a draft.
        """
        payload: dict[str, Any] = {
            "content": format_post_content(request.content, request.hashtags),
            "mediaItems": [{"url": media_url, "type": "image"}],
            "platforms": [
                {"platform": target.platform, "accountId": target.account_id}
                for target in request.platforms
            ],
        }

        if request.publish_now:
            payload["publishNow"] = True
        elif request.use_queue and request.profile_id:
            payload["queuedFromProfile"] = request.profile_id
            if request.queue_id:
                payload["queueId"] = request.queue_id
        elif request.scheduled_for:
            payload["scheduledFor"] = request.scheduled_for
            payload["timezone"] = request.timezone

        return payload

    @staticmethod
    def create_post(user_id: UUID | str, request: SocialPostCreate) -> dict[str, Any]:
        """
        Upload the image to Late, create the post and keep a local record.

        Raises:
            ExternalServiceError: If any Late call fails
        """
        client = SocialMediaService.get_client(user_id)
        filename = f"character-{request.character_id or 'post'}-{int(utc_now().timestamp() * 1000)}.webp"

        try:
            presign = client.presign_media(filename, POST_MEDIA_TYPE)
            client.upload_media(
                presign["uploadUrl"],
                SocialMediaService._image_bytes(request.image_url),
                POST_MEDIA_TYPE,
            )
            result = client.create_post(
                SocialMediaService.build_post_payload(request, presign["publicUrl"])
            )

        except LateAPIError as e:
            logger.error(f"Late post creation failed: {e.message}")
            raise ExternalServiceError("Late", e.message)

        post = result.get("post") or {}
        local_post = None
        try:
            response = (
                SupabaseClient.get_client()
                .table("social_media_posts")
                .insert({
                    "user_id": normalize_uuid(user_id),
                    "character_id": request.character_id,
                    "character_image_id": request.character_image_id,
                    "image_url": request.image_url,
                    "content": request.content,
                    "hashtags": request.hashtags,
                    "platforms": [target.platform for target in request.platforms],
                    "late_post_id": post.get("_id"),
                    "scheduled_for": post.get("scheduledFor"),
                    "status": post.get("status"),
                })
                .execute()
            )
            local_post = response.data[0] if response.data else None
        except Exception as e:
            logger.warning(f"Failed to save post locally: {e}")

        logger.info(f"Created Late post {post.get('_id')} for user {user_id}")
        return {
            "success": True,
            "post": post,
            "localPost": local_post,
            "message": result.get("message"),
        }

    @staticmethod
    def update_config(user_id: UUID | str, request: SocialConfigUpdate) -> dict[str, Any]:
        """
        Save the user's Late settings; a new key is checked against Late first.

        Raises:
            ValidationFailedError: If the key is rejected
        """
        if request.late_api_key:
            try:
                LateClient(request.late_api_key).list_profiles()
            except LateAPIError:
                raise ValidationFailedError("Invalid Late API key")

        row = {
            "user_id": normalize_uuid(user_id),
            **request.model_dump(exclude_unset=True),
            "updated_at": utc_now_iso(),
        }

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("user_social_config")
                .upsert(row, on_conflict="user_id")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save social config for {user_id}: {e}")
            raise

        config = dict(response.data[0] if response.data else row)
        config["late_api_key"] = mask_key(config.get("late_api_key"))
        return {"success": True, "config": config}

    @staticmethod
    def list_local_posts(user_id: UUID | str, limit: int = 50) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        response = (
            client.table("social_media_posts")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    # -------------------------------------------------------------------------
    # Caption Generation
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_caption(request: CaptionRequest) -> dict[str, Any]:
        """
        Draft post text ({"content"}) or hashtags ({"hashtags"}) for an image.

        Raises:
            ValidationFailedError: Missing type or character name, or unknown type
            ExternalServiceError: If the completion fails
        """
        if not request.caption_type or not request.character_name:
            raise ValidationFailedError("Missing required fields")
        try:
            caption_type = CaptionType(request.caption_type)
        except ValueError:
            raise ValidationFailedError("Invalid type. Use 'content' or 'hashtags'")

        description = f"Image description: {request.image_prompt}" if request.image_prompt else ""

        if caption_type == CaptionType.CONTENT:
            platforms = ", ".join(request.platforms) or "social media"
            messages = [
                {"role": "system", "content": CONTENT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Generate a social media post text ({platforms}) to share an image "
                        f'of a character named "{request.character_name}".\n{description}\n\n'
                        "The text should be engaging and make people want to interact with the post."
                    ),
                },
            ]
            max_tokens, temperature = 200, 0.8
        else:
            messages = [
                {"role": "system", "content": HASHTAGS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        "Generate relevant hashtags for a social media post featuring an image "
                        f'of a character named "{request.character_name}".\n{description}\n\n'
                        "The hashtags should be a mix of popular tags and specific tags to maximize reach."
                    ),
                },
            ]
            max_tokens, temperature = 100, 0.7

        try:
            text = chat_completion(messages, temperature=temperature, max_tokens=max_tokens)
        except LLMError as e:
            raise ExternalServiceError("OpenAI", str(e))

        if caption_type == CaptionType.CONTENT:
            return {"content": text}
        return {"hashtags": parse_hashtags(text)}
