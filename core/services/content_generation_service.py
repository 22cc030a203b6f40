# =============================================================================
# core/services/content_generation_service.py - Scheduled Content Generation
# =============================================================================
# Creative prompt suggestions for a character and recurring schedules that
# turn them into images.
#
# A due schedule runs:
# 1. One prompt suggestion (avoiding the character's last 10 prompts)
# 2. Image generation through ImageService without a coin charge
# 3. A generated_content row (scheduled when auto_post, else generated)
# 4. next_scheduled_at = now + frequency
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import ExternalServiceError, ResourceNotFoundError
from core.constants import CONTENT_TYPE_CONTEXT, SCHEDULE_FREQUENCY_HOURS
from core.models.character import ImageGenerateRequest
from core.models.social import (
    ContentPromptRequest,
    ContentStatus,
    ScheduleCreate,
    ScheduleUpdate,
    StylePreferences,
)
from core.services.character_service import CharacterService
from core.services.image_service import ImageService
from lib.llm import LLMError, json_completion
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

SCHEDULES_TABLE = "content_generation_schedules"
PREVIOUS_PROMPT_LIMIT = 10

SYSTEM_PROMPT = """You are a creative content strategist for AI influencers on social media.
Your task is to generate unique, engaging image prompts that will help create consistent, high-quality content for an AI influencer.

The prompts should be:
1. Detailed enough for image generation (describe pose, setting, lighting, mood)
2. Consistent with the character's personality and appearance
3. Appropriate for social media (Instagram, TikTok, etc.)
4. Diverse and creative, avoiding repetitive ideas

For each prompt, also provide a caption in the character's voice, 5-10 hashtags,
the mood of the image and its setting.

Respond in JSON format."""

RESPONSE_FORMAT = """Respond with a JSON object:
{
  "prompts": [
    {
      "prompt": "detailed image generation prompt",
      "caption": "engaging social media caption in character's voice",
      "hashtags": ["hashtag1", "hashtag2"],
      "mood": "mood/vibe description",
      "setting": "setting/location description",
      "reasoning": "brief explanation of why this works for the character"
    }
  ]
}"""


def next_run_at(frequency_type: str, frequency_value: int, now=None) -> str:
    """
    ISO timestamp of the next run.

    Example:
        next_run_at("daily", 2)  # now + 48h
    """
    hours = SCHEDULE_FREQUENCY_HOURS.get(frequency_type, SCHEDULE_FREQUENCY_HOURS["daily"])
    return ((now or utc_now()) + timedelta(hours=hours * max(frequency_value, 1))).isoformat()


def build_character_context(character: dict[str, Any]) -> str:
    context = f"AI Influencer: {character.get('name') or 'Character'}\n"

    personality = character.get("personality") or {}
    if personality:
        p = personality.get
        context += (
            "\nPersonality:\n"
            f"- Traits: {', '.join(p('traits') or []) or 'Not specified'}\n"
            f"- Mood: {p('mood') or 'Varied'}\n"
            f"- Style: {p('speakingStyle') or 'Natural'}\n"
            f"- Interests: {', '.join(p('interests') or []) or 'Various'}\n"
            f"- Hobbies: {', '.join(p('hobbies') or []) or 'Various'}"
        )

    attributes = character.get("physical_attributes") or {}
    if attributes:
        a = attributes.get
        context += (
            "\n\nAppearance:\n"
            f"- {a('age', '')} {a('gender', '')}\n"
            f"- Ethnicity: {a('ethnicity', '')}\n"
            f"- Hair: {a('hairLength', '')} {a('hairColor', '')} {a('hairStyle', '')}\n"
            f"- Eyes: {a('eyeColor', '')}\n"
            f"- Body type: {a('bodyType', '')}\n"
            f"- Fashion style: {a('fashionStyle', '')}"
        )

    return context


def build_style_context(style: StylePreferences | dict[str, Any] | None) -> str:
    if not style:
        return ""
    if isinstance(style, dict):
        style = StylePreferences.model_validate(style)

    parts = []
    for label, values in (
        ("Mood", style.mood),
        ("Settings", style.settings),
        ("Lighting", style.lighting),
        ("Color scheme", style.color_scheme),
        ("Composition", style.composition),
    ):
        if values:
            parts.append(f"{label}: {', '.join(values)}")
    if style.additional_instructions:
        parts.append(f"Additional: {style.additional_instructions}")

    return "\n\nStyle preferences:\n" + "\n".join(parts) if parts else ""


def clean_suggestion(raw: Any) -> dict[str, Any] | None:
    """Normalize one model suggestion; None when it has no prompt."""
    if not isinstance(raw, dict) or not str(raw.get("prompt") or "").strip():
        return None
    hashtags = raw.get("hashtags")
    return {
        "prompt": str(raw["prompt"]).strip(),
        "caption": str(raw.get("caption") or ""),
        "hashtags": [str(tag) for tag in hashtags] if isinstance(hashtags, list) else [],
        "mood": str(raw.get("mood") or ""),
        "setting": str(raw.get("setting") or ""),
        "reasoning": str(raw.get("reasoning") or ""),
    }


class ContentGenerationService:
    """Service for prompt suggestions and scheduled content."""

    # -------------------------------------------------------------------------
    # Prompts
    # -------------------------------------------------------------------------

    @staticmethod
    def previous_prompts(character_id: str) -> list[str]:
        client = SupabaseClient.get_client()
        response = (
            client.table("generated_content")
            .select("original_prompt")
            .eq("character_id", character_id)
            .order("created_at", desc=True)
            .limit(PREVIOUS_PROMPT_LIMIT)
            .execute()
        )
        return [row["original_prompt"] for row in response.data or [] if row.get("original_prompt")]

    @staticmethod
    def suggest(
        character: dict[str, Any],
        content_type: str,
        custom_themes: list[str] | None = None,
        style_preferences: StylePreferences | dict[str, Any] | None = None,
        count: int = 3,
    ) -> list[dict[str, Any]]:
        """
        Ask the model for creative prompt suggestions.

        Raises:
            ExternalServiceError: If the completion fails
        """
        description = CONTENT_TYPE_CONTEXT.get(content_type, CONTENT_TYPE_CONTEXT["custom"])
        sections = [
            build_character_context(character) + build_style_context(style_preferences),
            f"Content type: {content_type}\nDescription: {description}",
        ]
        if custom_themes:
            sections.append(f"Custom themes to incorporate: {', '.join(custom_themes)}")

        previous = ContentGenerationService.previous_prompts(character["id"])
        if previous:
            sections.append(
                "Previously used prompts (AVOID similar ideas):\n"
                + "\n".join(f"- {p}" for p in previous)
            )

        sections.append(
            f"Generate {count} unique, creative image prompts for this AI influencer. "
            "Each prompt should create a visually stunning, engaging social media post.\n\n"
            + RESPONSE_FORMAT
        )

        try:
            result = json_completion(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": "\n\n".join(sections)},
                ],
                model=settings.OPENAI_CONTENT_MODEL,
                temperature=0.9,
                max_tokens=2000,
            )
        except LLMError as e:
            raise ExternalServiceError("OpenAI", str(e))

        raw = result.get("prompts")
        suggestions = [clean_suggestion(item) for item in raw] if isinstance(raw, list) else []
        return [s for s in suggestions if s][:count]

    @staticmethod
    def generate_prompts(user_id: UUID | str, request: ContentPromptRequest) -> dict[str, Any]:
        character = CharacterService.get_owned_character(request.character_id, user_id)
        prompts = ContentGenerationService.suggest(
            character,
            request.content_type,
            request.custom_themes,
            request.style_preferences,
            request.count,
        )
        return {"success": True, "prompts": prompts}

    # -------------------------------------------------------------------------
    # Schedules
    # -------------------------------------------------------------------------

    @staticmethod
    def list_schedules(
        user_id: UUID | str,
        character_id: str | None = None,
        active_only: bool = False,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = client.table(SCHEDULES_TABLE).select("*").eq("user_id", normalize_uuid(user_id))
        if character_id:
            query = query.eq("character_id", character_id)
        if active_only:
            query = query.eq("is_active", True)
        return query.order("created_at", desc=True).execute().data or []

    @staticmethod
    def get_schedule(schedule_id: str, user_id: UUID | str) -> dict[str, Any]:
        schedule = SupabaseClient.fetch_one(
            SCHEDULES_TABLE, id=schedule_id, user_id=normalize_uuid(user_id)
        )
        if not schedule:
            raise ResourceNotFoundError("Schedule", schedule_id)
        return schedule

    @staticmethod
    def create_schedule(user_id: UUID | str, request: ScheduleCreate) -> dict[str, Any]:
        CharacterService.get_owned_character(request.character_id, user_id)

        row = {
            **request.model_dump(mode="json"),
            "user_id": normalize_uuid(user_id),
            "is_active": True,
            "total_posts_generated": 0,
            "next_scheduled_at": next_run_at(request.frequency_type.value, request.frequency_value),
        }

        client = SupabaseClient.get_client()
        try:
            schedule = client.table(SCHEDULES_TABLE).insert(row).execute().data[0]
        except Exception as e:
            logger.error(f"Failed to create schedule for {request.character_id}: {e}")
            raise

        logger.info(f"Created content schedule {schedule.get('id')} for {request.character_id}")
        return schedule

    @staticmethod
    def update_schedule(schedule_id: str, user_id: UUID | str, request: ScheduleUpdate) -> dict[str, Any]:
        existing = ContentGenerationService.get_schedule(schedule_id, user_id)
        updates = request.model_dump(mode="json", exclude_unset=True)

        if "frequency_type" in updates or "frequency_value" in updates:
            updates["next_scheduled_at"] = next_run_at(
                updates.get("frequency_type") or existing["frequency_type"],
                updates.get("frequency_value") or existing["frequency_value"],
            )
        updates["updated_at"] = utc_now_iso()

        client = SupabaseClient.get_client()
        response = client.table(SCHEDULES_TABLE).update(updates).eq("id", schedule_id).execute()
        return response.data[0] if response.data else {**existing, **updates}

    @staticmethod
    def delete_schedule(schedule_id: str, user_id: UUID | str) -> None:
        ContentGenerationService.get_schedule(schedule_id, user_id)
        SupabaseClient.get_client().table(SCHEDULES_TABLE).delete().eq("id", schedule_id).execute()
        logger.info(f"Deleted content schedule {schedule_id}")

    @staticmethod
    def list_content(
        user_id: UUID | str,
        character_id: str | None = None,
        status: ContentStatus | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = client.table("generated_content").select("*").eq("user_id", normalize_uuid(user_id))
        if character_id:
            query = query.eq("character_id", character_id)
        if status:
            query = query.eq("status", status.value)
        return query.order("created_at", desc=True).limit(limit).execute().data or []

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    @staticmethod
    def run_schedule(schedule: dict[str, Any]) -> dict[str, Any]:
        """
        Generate one piece of content for a schedule and move it forward.

        Returns:
            The generated_content row
        """
        character = CharacterService.get_owned_character(schedule["character_id"], schedule["user_id"])
        suggestions = ContentGenerationService.suggest(
            character,
            schedule.get("content_type") or "lifestyle",
            schedule.get("custom_themes") or [],
            schedule.get("style_preferences"),
            count=1,
        )
        if not suggestions:
            raise ExternalServiceError("OpenAI", "No prompt suggestion generated")
        suggestion = suggestions[0]

        result = ImageService.generate(
            schedule["user_id"],
            ImageGenerateRequest(character_id=character["id"], scene_prompt=suggestion["prompt"][:2000]),
            charge_coins=False,
        )
        image = result["image"]

        client = SupabaseClient.get_client()
        content = (
            client.table("generated_content")
            .insert({
                "schedule_id": schedule["id"],
                "user_id": schedule["user_id"],
                "character_id": schedule["character_id"],
                "character_image_id": image.get("id"),
                "original_prompt": suggestion["prompt"],
                "enhanced_prompt": result.get("prompt"),
                "image_url": image.get("imageUrl"),
                "caption": suggestion["caption"],
                "hashtags": suggestion["hashtags"],
                "ai_suggestions": {
                    "mood": suggestion["mood"],
                    "setting": suggestion["setting"],
                    "reasoning": suggestion["reasoning"],
                },
                "content_type": schedule.get("content_type"),
                "status": (
                    ContentStatus.SCHEDULED if schedule.get("auto_post") else ContentStatus.GENERATED
                ).value,
            })
            .execute()
        ).data[0]

        now = utc_now()
        (
            client.table(SCHEDULES_TABLE)
            .update({
                "last_executed_at": now.isoformat(),
                "next_scheduled_at": next_run_at(
                    schedule.get("frequency_type") or "daily",
                    int(schedule.get("frequency_value") or 1),
                    now,
                ),
                "total_posts_generated": int(schedule.get("total_posts_generated") or 0) + 1,
            })
            .eq("id", schedule["id"])
            .execute()
        )
        return content

    @staticmethod
    def process_due_schedules() -> dict[str, Any]:
        """
        Run every active schedule whose next run time has passed.

        One failing schedule doesn't stop the others.
        """
        client = SupabaseClient.get_client()
        due = (
            client.table(SCHEDULES_TABLE)
            .select("*, characters (id, name)")
            .eq("is_active", True)
            .lte("next_scheduled_at", utc_now_iso())
            .execute()
        ).data or []

        if not due:
            return {"message": "No schedules due for execution", "processed": 0, "success": 0, "failed": 0, "results": []}

        logger.info(f"Found {len(due)} content schedules due for execution")
        results = []
        for schedule in due:
            character_name = (schedule.get("characters") or {}).get("name") or "Unknown"
            try:
                content = ContentGenerationService.run_schedule(schedule)
                results.append({
                    "scheduleId": schedule["id"],
                    "characterName": character_name,
                    "success": True,
                    "contentId": content.get("id"),
                })
            except Exception as e:
                logger.error(f"Error processing schedule {schedule['id']}: {e}")
                results.append({
                    "scheduleId": schedule["id"],
                    "characterName": character_name,
                    "success": False,
                    "error": str(e),
                })

        success = sum(1 for r in results if r["success"])
        failed = len(results) - success
        return {
            "message": f"Processed {len(results)} schedules: {success} success, {failed} failed",
            "processed": len(results),
            "success": success,
            "failed": failed,
            "results": results,
        }
