# =============================================================================
# core/models/social.py - Follows, Interactions, Social Posts & Content
# =============================================================================
# Request bodies for the audience-facing features: following characters,
# interaction tracking, image likes and comments, Late social publishing,
# caption generation and scheduled content generation.
# =============================================================================

from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, Field, field_validator

from core.constants import CONTENT_TYPE_CONTEXT, INTERACTION_TYPES

from .base import CamelModel


# =============================================================================
# Follows / Interactions
# =============================================================================

class FollowRequest(CamelModel):
    character_id: str
    notifications_enabled: bool = True


class FollowNotificationsUpdate(CamelModel):
    character_id: str
    notifications_enabled: bool


class InteractionCreate(CamelModel):
    """
    Track a user interaction.

    Example:
        {"characterId": "550e...", "interactionType": "profile_viewed"}
    """
    character_id: str
    interaction_type: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    duration_seconds: int | None = Field(default=None, ge=0)

    @field_validator("interaction_type")
    @classmethod
    def known_type(cls, value: str) -> str:
        if value not in INTERACTION_TYPES:
            raise ValueError(f"unknown interaction type: {value}")
        return value


# =============================================================================
# Social Media (Late)
# =============================================================================

class SocialListType(str, Enum):
    PROFILES = "profiles"
    ACCOUNTS = "accounts"
    QUEUE = "queue"
    NEXT_SLOT = "next-slot"
    POSTS = "posts"


class PlatformTarget(CamelModel):
    platform: str
    account_id: str


class SocialPostCreate(CamelModel):
    """
    Publish or schedule an image post.

    Scheduling precedence: publish_now, then use_queue with profile_id,
    then scheduled_for. With none of them Late creates a draft.
    """
    character_id: str | None = None
    character_image_id: str | None = None
    image_url: str
    content: str = ""
    hashtags: list[str] = Field(default_factory=list)
    platforms: list[PlatformTarget] = Field(..., min_length=1)
    publish_now: bool = False
    use_queue: bool = False
    profile_id: str | None = None
    queue_id: str | None = None
    scheduled_for: str | None = None
    timezone: str = "UTC"


class SocialConfigUpdate(CamelModel):
    late_api_key: str | None = None
    late_profile_id: str | None = None
    default_template_id: str | None = None


class CaptionType(str, Enum):
    CONTENT = "content"
    HASHTAGS = "hashtags"


class CaptionRequest(CamelModel):
    """
    Ask the model for post text or hashtags for a character image.

    Example:
        {"type": "hashtags", "characterName": "Luna", "imagePrompt": "rooftop latte"}
    """
    caption_type: str = Field(default="", alias="type")
    character_name: str = ""
    image_prompt: str | None = None
    platforms: list[str] = Field(default_factory=list)


# =============================================================================
# Image Interactions
# =============================================================================

class ImageInteractionAction(str, Enum):
    LIKE = "like"
    UNLIKE = "unlike"
    COMMENT = "comment"


class ImageInteractionRequest(CamelModel):
    """
    Like, unlike or comment on one image of a character's gallery.

    action is checked by the service so an unknown value is a 400.
    """
    character_id: str
    image_index: int = Field(..., ge=0)
    action: str
    text: str | None = Field(default=None, max_length=2000)


# =============================================================================
# Content Generation
# =============================================================================

class ScheduleFrequency(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class ContentStatus(str, Enum):
    GENERATED = "generated"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    FAILED = "failed"


class StylePreferences(CamelModel):
    mood: list[str] = Field(default_factory=list)
    settings: list[str] = Field(default_factory=list)
    lighting: list[str] = Field(default_factory=list)
    color_scheme: list[str] = Field(default_factory=list)
    composition: list[str] = Field(default_factory=list)
    additional_instructions: str | None = None


def _check_content_type(value: str) -> str:
    if value not in CONTENT_TYPE_CONTEXT:
        raise ValueError(f"unknown content type: {value}")
    return value


ContentType = Annotated[str, AfterValidator(_check_content_type)]


class ContentPromptRequest(CamelModel):
    character_id: str
    content_type: ContentType = "lifestyle"
    custom_themes: list[str] = Field(default_factory=list)
    style_preferences: StylePreferences | None = None
    count: int = Field(default=3, ge=1, le=10)


class ScheduleCreate(CamelModel):
    character_id: str
    content_type: ContentType = "lifestyle"
    frequency_type: ScheduleFrequency = ScheduleFrequency.DAILY
    frequency_value: int = Field(default=1, ge=1, le=30)
    custom_themes: list[str] = Field(default_factory=list)
    style_preferences: StylePreferences | None = None
    auto_post: bool = False
    target_platforms: list[str] = Field(default_factory=list)
    timezone: str = "UTC"


class ScheduleUpdate(CamelModel):
    is_active: bool | None = None
    content_type: ContentType | None = None
    frequency_type: ScheduleFrequency | None = None
    frequency_value: int | None = Field(default=None, ge=1, le=30)
    custom_themes: list[str] | None = None
    style_preferences: StylePreferences | None = None
    auto_post: bool | None = None
    target_platforms: list[str] | None = None
