# =============================================================================
# core/models/character.py - Character & Image Schemas
# =============================================================================
# A character is a user-owned AI persona with a personality, a physical
# description (used to build image prompts) and a gallery of generated
# images.
#
# personality and physical_attributes are stored as JSONB with the web
# client's camelCase keys (e.g. {"hairColor": "black", "eyeColor": "brown"}),
# so they are kept as plain dicts here.
# =============================================================================

import re
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from core.constants import CHARACTER_PROFILE_TYPES, DEFAULT_GENERATION_TIME_SLOTS, DEFAULT_PROFILE_TYPES

from .base import CamelModel


class GalleryStatus(str, Enum):
    """
    Lifecycle of a generated image.

    - unposted: Freshly generated, only visible to the owner
    - posted: Visible in the public gallery
    - archived: Hidden but kept
    """
    UNPOSTED = "unposted"
    POSTED = "posted"
    ARCHIVED = "archived"


class CharacterScope(str, Enum):
    """Which characters GET /characters returns."""
    MINE = "mine"
    PUBLIC = "public"
    ALL = "all"


class CharacterCreate(CamelModel):
    """
    Schema for creating a character.

    Example:
        {
            "name": "Luna",
            "description": "A stargazing barista from Lisbon",
            "category": "Lifestyle",
            "personality": {"traits": ["warm", "witty"], "speakingStyle": "playful"},
            "physicalAttributes": {"gender": "woman", "hairColor": "black"}
        }
    """

    name: str = Field(..., max_length=100, description="Display name")
    description: str = Field(..., max_length=2000, description="Short bio")
    category: str = Field(default="Lifestyle", max_length=50)
    thumbnail: str | None = None
    personality: dict[str, Any] = Field(default_factory=dict)
    physical_attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class CharacterUpdate(CamelModel):
    """Partial update; only provided fields are written."""

    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    category: str | None = None
    thumbnail: str | None = None
    is_public: bool | None = None
    personality: dict[str, Any] | None = None
    physical_attributes: dict[str, Any] | None = None
    tags: list[str] | None = None
    main_face_image: str | None = None


class ImageGenerateRequest(CamelModel):
    """
    Schema for generating a character image.

    Size comes from aspect_ratio when given, else width/height, else 1024x1024.
    """

    character_id: str
    scene_prompt: str = Field(default="", max_length=2000)
    aspect_ratio: str | None = Field(default=None, description="square, landscape or portrait")
    width: int | None = Field(default=None, ge=256, le=2048)
    height: int | None = Field(default=None, ge=256, le=2048)
    steps: int = Field(default=8, ge=1, le=50)
    guidance_scale: float = Field(default=1, ge=0, le=20)
    seed: int = -1
    image_format: str = Field(default="webp", pattern="^(webp|png|jpeg)$")
    quality: int = Field(default=90, ge=1, le=100)
    custom_base_face: str | None = Field(default=None, description="Data URL or URL of a face to swap in")
    skip_face_swap: bool = False


class ImageStatusUpdate(CamelModel):
    gallery_status: GalleryStatus


class FaceSwapRequest(CamelModel):
    """Swap `source_image` (the face) onto `target_image` (the scene)."""

    source_image: str
    target_image: str
    additional_prompt: str = ""
    image_format: str = Field(default="webp", pattern="^(webp|png|jpeg)$")
    quality: int = Field(default=95, ge=1, le=100)
    seed: int | None = None


# =============================================================================
# Character Automation
# =============================================================================

_TIME_SLOT = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class CharacterGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non-binary"


def _check_profile_types(values: list[str] | None) -> list[str] | None:
    if values is None:
        return values
    unknown = [v for v in values if v not in CHARACTER_PROFILE_TYPES]
    if unknown:
        raise ValueError(f"unknown profile types: {', '.join(unknown)}")
    if not values:
        raise ValueError("at least one profile type is required")
    return values


def _check_time_slots(values: list[str] | None) -> list[str] | None:
    if values is None:
        return values
    bad = [v for v in values if not _TIME_SLOT.match(v)]
    if bad:
        raise ValueError(f"time slots must be HH:MM, got: {', '.join(bad)}")
    return values


class GenderDistribution(CamelModel):
    """Percentages used to pick each generated character's gender."""
    male: int = Field(default=40, ge=0, le=100)
    female: int = Field(default=50, ge=0, le=100)
    non_binary: int = Field(default=10, ge=0, le=100)

    @property
    def total(self) -> int:
        return self.male + self.female + self.non_binary


class AutomationSettingsRequest(CamelModel):
    """
    Create or replace a creator's automation settings.

    Example:
        {"isActive": true, "charactersPerDay": 3, "generationTimeSlots": ["10:00"]}
    """
    is_active: bool = False
    characters_per_day: int = Field(default=5, ge=1, le=50)
    images_per_character: int = Field(default=5, ge=1, le=20)
    profile_types: list[str] = Field(default_factory=lambda: list(DEFAULT_PROFILE_TYPES))
    gender_distribution: GenderDistribution = Field(default_factory=GenderDistribution)
    timezone: str = "UTC"
    generation_time_slots: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GENERATION_TIME_SLOTS), min_length=1
    )
    make_public_by_default: bool = False

    @field_validator("profile_types")
    @classmethod
    def known_profile_types(cls, values: list[str] | None) -> list[str] | None:
        return _check_profile_types(values)

    @field_validator("generation_time_slots")
    @classmethod
    def valid_time_slots(cls, values: list[str] | None) -> list[str] | None:
        return _check_time_slots(values)


class AutomationSettingsUpdate(CamelModel):
    """
    Partial settings update, or {"action": "toggle"} to flip is_active.
    """
    action: str | None = Field(default=None, pattern="^toggle$")
    is_active: bool | None = None
    characters_per_day: int | None = Field(default=None, ge=1, le=50)
    images_per_character: int | None = Field(default=None, ge=1, le=20)
    profile_types: list[str] | None = None
    gender_distribution: GenderDistribution | None = None
    timezone: str | None = None
    generation_time_slots: list[str] | None = Field(default=None, min_length=1)
    make_public_by_default: bool | None = None

    @field_validator("profile_types")
    @classmethod
    def known_profile_types(cls, values: list[str] | None) -> list[str] | None:
        return _check_profile_types(values)

    @field_validator("generation_time_slots")
    @classmethod
    def valid_time_slots(cls, values: list[str] | None) -> list[str] | None:
        return _check_time_slots(values)


class CharacterGenerateRequest(CamelModel):
    """Generate one character (profile, then images) for the caller."""
    profile_type: str
    gender: CharacterGender
    images_per_character: int = Field(default=5, ge=0, le=20)
    settings_id: str | None = None
    queue_item_id: str | None = None

    @field_validator("profile_type")
    @classmethod
    def known_profile_type(cls, value: str) -> str:
        if value not in CHARACTER_PROFILE_TYPES:
            raise ValueError(f"unknown profile type: {value}")
        return value


class QueueProcessRequest(CamelModel):
    limit: int = Field(default=5, ge=1, le=50)


class ReleaseRequest(CamelModel):
    character_id: str
    is_public: bool


class BulkReleaseRequest(CamelModel):
    character_ids: list[str] = Field(..., min_length=1)
    is_public: bool
