# =============================================================================
# core/services/character_automation_service.py - Character Automation
# =============================================================================
# Creators can have new characters generated for them on a daily schedule.
#
# Flow:
# 1. Settings (one row per creator) say how many characters per day, which
#    profile types, the gender mix and the UTC time slots to run at
# 2. The cron pass turns each due settings row into characters_per_day
#    pending character_generation_queue items and moves next_scheduled_at
#    to the next slot
# 3. The queue pass generates each pending item: an OpenAI profile, a
#    private character row, then images_per_character images through
#    ImageService without a coin charge
# 4. Generated characters stay private until released, unless the
#    settings make them public by default
# =============================================================================

import logging
import random
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import ExternalServiceError, ResourceNotFoundError, ValidationFailedError
from core.constants import (
    AUTOMATION_DEFAULTS,
    DEFAULT_GENDER_DISTRIBUTION,
    DEFAULT_GENERATION_TIME_SLOTS,
    DEFAULT_PROFILE_TYPES,
)
from core.models.character import (
    AutomationSettingsRequest,
    AutomationSettingsUpdate,
    BulkReleaseRequest,
    CharacterGenerateRequest,
    ImageGenerateRequest,
    ReleaseRequest,
)
from core.services.character_service import CharacterService
from core.services.image_service import ImageService
from lib.llm import LLMError, json_completion
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "character_auto_generation_settings"
QUEUE_TABLE = "character_generation_queue"
GENERATED_TABLE = "auto_generated_characters"

RECENT_CHARACTERS_LIMIT = 20
GENERATED_IMAGE_SIZE = 1024

PROFILE_TYPE_DESCRIPTIONS: dict[str, dict[str, Any]] = {
    "influencer": {
        "description": "Social media influencer with a curated lifestyle",
        "occupations": ["Content Creator", "Social Media Influencer", "Brand Ambassador", "Lifestyle Blogger"],
        "interests": ["fashion", "beauty", "travel", "photography", "social media", "networking"],
        "traits": ["charismatic", "trendy", "outgoing", "creative", "ambitious"],
        "fashion_styles": ["trendy", "glamorous", "casual chic", "streetwear"],
    },
    "gamer": {
        "description": "Professional or enthusiast gamer",
        "occupations": ["Esports Pro", "Streamer", "Game Developer", "Gaming Content Creator"],
        "interests": ["video games", "technology", "anime", "streaming", "competitive gaming"],
        "traits": ["competitive", "focused", "tech-savvy", "witty", "dedicated"],
        "fashion_styles": ["casual", "streetwear", "gamer aesthetic", "comfortable"],
    },
    "yoga_instructor": {
        "description": "Wellness and mindfulness practitioner",
        "occupations": ["Yoga Instructor", "Wellness Coach", "Meditation Guide", "Holistic Therapist"],
        "interests": ["yoga", "meditation", "wellness", "nature", "healthy eating", "mindfulness"],
        "traits": ["calm", "peaceful", "nurturing", "spiritual", "patient"],
        "fashion_styles": ["athleisure", "bohemian", "natural", "comfortable"],
    },
    "tech": {
        "description": "Technology enthusiast or professional",
        "occupations": ["Software Engineer", "Tech Entrepreneur", "AI Researcher", "Product Manager"],
        "interests": ["technology", "AI", "startups", "coding", "innovation", "gadgets"],
        "traits": ["analytical", "innovative", "curious", "logical", "ambitious"],
        "fashion_styles": ["smart casual", "minimalist", "tech-forward", "professional"],
    },
    "billionaire": {
        "description": "Wealthy entrepreneur or business magnate",
        "occupations": ["CEO", "Investor", "Entrepreneur", "Business Mogul", "Venture Capitalist"],
        "interests": ["business", "investing", "luxury", "travel", "philanthropy", "art collecting"],
        "traits": ["confident", "decisive", "ambitious", "sophisticated", "strategic"],
        "fashion_styles": ["luxury", "elegant", "designer", "classic"],
    },
    "philosopher": {
        "description": "Deep thinker and intellectual",
        "occupations": ["Professor", "Author", "Philosopher", "Thought Leader", "Academic"],
        "interests": ["philosophy", "reading", "writing", "debate", "history", "ethics"],
        "traits": ["thoughtful", "intellectual", "curious", "wise", "articulate"],
        "fashion_styles": ["classic", "academic", "sophisticated", "minimalist"],
    },
    "fitness": {
        "description": "Fitness enthusiast or professional",
        "occupations": ["Personal Trainer", "Fitness Coach", "Athlete", "Gym Owner"],
        "interests": ["fitness", "nutrition", "sports", "health", "outdoor activities"],
        "traits": ["disciplined", "energetic", "motivating", "determined", "positive"],
        "fashion_styles": ["athletic", "sporty", "activewear", "casual"],
    },
    "artist": {
        "description": "Creative artist or designer",
        "occupations": ["Artist", "Graphic Designer", "Photographer", "Illustrator", "Creative Director"],
        "interests": ["art", "design", "creativity", "museums", "culture", "expression"],
        "traits": ["creative", "expressive", "unique", "passionate", "intuitive"],
        "fashion_styles": ["artistic", "eclectic", "avant-garde", "expressive"],
    },
    "musician": {
        "description": "Music professional or enthusiast",
        "occupations": ["Singer", "Musician", "Producer", "DJ", "Composer"],
        "interests": ["music", "concerts", "instruments", "songwriting", "performance"],
        "traits": ["passionate", "creative", "emotional", "talented", "expressive"],
        "fashion_styles": ["edgy", "rockstar", "artistic", "unique"],
    },
    "chef": {
        "description": "Culinary professional or food enthusiast",
        "occupations": ["Chef", "Restaurant Owner", "Food Blogger", "Culinary Instructor"],
        "interests": ["cooking", "food", "restaurants", "travel", "culture", "wine"],
        "traits": ["creative", "passionate", "detail-oriented", "adventurous", "nurturing"],
        "fashion_styles": ["chef attire", "casual elegant", "professional", "classic"],
    },
    "entrepreneur": {
        "description": "Business founder or startup leader",
        "occupations": ["Founder", "CEO", "Startup Advisor", "Business Coach"],
        "interests": ["business", "innovation", "networking", "leadership", "growth"],
        "traits": ["ambitious", "resilient", "innovative", "driven", "visionary"],
        "fashion_styles": ["professional", "smart casual", "modern", "polished"],
    },
    "model": {
        "description": "Fashion or commercial model",
        "occupations": ["Fashion Model", "Commercial Model", "Brand Ambassador", "Influencer"],
        "interests": ["fashion", "photography", "travel", "fitness", "beauty"],
        "traits": ["confident", "photogenic", "charismatic", "professional", "stylish"],
        "fashion_styles": ["high fashion", "trendy", "elegant", "versatile"],
    },
    "scientist": {
        "description": "Research scientist or academic",
        "occupations": ["Researcher", "Scientist", "Professor", "Lab Director"],
        "interests": ["science", "research", "discovery", "innovation", "education"],
        "traits": ["analytical", "curious", "methodical", "intelligent", "dedicated"],
        "fashion_styles": ["professional", "smart casual", "practical", "classic"],
    },
    "traveler": {
        "description": "Travel content creator or adventurer",
        "occupations": ["Travel Blogger", "Photographer", "Adventure Guide", "Digital Nomad"],
        "interests": ["travel", "adventure", "photography", "cultures", "nature"],
        "traits": ["adventurous", "curious", "open-minded", "spontaneous", "storyteller"],
        "fashion_styles": ["travel-ready", "casual", "practical", "bohemian"],
    },
    "wellness": {
        "description": "Wellness and self-care advocate",
        "occupations": ["Life Coach", "Wellness Influencer", "Therapist", "Spa Owner"],
        "interests": ["wellness", "self-care", "mental health", "nutrition", "relaxation"],
        "traits": ["caring", "empathetic", "balanced", "positive", "supportive"],
        "fashion_styles": ["comfortable", "natural", "soft", "elegant casual"],
    },
}

SCENE_TEMPLATES: dict[str, list[str]] = {
    "influencer": [
        "taking a mirror selfie in a trendy cafe",
        "posing in front of colorful street art mural",
        "sitting at a rooftop bar with city skyline view",
        "casual pose in a cozy home setting with plants",
        "outdoor golden hour photoshoot in urban setting",
        "walking down a fashion district street",
        "sitting at a beach club with ocean view",
    ],
    "gamer": [
        "sitting at a high-end gaming setup with RGB lighting",
        "wearing headphones with gaming gear visible",
        "casual pose with gaming controller",
        "at a gaming convention or esports event",
        "relaxed pose in a modern gaming room",
        "streaming setup with microphone and webcam visible",
    ],
    "yoga_instructor": [
        "peaceful meditation pose in natural setting",
        "standing in a serene yoga studio",
        "outdoor yoga pose at sunrise or sunset",
        "relaxed pose in a wellness retreat setting",
        "teaching position in a bright studio",
        "sitting peacefully in a zen garden",
    ],
    "tech": [
        "in a modern tech office with computers",
        "casual pose at a startup workspace",
        "speaking at a tech conference podium",
        "working on a laptop in a minimalist setting",
        "standing in a server room or data center",
        "brainstorming at a whiteboard",
    ],
    "billionaire": [
        "in a luxury penthouse with city views",
        "sitting in a private jet cabin",
        "walking through a high-end gallery",
        "at a luxury yacht deck",
        "in a designer office with art pieces",
        "at an exclusive gala event",
    ],
    "philosopher": [
        "in a classic library surrounded by books",
        "thoughtful pose at a wooden desk",
        "walking through a historic university campus",
        "in a cozy study with fireplace",
        "giving a lecture at a university",
        "contemplative pose in a garden",
    ],
    "fitness": [
        "at a modern gym with equipment",
        "outdoor running or jogging scene",
        "stretching before workout",
        "confident pose showing athletic physique",
        "at a sports facility",
        "post-workout with water bottle",
    ],
    "artist": [
        "in an art studio with canvases",
        "holding paintbrushes with colorful background",
        "at an art gallery opening",
        "creative workspace with art supplies",
        "standing in front of their artwork",
        "working on a creative project",
    ],
    "musician": [
        "on stage with musical instruments",
        "in a recording studio",
        "casual pose with guitar or instrument",
        "backstage at a concert venue",
        "in a music practice room",
        "performing at an intimate venue",
    ],
    "chef": [
        "in a professional kitchen",
        "preparing food with beautiful plating",
        "at a restaurant with elegant ambiance",
        "at a farmer's market with fresh ingredients",
        "teaching a cooking class",
        "casual pose in a home kitchen",
    ],
    "entrepreneur": [
        "in a modern startup office",
        "speaking at a business conference",
        "casual meeting in a co-working space",
        "standing confidently in front of company logo",
        "working late on laptop with city views",
        "networking at a business event",
    ],
    "model": [
        "professional fashion photoshoot",
        "runway-style pose in designer clothing",
        "editorial style portrait",
        "casual street style photography",
        "elegant evening wear photoshoot",
        "natural beauty outdoor shoot",
    ],
    "scientist": [
        "in a laboratory with equipment",
        "at a research presentation",
        "working with scientific instruments",
        "at a university campus",
        "casual pose in an office with books",
        "teaching or mentoring students",
    ],
    "traveler": [
        "at an exotic travel destination",
        "standing at a scenic viewpoint",
        "exploring a historic city center",
        "at an airport with luggage",
        "adventure activity like hiking or diving",
        "at a beautiful beach or mountain",
    ],
    "wellness": [
        "in a peaceful spa setting",
        "surrounded by plants and natural elements",
        "practicing self-care rituals",
        "at a wellness retreat",
        "calm pose in a meditation space",
        "in a bright, positive environment",
    ],
}

LIGHTING_OPTIONS = ["natural lighting", "golden hour", "soft studio lighting", "dramatic lighting"]

# Keyed by gender where the options differ
PHYSICAL_OPTIONS: dict[str, Any] = {
    "ethnicities": {
        "male": ["Caucasian", "Asian", "African", "Hispanic", "Middle Eastern", "South Asian", "Mixed"],
        "female": ["Caucasian", "Asian", "African", "Hispanic/Latina", "Middle Eastern", "South Asian", "Mixed"],
        "non-binary": ["Caucasian", "Asian", "African", "Hispanic", "Middle Eastern", "South Asian", "Mixed"],
    },
    "ages": ["early 20s", "mid 20s", "late 20s", "early 30s", "mid 30s", "late 30s"],
    "face_shapes": ["oval", "round", "heart", "square", "oblong", "diamond"],
    "eye_colors": ["brown", "blue", "green", "hazel", "gray", "amber", "black"],
    "eye_shapes": ["almond", "round", "hooded", "monolid", "upturned"],
    "skin_tones": ["porcelain", "fair", "light", "medium", "olive", "tan", "brown", "dark"],
    "hair_colors": ["blonde", "brunette", "black", "red", "auburn", "gray", "platinum"],
    "hair_lengths": {
        "male": ["short", "medium", "buzz cut", "slicked back"],
        "female": ["pixie", "short", "medium", "long", "very long"],
        "non-binary": ["pixie", "short", "medium", "long"],
    },
    "hair_styles": {
        "male": ["straight", "wavy", "curly", "buzz cut", "slicked back", "messy"],
        "female": ["straight", "wavy", "curly", "braided", "ponytail", "bun", "bob"],
        "non-binary": ["straight", "wavy", "curly", "bob", "undercut", "natural"],
    },
    "hair_textures": ["straight", "wavy", "curly", "coily"],
    "body_types": {
        "male": ["athletic", "slim", "muscular", "average", "tall and lean"],
        "female": ["slim", "athletic", "curvy", "petite", "average"],
        "non-binary": ["slim", "athletic", "average", "petite", "lean"],
    },
    "heights": ["tall", "average", "petite"],
    "distinctive_features": ["dimples", "freckles", "beauty mark", "strong jawline", "high cheekbones"],
    "makeup": ["natural", "glamorous", "minimal", "soft glam"],
}

PROFILE_SYSTEM_PROMPT = """You are an AI character designer creating realistic, diverse virtual influencer profiles.
Generate a unique, authentic character profile that feels like a real person with depth and personality.
The character should be interesting, relatable, and have a compelling backstory.
Return the response in valid JSON format."""

PROFILE_RESPONSE_FORMAT = """Return as JSON:
{
  "name": "Full Name",
  "description": "Brief engaging description",
  "category": "appropriate category",
  "personality": {
    "traits": ["trait1", "trait2", "trait3", "trait4", "trait5"],
    "mood": "default mood",
    "speakingStyle": "how they communicate",
    "tone": "their tone of voice",
    "backstory": "their background story",
    "interests": ["interest1", "interest2", "interest3"],
    "hobbies": ["hobby1", "hobby2", "hobby3"],
    "occupation": "their job title",
    "relationshipStyle": "friend|mentor|companion",
    "flirtLevel": number 1-5,
    "affectionLevel": number 5-8,
    "likes": ["like1", "like2"],
    "dislikes": ["dislike1", "dislike2"],
    "favoriteTopics": ["topic1", "topic2"],
    "avoidTopics": ["topic1"]
  }
}"""

# Personality keys the model fills, with the value used when it doesn't
PERSONALITY_DEFAULTS: dict[str, Any] = {
    "traits": [],
    "mood": "cheerful",
    "speakingStyle": "casual",
    "tone": "friendly",
    "backstory": "",
    "interests": [],
    "hobbies": [],
    "occupation": "",
    "relationshipStyle": "friend",
    "flirtLevel": 3,
    "affectionLevel": 6,
    "likes": [],
    "dislikes": [],
    "favoriteTopics": [],
    "avoidTopics": [],
}


# =============================================================================
# Helpers
# =============================================================================

def next_slot_at(time_slots: list[str] | None, now: datetime | None = None) -> datetime:
    """
    Next UTC time slot strictly after now; the first slot tomorrow when
    every slot today has passed.

    Example:
        next_slot_at(["09:00", "18:00"], now=<10:30 UTC>)  # today 18:00
    """
    now = now or utc_now()
    slots = sorted(time_slots or DEFAULT_GENERATION_TIME_SLOTS)
    current_minutes = now.hour * 60 + now.minute

    for slot in slots:
        hours, minutes = (int(part) for part in slot.split(":"))
        if hours * 60 + minutes > current_minutes:
            return now.replace(hour=hours, minute=minutes, second=0, microsecond=0)

    hours, minutes = (int(part) for part in slots[0].split(":"))
    tomorrow = now + timedelta(days=1)
    return tomorrow.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def weighted_gender(distribution: dict[str, Any] | None, rng: random.Random | None = None) -> str:
    """Pick male/female/non-binary by percentage; the remainder is non-binary."""
    distribution = distribution or DEFAULT_GENDER_DISTRIBUTION
    roll = (rng or random).random() * 100
    male = float(distribution.get("male") or 0)
    female = float(distribution.get("female") or 0)
    if roll < male:
        return "male"
    if roll < male + female:
        return "female"
    return "non-binary"


def random_physical_attributes(
    gender: str,
    profile_type: str,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Physical description in the camelCase shape image prompts read."""
    rng = rng or random
    options = PHYSICAL_OPTIONS
    fashion_styles = PROFILE_TYPE_DESCRIPTIONS[profile_type]["fashion_styles"]

    return {
        "gender": gender,
        "age": rng.choice(options["ages"]),
        "ethnicity": rng.choice(options["ethnicities"][gender]),
        "faceShape": rng.choice(options["face_shapes"]),
        "eyeColor": rng.choice(options["eye_colors"]),
        "eyeShape": rng.choice(options["eye_shapes"]),
        "noseType": "straight",
        "lipShape": "full",
        "skinTone": rng.choice(options["skin_tones"]),
        "hairColor": rng.choice(options["hair_colors"]),
        "hairLength": rng.choice(options["hair_lengths"][gender]),
        "hairStyle": rng.choice(options["hair_styles"][gender]),
        "hairTexture": rng.choice(options["hair_textures"]),
        "bodyType": rng.choice(options["body_types"][gender]),
        "height": rng.choice(options["heights"]),
        "distinctiveFeatures": rng.sample(options["distinctive_features"], rng.randint(1, 2)),
        "fashionStyle": rng.choice(fashion_styles),
        "makeup": rng.choice(options["makeup"]) if gender == "female" else "none",
    }


def build_image_prompts(profile_type: str, count: int, rng: random.Random | None = None) -> list[str]:
    """Up to count distinct scene prompts for the profile type."""
    rng = rng or random
    scenes = SCENE_TEMPLATES.get(profile_type) or SCENE_TEMPLATES["influencer"]
    selected = rng.sample(scenes, min(count, len(scenes)))
    return [
        f"{scene}, {rng.choice(LIGHTING_OPTIONS)}, professional photography, high quality"
        for scene in selected
    ]


def build_tags(profile_type: str, gender: str, attributes: dict[str, Any], traits: list[str]) -> list[str]:
    tags = [
        profile_type.replace("_", " "),
        gender,
        attributes.get("ethnicity"),
        attributes.get("hairColor"),
        *traits[:3],
    ]
    return [str(tag) for tag in tags if tag]


def serialize_settings(row: dict[str, Any]) -> dict[str, Any]:
    """Database row -> API shape, filling unset columns with the defaults."""
    return {
        "id": row.get("id"),
        "userId": row.get("user_id"),
        "isActive": bool(row.get("is_active")),
        "charactersPerDay": row.get("characters_per_day"),
        "imagesPerCharacter": row.get("images_per_character"),
        "profileTypes": row.get("profile_types") or DEFAULT_PROFILE_TYPES,
        "genderDistribution": row.get("gender_distribution") or DEFAULT_GENDER_DISTRIBUTION,
        "timezone": row.get("timezone"),
        "generationTimeSlots": row.get("generation_time_slots") or DEFAULT_GENERATION_TIME_SLOTS,
        "makePublicByDefault": bool(row.get("make_public_by_default")),
        "totalCharactersGenerated": row.get("total_characters_generated") or 0,
        "totalImagesGenerated": row.get("total_images_generated") or 0,
        "lastGeneratedAt": row.get("last_generated_at"),
        "nextScheduledAt": row.get("next_scheduled_at"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


def _check_distribution(distribution) -> None:
    if distribution is not None and distribution.total != 100:
        raise ValidationFailedError(
            "Gender distribution must add up to 100%",
            details={"total": distribution.total},
        )


class CharacterAutomationService:
    """Service for automated character generation."""

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def _settings_row(user_id: UUID | str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(SETTINGS_TABLE, user_id=normalize_uuid(user_id))

    @staticmethod
    def get_settings(user_id: UUID | str, include_stats: bool = False) -> dict[str, Any]:
        """
        The caller's settings, or the defaults when none are saved.

        With include_stats the active queue and the 20 most recent generated
        characters are added.
        """
        row = CharacterAutomationService._settings_row(user_id)
        if not row:
            return {"exists": False, "defaults": AUTOMATION_DEFAULTS}

        result: dict[str, Any] = {"exists": True, "settings": serialize_settings(row)}
        if include_stats:
            client = SupabaseClient.get_client()
            result["queue"] = (
                client.table(QUEUE_TABLE)
                .select("*")
                .eq("user_id", normalize_uuid(user_id))
                .in_("status", ["pending", "generating"])
                .order("created_at")
                .execute()
            ).data or []
            result["recentCharacters"] = (
                client.table(GENERATED_TABLE)
                .select(
                    "*, characters (id, name, description, thumbnail, category, is_public, "
                    "personality, physical_attributes, tags)"
                )
                .eq("user_id", normalize_uuid(user_id))
                .order("generated_at", desc=True)
                .limit(RECENT_CHARACTERS_LIMIT)
                .execute()
            ).data or []
        return result

    @staticmethod
    def save_settings(user_id: UUID | str, request: AutomationSettingsRequest) -> dict[str, Any]:
        """
        Create or replace the caller's settings.

        Raises:
            ValidationFailedError: If the gender distribution doesn't total 100
        """
        _check_distribution(request.gender_distribution)

        next_scheduled = (
            next_slot_at(request.generation_time_slots).isoformat() if request.is_active else None
        )
        values = {
            "is_active": request.is_active,
            "characters_per_day": request.characters_per_day,
            "images_per_character": request.images_per_character,
            "profile_types": request.profile_types,
            "gender_distribution": request.gender_distribution.model_dump(by_alias=True),
            "timezone": request.timezone,
            "generation_time_slots": request.generation_time_slots,
            "make_public_by_default": request.make_public_by_default,
            "next_scheduled_at": next_scheduled,
        }

        client = SupabaseClient.get_client()
        existing = CharacterAutomationService._settings_row(user_id)
        try:
            if existing:
                values["updated_at"] = utc_now_iso()
                response = client.table(SETTINGS_TABLE).update(values).eq("id", existing["id"]).execute()
                row = response.data[0] if response.data else {**existing, **values}
            else:
                values["user_id"] = normalize_uuid(user_id)
                row = client.table(SETTINGS_TABLE).insert(values).execute().data[0]
        except Exception as e:
            logger.error(f"Failed to save automation settings for {user_id}: {e}")
            raise

        logger.info(f"Saved automation settings for {user_id} (active={request.is_active})")
        return {"success": True, "settings": serialize_settings(row)}

    @staticmethod
    def update_settings(user_id: UUID | str, request: AutomationSettingsUpdate) -> dict[str, Any]:
        """
        Toggle is_active or apply a partial update.

        next_scheduled_at is recomputed when activity, the daily count or the
        time slots change, and cleared when the settings end up inactive.

        Raises:
            ResourceNotFoundError: If the caller has no settings yet
            ValidationFailedError: If a new gender distribution doesn't total 100
        """
        row = CharacterAutomationService._settings_row(user_id)
        if not row:
            raise ResourceNotFoundError("Automation settings")

        if request.action == "toggle":
            is_active = not row.get("is_active")
            updates: dict[str, Any] = {
                "is_active": is_active,
                "next_scheduled_at": (
                    next_slot_at(row.get("generation_time_slots")).isoformat() if is_active else None
                ),
            }
        else:
            _check_distribution(request.gender_distribution)
            updates = request.model_dump(exclude_unset=True, exclude={"action", "gender_distribution"})
            if request.gender_distribution is not None:
                updates["gender_distribution"] = request.gender_distribution.model_dump(by_alias=True)

            if {"is_active", "characters_per_day", "generation_time_slots"} & updates.keys():
                is_active = updates.get("is_active", row.get("is_active"))
                slots = updates.get("generation_time_slots") or row.get("generation_time_slots")
                updates["next_scheduled_at"] = next_slot_at(slots).isoformat() if is_active else None

        updates["updated_at"] = utc_now_iso()
        client = SupabaseClient.get_client()
        response = client.table(SETTINGS_TABLE).update(updates).eq("id", row["id"]).execute()
        return {
            "success": True,
            "settings": serialize_settings(response.data[0] if response.data else {**row, **updates}),
        }

    @staticmethod
    def delete_settings(user_id: UUID | str) -> None:
        client = SupabaseClient.get_client()
        client.table(SETTINGS_TABLE).delete().eq("user_id", normalize_uuid(user_id)).execute()
        logger.info(f"Deleted automation settings for {user_id}")

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    @staticmethod
    def queue_items_for(settings_row: dict[str, Any], rng: random.Random | None = None) -> list[dict[str, Any]]:
        """Pending queue rows for one day's worth of characters."""
        rng = rng or random
        profile_types = settings_row.get("profile_types") or ["influencer"]
        distribution = settings_row.get("gender_distribution") or DEFAULT_GENDER_DISTRIBUTION
        return [
            {
                "user_id": settings_row["user_id"],
                "settings_id": settings_row["id"],
                "profile_type": rng.choice(profile_types),
                "gender": weighted_gender(distribution, rng),
                "status": "pending",
                "images_generated": 0,
                "total_images": int(settings_row.get("images_per_character") or 5),
            }
            for _ in range(int(settings_row.get("characters_per_day") or 5))
        ]

    @staticmethod
    def process_due_settings() -> dict[str, Any]:
        """
        Queue a day's characters for every active settings row that is due.

        One failing row doesn't stop the others.
        """
        client = SupabaseClient.get_client()
        due = (
            client.table(SETTINGS_TABLE)
            .select("*")
            .eq("is_active", True)
            .lte("next_scheduled_at", utc_now_iso())
            .execute()
        ).data or []

        if not due:
            return {
                "message": "No auto-generation settings due for execution",
                "processed": 0,
                "success": 0,
                "failed": 0,
                "totalCharactersQueued": 0,
                "results": [],
            }

        logger.info(f"Found {len(due)} automation settings due for execution")
        results = []
        for row in due:
            try:
                queued = client.table(QUEUE_TABLE).insert(
                    CharacterAutomationService.queue_items_for(row)
                ).execute().data or []

                now = utc_now()
                (
                    client.table(SETTINGS_TABLE)
                    .update({
                        "last_generated_at": now.isoformat(),
                        "next_scheduled_at": next_slot_at(row.get("generation_time_slots"), now).isoformat(),
                    })
                    .eq("id", row["id"])
                    .execute()
                )
                results.append({
                    "userId": row["user_id"],
                    "settingsId": row["id"],
                    "queuedCharacters": len(queued),
                    "success": True,
                })
                logger.info(f"Queued {len(queued)} characters for user {row['user_id']}")
            except Exception as e:
                logger.error(f"Error processing automation settings {row['id']}: {e}")
                results.append({
                    "userId": row["user_id"],
                    "settingsId": row["id"],
                    "queuedCharacters": 0,
                    "success": False,
                    "error": str(e),
                })

        success = sum(1 for r in results if r["success"])
        failed = len(results) - success
        return {
            "message": f"Processed {len(results)} settings: {success} success, {failed} failed",
            "processed": len(results),
            "success": success,
            "failed": failed,
            "totalCharactersQueued": sum(r["queuedCharacters"] for r in results),
            "results": results,
        }

    @staticmethod
    def process_queue(limit: int = 5) -> dict[str, Any]:
        """Generate the oldest pending queue items, marking failures on the item."""
        client = SupabaseClient.get_client()
        pending = (
            client.table(QUEUE_TABLE)
            .select("*")
            .eq("status", "pending")
            .order("created_at")
            .limit(limit)
            .execute()
        ).data or []

        if not pending:
            return {"message": "No pending queue items", "processed": 0, "success": 0, "failed": 0, "results": []}

        logger.info(f"Found {len(pending)} pending character generation items")
        results = []
        for item in pending:
            try:
                generated = CharacterAutomationService.generate(
                    item["user_id"],
                    CharacterGenerateRequest(
                        profile_type=item["profile_type"],
                        gender=item["gender"],
                        images_per_character=int(item.get("total_images") or 5),
                        settings_id=item.get("settings_id"),
                        queue_item_id=item["id"],
                    ),
                )
                results.append({
                    "queueItemId": item["id"],
                    "success": True,
                    "characterId": generated["character"]["id"],
                    "imagesGenerated": generated["imagesGenerated"],
                })
            except Exception as e:
                logger.error(f"Error generating queue item {item['id']}: {e}")
                (
                    client.table(QUEUE_TABLE)
                    .update({"status": "failed", "error_message": str(e)})
                    .eq("id", item["id"])
                    .execute()
                )
                results.append({"queueItemId": item["id"], "success": False, "error": str(e)})

        success = sum(1 for r in results if r["success"])
        return {
            "message": f"Processed {len(results)} queue items: {success} success",
            "processed": len(results),
            "success": success,
            "failed": len(results) - success,
            "results": results,
        }

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_profile(profile_type: str, gender: str) -> dict[str, Any]:
        """
        Ask the model for a name, bio and personality, then roll the looks.

        Returns:
            Dict with name, description, category, personality and
            physical_attributes

        Raises:
            ExternalServiceError: If the completion fails or has no name
        """
        info = PROFILE_TYPE_DESCRIPTIONS[profile_type]
        user_prompt = (
            f"Create a {gender} {profile_type} character profile with these guidelines:\n"
            f"- Profile type: {info['description']}\n"
            f"- Typical occupations: {', '.join(info['occupations'])}\n"
            f"- Common interests: {', '.join(info['interests'])}\n"
            f"- Personality traits: {', '.join(info['traits'])}\n"
            f"- Fashion style: {', '.join(info['fashion_styles'])}\n\n"
            "Generate a complete character with:\n"
            "1. A realistic first and last name appropriate for their background\n"
            "2. A brief but engaging description (2-3 sentences about who they are)\n"
            "3. Detailed personality traits\n"
            "4. A compelling backstory (2-3 sentences)\n"
            "5. Their speaking style and communication preferences\n\n"
            + PROFILE_RESPONSE_FORMAT
        )

        try:
            profile = json_completion(
                [
                    {"role": "system", "content": PROFILE_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                model=settings.OPENAI_CONTENT_MODEL,
                temperature=0.9,
                max_tokens=1500,
            )
        except LLMError as e:
            raise ExternalServiceError("OpenAI", str(e))

        name = str(profile.get("name") or "").strip()
        if not name:
            raise ExternalServiceError("OpenAI", "Failed to generate character profile")

        raw = profile.get("personality") if isinstance(profile.get("personality"), dict) else {}
        personality = {key: raw.get(key) or default for key, default in PERSONALITY_DEFAULTS.items()}

        return {
            "name": name[:100],
            "description": str(profile.get("description") or "")[:2000],
            "category": str(profile.get("category") or profile_type),
            "personality": personality,
            "physical_attributes": random_physical_attributes(gender, profile_type),
        }

    @staticmethod
    def _update_queue_item(queue_item_id: str | None, values: dict[str, Any]) -> None:
        if not queue_item_id:
            return
        client = SupabaseClient.get_client()
        client.table(QUEUE_TABLE).update(values).eq("id", queue_item_id).execute()

    @staticmethod
    def generate(user_id: UUID | str, request: CharacterGenerateRequest) -> dict[str, Any]:
        """
        Generate one character and its images for user_id.

        Image failures are collected rather than raised, so a character can
        come back with fewer images than asked for.

        Returns:
            Dict with character, images, imagesGenerated, totalImages and
            errors (only when some images failed)

        Raises:
            ExternalServiceError: If the profile can't be generated
        """
        profile_type = request.profile_type
        gender = request.gender.value
        queue_item_id = request.queue_item_id
        logger.info(
            f"Generating {gender} {profile_type} for {user_id} "
            f"with {request.images_per_character} images"
        )

        CharacterAutomationService._update_queue_item(
            queue_item_id, {"status": "generating", "started_at": utc_now_iso()}
        )

        settings_row = (
            SupabaseClient.fetch_one(SETTINGS_TABLE, id=request.settings_id)
            if request.settings_id else None
        ) or {}
        make_public = bool(settings_row.get("make_public_by_default"))

        profile = CharacterAutomationService.generate_profile(profile_type, gender)
        attributes = profile["physical_attributes"]

        client = SupabaseClient.get_client()
        try:
            character = client.table("characters").insert({
                "user_id": normalize_uuid(user_id),
                "name": profile["name"],
                "description": profile["description"],
                "category": profile["category"],
                "personality": profile["personality"],
                "physical_attributes": attributes,
                "tags": build_tags(profile_type, gender, attributes, profile["personality"]["traits"]),
                "is_public": make_public,
            }).execute().data[0]
        except Exception as e:
            logger.error(f"Failed to create generated character for {user_id}: {e}")
            CharacterAutomationService._update_queue_item(
                queue_item_id, {"status": "failed", "error_message": str(e)}
            )
            raise

        character_id = character["id"]
        prompts = build_image_prompts(profile_type, request.images_per_character)

        images: list[dict[str, Any]] = []
        errors: list[str] = []
        for index, prompt in enumerate(prompts, start=1):
            try:
                result = ImageService.generate(
                    user_id,
                    ImageGenerateRequest(
                        character_id=character_id,
                        scene_prompt=prompt,
                        width=GENERATED_IMAGE_SIZE,
                        height=GENERATED_IMAGE_SIZE,
                    ),
                    charge_coins=False,
                )
            except Exception as e:
                logger.warning(f"Image {index} failed for generated character {character_id}: {e}")
                errors.append(f"Image {index}: {e}")
                continue

            images.append(result["image"])
            CharacterAutomationService._update_queue_item(
                queue_item_id, {"images_generated": len(images)}
            )

        if request.settings_id:
            try:
                client.table(GENERATED_TABLE).insert({
                    "user_id": normalize_uuid(user_id),
                    "settings_id": request.settings_id,
                    "character_id": character_id,
                    "profile_type": profile_type,
                    "images_generated": len(images),
                    "is_complete": len(images) >= request.images_per_character,
                    "is_released": make_public,
                    "generation_prompts": prompts,
                    "generation_errors": errors or None,
                    "generated_at": utc_now_iso(),
                }).execute()
                SupabaseClient.rpc("increment_auto_generation_stats", {
                    "p_settings_id": request.settings_id,
                    "p_characters": 1,
                    "p_images": len(images),
                })
            except Exception as e:
                logger.warning(f"Failed to record generated character {character_id}: {e}")

        CharacterAutomationService._update_queue_item(queue_item_id, {
            "status": "completed",
            "character_id": character_id,
            "images_generated": len(images),
            "completed_at": utc_now_iso(),
        })

        refreshed = SupabaseClient.fetch_character(character_id) or character
        logger.info(
            f"Generated character {character_id}: "
            f"{len(images)}/{request.images_per_character} images"
        )

        response: dict[str, Any] = {
            "success": True,
            "character": {
                "id": character_id,
                "name": refreshed.get("name"),
                "description": refreshed.get("description"),
                "category": refreshed.get("category"),
                "thumbnail": refreshed.get("thumbnail"),
                "isPublic": bool(refreshed.get("is_public")),
                "profileType": profile_type,
                "gender": gender,
            },
            "images": images,
            "imagesGenerated": len(images),
            "totalImages": request.images_per_character,
        }
        if errors:
            response["errors"] = errors
        return response

    # -------------------------------------------------------------------------
    # Release
    # -------------------------------------------------------------------------

    @staticmethod
    def release(user_id: UUID | str, request: ReleaseRequest) -> dict[str, Any]:
        """
        Make one owned character public or private.

        Raises:
            CharacterNotFoundError: Unknown character
            NotCharacterOwnerError: Someone else's character
        """
        character = CharacterService.get_owned_character(request.character_id, user_id)

        client = SupabaseClient.get_client()
        response = (
            client.table("characters")
            .update({"is_public": request.is_public, "updated_at": utc_now_iso()})
            .eq("id", character["id"])
            .execute()
        )
        updated = response.data[0] if response.data else {**character, "is_public": request.is_public}
        (
            client.table(GENERATED_TABLE)
            .update({"is_released": request.is_public})
            .eq("character_id", character["id"])
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )

        logger.info(f"Character {character['id']} is_public={request.is_public}")
        return {
            "success": True,
            "character": {
                "id": updated["id"],
                "name": updated.get("name"),
                "isPublic": bool(updated.get("is_public")),
            },
        }

    @staticmethod
    def release_many(user_id: UUID | str, request: BulkReleaseRequest) -> dict[str, Any]:
        """Set is_public on every listed character the caller owns; others are skipped."""
        client = SupabaseClient.get_client()
        updated = (
            client.table("characters")
            .update({"is_public": request.is_public, "updated_at": utc_now_iso()})
            .in_("id", request.character_ids)
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        ).data or []
        (
            client.table(GENERATED_TABLE)
            .update({"is_released": request.is_public})
            .in_("character_id", request.character_ids)
            .eq("user_id", normalize_uuid(user_id))
            .execute()
        )

        return {
            "success": True,
            "updated": len(updated),
            "characters": [
                {"id": row["id"], "name": row.get("name"), "is_public": row.get("is_public")}
                for row in updated
            ],
        }
