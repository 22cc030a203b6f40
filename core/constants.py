# =============================================================================
# core/constants.py - Platform Business Constants
# =============================================================================
# Prices, limits and fee rates shared by the monetization services.
# Database-backed catalogues (coin packages, gift types, premium plans) fall
# back to the defaults defined here when their tables are empty.
# =============================================================================

# -----------------------------------------------------------------------------
# Fees / Payouts
# -----------------------------------------------------------------------------

# Platform share of every tip and fan subscription, in percent
PLATFORM_FEE_PERCENTAGE = 15

MINIMUM_PAYOUT_AMOUNT = 20.00

COINS_PER_DOLLAR = 100

# -----------------------------------------------------------------------------
# Characters
# -----------------------------------------------------------------------------

CHARACTER_LIMITS = {
    "free": 1,
    "premium": 10,
}

# -----------------------------------------------------------------------------
# Image Generation
# -----------------------------------------------------------------------------

ASPECT_RATIO_RESOLUTIONS = {
    "square": (1024, 1024),
    "landscape": (1280, 720),
    "portrait": (720, 1280),
}

DEFAULT_IMAGE_SIZE = (1024, 1024)

# (max pixel count, coin cost), checked in order
IMAGE_COIN_COSTS = [
    (512 * 512, 5),
    (1024 * 1024, 10),
]
PREMIUM_IMAGE_COIN_COST = 15


def image_coin_cost(width: int, height: int) -> int:
    """Coin cost for an image of the given size."""
    pixels = width * height
    for max_pixels, cost in IMAGE_COIN_COSTS:
        if pixels <= max_pixels:
            return cost
    return PREMIUM_IMAGE_COIN_COST


GALLERY_STATUSES = ("unposted", "posted", "archived")

# -----------------------------------------------------------------------------
# Chat
# -----------------------------------------------------------------------------

CHAT_TEMPERATURE = 0.9
CHAT_MAX_TOKENS = 500
CHAT_PRESENCE_PENALTY = 0.6
CHAT_FREQUENCY_PENALTY = 0.3
CHAT_HISTORY_LIMIT = 20

EMOTIONS = (
    "happy",
    "excited",
    "flirty",
    "thoughtful",
    "curious",
    "playful",
    "caring",
    "surprised",
    "shy",
    "loving",
)
DEFAULT_EMOTION = "happy"

GIFT_RELATIONSHIP_BOOST = 5
MAX_RELATIONSHIP_PROGRESS = 100

DEFAULT_GIFTS = [
    {"id": "rose", "name": "Rose", "emoji": "🌹", "coin_cost": 5},
    {"id": "heart", "name": "Heart", "emoji": "❤️", "coin_cost": 10},
    {"id": "kiss", "name": "Kiss", "emoji": "💋", "coin_cost": 15},
    {"id": "chocolate", "name": "Chocolate", "emoji": "🍫", "coin_cost": 20},
    {"id": "fire", "name": "Fire", "emoji": "🔥", "coin_cost": 25},
    {"id": "teddy_bear", "name": "Teddy Bear", "emoji": "🧸", "coin_cost": 30},
    {"id": "star", "name": "Star", "emoji": "⭐", "coin_cost": 35},
    {"id": "champagne", "name": "Champagne", "emoji": "🍾", "coin_cost": 40},
    {"id": "diamond", "name": "Diamond", "emoji": "💎", "coin_cost": 50},
    {"id": "crown", "name": "Crown", "emoji": "👑", "coin_cost": 100},
]

# -----------------------------------------------------------------------------
# Coins / Premium
# -----------------------------------------------------------------------------

AUTO_RECHARGE_MIN_PRICE = 19.99

PROMOTIONAL_COIN_PACKAGES = [
    {"id": "starter-20", "name": "Starter Pack", "coin_amount": 160, "bonus_coins": 40, "price_usd": 20.00, "original_price_usd": 25.00, "sort_order": 1},
    {"id": "value-50", "name": "Value Pack", "coin_amount": 385, "bonus_coins": 165, "price_usd": 50.00, "original_price_usd": 65.00, "sort_order": 2},
    {"id": "pro-100", "name": "Pro Pack", "coin_amount": 720, "bonus_coins": 480, "price_usd": 100.00, "original_price_usd": 140.00, "sort_order": 3},
    {"id": "ultimate-200", "name": "Ultimate Pack", "coin_amount": 1300, "bonus_coins": 1300, "price_usd": 200.00, "original_price_usd": 300.00, "sort_order": 4},
]

DEFAULT_PREMIUM_PLAN = {
    "name": "creator_premium",
    "display_name": "Creator Premium",
    "description": "Create up to 10 characters, monetize them and get monthly coins",
    "price_monthly": 6.99,
    "price_yearly": 59.99,
    "monthly_coins": 500,
    "is_active": True,
}

# -----------------------------------------------------------------------------
# Analytics
# -----------------------------------------------------------------------------

INTERACTION_TYPES = (
    "profile_viewed",
    "followed",
    "unfollowed",
    "message_sent",
    "image_generated",
    "image_viewed",
    "post_viewed",
    "tip_sent",
    "subscription_started",
    "subscription_upgraded",
    "subscription_cancelled",
    "gift_sent",
    "shared",
    "liked",
    "commented",
    "post_liked",
    "post_commented",
)

# Interaction types anonymous visitors may report
ANONYMOUS_INTERACTION_TYPES = ("profile_viewed", "post_viewed", "image_viewed")

ANALYTICS_PERIOD_DAYS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
}

# -----------------------------------------------------------------------------
# Content Generation
# -----------------------------------------------------------------------------

CONTENT_TYPE_CONTEXT = {
    "lifestyle": "everyday moments, morning routines, self-care, home life, casual outings",
    "fashion": "outfit showcases, street style, editorial shoots, styling details, accessories",
    "travel": "destinations, adventures, scenic viewpoints, local culture, travel photography",
    "food": "restaurant visits, cooking at home, plated dishes, cafe aesthetics",
    "fitness": "workouts, gym sessions, outdoor training, yoga, active lifestyle",
    "beauty": "makeup looks, skincare, glam portraits, natural beauty",
    "tech": "gadgets, gaming setups, creative workspaces, digital lifestyle",
    "art": "artistic portraits, gallery visits, creative expression, cultural events",
    "nature": "hikes, beaches, mountains, golden hour, sunsets and sunrises",
    "urban": "city streets, architecture, nightlife, rooftop views",
    "custom": "custom themed content based on the creator's preferences",
}

SCHEDULE_FREQUENCY_HOURS = {
    "hourly": 1,
    "daily": 24,
    "weekly": 24 * 7,
}

# -----------------------------------------------------------------------------
# Character Automation
# -----------------------------------------------------------------------------

CHARACTER_PROFILE_TYPES = (
    "influencer",
    "gamer",
    "yoga_instructor",
    "tech",
    "billionaire",
    "philosopher",
    "fitness",
    "artist",
    "musician",
    "chef",
    "entrepreneur",
    "model",
    "scientist",
    "traveler",
    "wellness",
)

CHARACTER_GENDERS = ("male", "female", "non-binary")

# First ten profile types; the rest are opt-in
DEFAULT_PROFILE_TYPES = list(CHARACTER_PROFILE_TYPES[:10])
DEFAULT_GENDER_DISTRIBUTION = {"male": 40, "female": 50, "nonBinary": 10}
DEFAULT_GENERATION_TIME_SLOTS = ["09:00", "14:00", "18:00"]

AUTOMATION_DEFAULTS = {
    "isActive": False,
    "charactersPerDay": 5,
    "imagesPerCharacter": 5,
    "profileTypes": DEFAULT_PROFILE_TYPES,
    "genderDistribution": DEFAULT_GENDER_DISTRIBUTION,
    "timezone": "UTC",
    "generationTimeSlots": DEFAULT_GENERATION_TIME_SLOTS,
    "makePublicByDefault": False,
}
