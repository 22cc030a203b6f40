# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for request validation:
# - character.py: Characters, images, face swap, character automation
# - chat.py: Character chat and gifts
# - monetization.py: Coins, premium, tips, tiers, fan subscriptions, payouts
# - social.py: Follows, interactions, image likes, social posts, content generation
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Character Models
# -----------------------------------------------------------------------------
from .character import (
    AutomationSettingsRequest,
    AutomationSettingsUpdate,
    BulkReleaseRequest,
    CharacterGender,
    CharacterGenerateRequest,
    CharacterCreate,
    CharacterScope,
    CharacterUpdate,
    FaceSwapRequest,
    GenderDistribution,
    GalleryStatus,
    ImageGenerateRequest,
    ImageStatusUpdate,
    QueueProcessRequest,
    ReleaseRequest,
)

# -----------------------------------------------------------------------------
# Chat Models
# -----------------------------------------------------------------------------
from .chat import (
    ChatInitRequest,
    ChatRequest,
    GiftRequest,
    HistoryMessage,
    MessageSender,
    MessageType,
)

# -----------------------------------------------------------------------------
# Monetization Models
# -----------------------------------------------------------------------------
from .monetization import (
    AutoRechargeUpdate,
    BillingCycle,
    CoinPurchaseRequest,
    CoinTransactionType,
    ConnectOnboardRequest,
    EarningSource,
    EarningStatus,
    FanSubscribeRequest,
    FanSubscriptionActionRequest,
    FanSubscriptionConfirmRequest,
    FanSubscriptionStatus,
    MonetizationSettingsRequest,
    PaymentMethod,
    PayoutCreateRequest,
    PayoutStatus,
    PremiumActionRequest,
    PremiumStatus,
    PremiumSubscribeRequest,
    SubscriptionAction,
    TierCreateRequest,
    TierUpdateRequest,
    TipConfirmRequest,
    TipCreateRequest,
    TipDirection,
    TipStatus,
)

# -----------------------------------------------------------------------------
# Social Models
# -----------------------------------------------------------------------------
from .social import (
    CaptionRequest,
    CaptionType,
    ContentPromptRequest,
    ContentStatus,
    FollowNotificationsUpdate,
    FollowRequest,
    ImageInteractionAction,
    ImageInteractionRequest,
    InteractionCreate,
    PlatformTarget,
    ScheduleCreate,
    ScheduleFrequency,
    ScheduleUpdate,
    SocialConfigUpdate,
    SocialListType,
    SocialPostCreate,
    StylePreferences,
)

__all__ = [
    # Character
    "AutomationSettingsRequest",
    "AutomationSettingsUpdate",
    "BulkReleaseRequest",
    "CharacterGender",
    "CharacterGenerateRequest",
    "CharacterCreate",
    "CharacterScope",
    "CharacterUpdate",
    "FaceSwapRequest",
    "GenderDistribution",
    "GalleryStatus",
    "ImageGenerateRequest",
    "ImageStatusUpdate",
    "QueueProcessRequest",
    "ReleaseRequest",
    # Chat
    "ChatInitRequest",
    "ChatRequest",
    "GiftRequest",
    "HistoryMessage",
    "MessageSender",
    "MessageType",
    # Monetization
    "AutoRechargeUpdate",
    "BillingCycle",
    "CoinPurchaseRequest",
    "CoinTransactionType",
    "ConnectOnboardRequest",
    "EarningSource",
    "EarningStatus",
    "FanSubscribeRequest",
    "FanSubscriptionActionRequest",
    "FanSubscriptionConfirmRequest",
    "FanSubscriptionStatus",
    "MonetizationSettingsRequest",
    "PaymentMethod",
    "PayoutCreateRequest",
    "PayoutStatus",
    "PremiumActionRequest",
    "PremiumStatus",
    "PremiumSubscribeRequest",
    "SubscriptionAction",
    "TierCreateRequest",
    "TierUpdateRequest",
    "TipConfirmRequest",
    "TipCreateRequest",
    "TipDirection",
    "TipStatus",
    # Social
    "CaptionRequest",
    "CaptionType",
    "ContentPromptRequest",
    "ContentStatus",
    "FollowNotificationsUpdate",
    "FollowRequest",
    "ImageInteractionAction",
    "ImageInteractionRequest",
    "InteractionCreate",
    "PlatformTarget",
    "ScheduleCreate",
    "ScheduleFrequency",
    "ScheduleUpdate",
    "SocialConfigUpdate",
    "SocialListType",
    "SocialPostCreate",
    "StylePreferences",
]
