# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .coin_service import CoinService
from .premium_service import PremiumService
from .character_service import CharacterService
from .chat_service import ChatService
from .image_service import ImageService
from .interaction_service import InteractionService
from .earnings_service import EarningsService
from .tip_service import TipService
from .tier_service import TierService
from .subscription_service import SubscriptionService
from .monetization_service import MonetizationService
from .stripe_connect_service import StripeConnectService
from .webhook_service import WebhookService
from .follow_service import FollowService
from .analytics_service import AnalyticsService
from .discovery_service import DiscoveryService
from .social_media_service import SocialMediaService
from .content_generation_service import ContentGenerationService

__all__ = [
    "CoinService",
    "PremiumService",
    "CharacterService",
    "ChatService",
    "ImageService",
    "InteractionService",
    "EarningsService",
    "TipService",
    "TierService",
    "SubscriptionService",
    "MonetizationService",
    "StripeConnectService",
    "WebhookService",
    "FollowService",
    "AnalyticsService",
    "DiscoveryService",
    "SocialMediaService",
    "ContentGenerationService",
]
