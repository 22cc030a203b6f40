# =============================================================================
# core/models/monetization.py - Coins, Premium, Tips, Tiers & Payouts
# =============================================================================
# Status enums mirror the CHECK constraints in the database; request models
# are the bodies accepted by the monetization routers.
#
# Money:
# - Dollar amounts are floats rounded to cents
# - Coin amounts are integers
# - Stripe amounts are integer cents (converted in lib/stripe_client.py)
# =============================================================================

from enum import Enum

from pydantic import Field

from .base import CamelModel


# =============================================================================
# Status Enums
# =============================================================================

class CoinTransactionType(str, Enum):
    """Reason recorded on every coin_transactions row."""
    PURCHASE = "purchase"
    PREMIUM_ALLOCATION = "premium_allocation"
    IMAGE_GENERATION = "image_generation"
    TIP_SENT = "tip_sent"
    GIFT = "gift"
    REFUND = "refund"
    BONUS = "bonus"
    ADMIN_ADJUSTMENT = "admin_adjustment"


class PremiumStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class TipStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    COINS = "coins"
    CARD = "card"


class FanSubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class EarningSource(str, Enum):
    SUBSCRIPTION = "subscription"
    TIP = "tip"


class EarningStatus(str, Enum):
    """
    Creator earnings lifecycle.

    - pending: Coin-funded, not yet cleared for payout
    - available: Card-funded (Stripe already settled), can be paid out
    - paid_out: Included in a completed payout request
    - refunded: Reversed
    """
    PENDING = "pending"
    AVAILABLE = "available"
    PAID_OUT = "paid_out"
    REFUNDED = "refunded"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SubscriptionAction(str, Enum):
    CANCEL = "cancel"
    REACTIVATE = "reactivate"


class TipDirection(str, Enum):
    RECEIVED = "received"
    SENT = "sent"


# =============================================================================
# Coins
# =============================================================================

class CoinPurchaseRequest(CamelModel):
    package_id: str


class AutoRechargeUpdate(CamelModel):
    enabled: bool
    threshold: int | None = Field(default=None, ge=0)
    package_id: str | None = None


# =============================================================================
# Premium
# =============================================================================

class PremiumSubscribeRequest(CamelModel):
    """
    Start a premium subscription.

    With Stripe configured the response carries a Checkout URL; otherwise
    (or with admin_bypass) the subscription is activated immediately.
    """
    plan_id: str | None = None
    plan_name: str | None = None
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    admin_bypass: bool = False


class PremiumActionRequest(CamelModel):
    action: SubscriptionAction
    subscription_id: str | None = None


# =============================================================================
# Tips
# =============================================================================

class TipCreateRequest(CamelModel):
    """
    Send a tip to a character's creator.

    Coin tips are charged at 100 coins per dollar; card tips return a
    PaymentIntent client secret to confirm in the browser.
    """
    character_id: str
    amount: float = Field(..., gt=0, le=10000)
    message: str | None = Field(default=None, max_length=500)
    is_anonymous: bool = False
    payment_method: PaymentMethod = PaymentMethod.COINS


class TipConfirmRequest(CamelModel):
    payment_intent_id: str
    character_id: str


# =============================================================================
# Creator Tiers / Fan Subscriptions
# =============================================================================

class TierCreateRequest(CamelModel):
    character_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    price_monthly: float = Field(..., gt=0, le=1000)
    benefits: list[str] = Field(default_factory=list)
    exclusive_posts: bool = False
    private_chat: bool = False
    custom_images: bool = False
    custom_images_per_month: int = Field(default=0, ge=0)
    priority_responses: bool = False
    behind_the_scenes: bool = False
    early_access: bool = False
    badge_color: str = "#8b5cf6"
    badge_emoji: str | None = None


class TierUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    price_monthly: float | None = Field(default=None, gt=0, le=1000)
    benefits: list[str] | None = None
    exclusive_posts: bool | None = None
    private_chat: bool | None = None
    custom_images: bool | None = None
    custom_images_per_month: int | None = Field(default=None, ge=0)
    priority_responses: bool | None = None
    behind_the_scenes: bool | None = None
    early_access: bool | None = None
    badge_color: str | None = None
    badge_emoji: str | None = None
    is_active: bool | None = None


class FanSubscribeRequest(CamelModel):
    tier_id: str


class FanSubscriptionActionRequest(CamelModel):
    action: SubscriptionAction


class FanSubscriptionConfirmRequest(CamelModel):
    subscription_id: str = Field(..., description="Stripe subscription ID")


# =============================================================================
# Monetization Settings
# =============================================================================

class MonetizationSettingsRequest(CamelModel):
    """Create or update a character's monetization settings."""
    character_id: str
    is_monetized: bool | None = None
    tips_enabled: bool | None = None
    min_tip_amount: float | None = Field(default=None, ge=0)
    fan_image_requests_enabled: bool | None = None
    fan_image_request_cost: float | None = Field(default=None, ge=0)
    welcome_message: str | None = Field(default=None, max_length=1000)


# =============================================================================
# Payouts
# =============================================================================

class PayoutCreateRequest(CamelModel):
    amount: float = Field(..., gt=0)


class ConnectOnboardRequest(CamelModel):
    """Optional redirect overrides for the Connect onboarding link."""
    refresh_url: str | None = None
    return_url: str | None = None
