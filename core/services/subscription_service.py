# =============================================================================
# core/services/subscription_service.py - Fan Subscriptions
# =============================================================================
# Fans subscribe to a creator tier through a Stripe subscription whose
# payments transfer to the creator's Connect account (minus the platform
# application fee).
#
# Flow:
# 1. POST /subscriptions creates an incomplete Stripe subscription and
#    returns the first invoice's client secret
# 2. The browser confirms payment
# 3. POST /subscriptions/confirm records the fan_subscriptions row (once)
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.stripe_client import as_dict, get_or_create_customer, require_stripe, to_cents
from lib.supabase_client import SupabaseClient
from lib.utils import iso_from_timestamp, normalize_uuid, utc_now_iso
from core.constants import PLATFORM_FEE_PERCENTAGE
from core.models.monetization import (
    EarningSource,
    EarningStatus,
    FanSubscriptionStatus,
    SubscriptionAction,
)
from core.services.earnings_service import EarningsService
from core.services.interaction_service import InteractionService
from core.services.stripe_connect_service import StripeConnectService
from core.services.tier_service import TierService
from app.exceptions import (
    ConnectAccountRequiredError,
    ForbiddenError,
    SubscriptionNotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

ACTIVE_STRIPE_STATUSES = ("active", "trialing")


class SubscriptionService:
    """Service for fan subscriptions to creator tiers."""

    @staticmethod
    def list_subscriptions(
        user_id: UUID | str,
        status: str | None = None,
        character_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """The caller's subscriptions with tier and character, newest first."""
        client = SupabaseClient.get_client()
        query = (
            client.table("fan_subscriptions")
            .select("*, creator_tiers (*), characters (id, name, thumbnail, description)")
            .eq("fan_id", normalize_uuid(user_id))
        )
        if status:
            query = query.eq("status", status)
        if character_id:
            query = query.eq("character_id", character_id)

        response = query.order("created_at", desc=True).execute()
        return response.data or []

    @staticmethod
    def _active_for_character(fan_id: str, character_id: str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(
            "fan_subscriptions",
            columns="id, tier_id, status, stripe_subscription_id",
            fan_id=fan_id,
            character_id=character_id,
            status=FanSubscriptionStatus.ACTIVE.value,
        )

    @staticmethod
    def ensure_tier_price(tier: dict[str, Any]) -> str:
        """
        The tier's monthly Stripe price, creating product and price if needed.
        """
        if tier.get("stripe_price_id"):
            return tier["stripe_price_id"]

        stripe = require_stripe()
        product = stripe.Product.create(
            name=f"{tier['name']} - Subscription Tier",
            metadata={
                "tier_id": tier["id"],
                "character_id": tier["character_id"],
                "creator_id": tier["creator_id"],
            },
        )
        price = stripe.Price.create(
            product=product.id,
            unit_amount=to_cents(tier["price_monthly"]),
            currency="usd",
            recurring={"interval": "month"},
            metadata={"tier_id": tier["id"]},
        )

        try:
            (
                SupabaseClient.get_client()
                .table("creator_tiers")
                .update({"stripe_price_id": price.id, "stripe_product_id": product.id})
                .eq("id", tier["id"])
                .execute()
            )
        except Exception as e:
            logger.warning(f"Could not store Stripe price for tier {tier['id']}: {e}")

        return price.id

    @staticmethod
    def subscribe(
        user_id: UUID | str,
        tier_id: str,
        email: str | None = None,
    ) -> dict[str, Any]:
        """
        Start a Stripe subscription to a tier.

        Raises:
            TierNotFoundError: Tier missing or inactive
            ValidationFailedError: Own character, or already on this tier
            ConnectAccountRequiredError: Creator can't receive payments
        """
        stripe = require_stripe()
        fan_id = normalize_uuid(user_id)
        tier = TierService.get_tier(tier_id, active_only=True)

        if str(tier["creator_id"]) == fan_id:
            raise ValidationFailedError("Cannot subscribe to your own character")

        existing = SubscriptionService._active_for_character(fan_id, tier["character_id"])
        if existing and existing.get("tier_id") == tier_id:
            raise ValidationFailedError("Already subscribed to this tier")

        payout_settings = StripeConnectService.get_payout_settings(tier["creator_id"]) or {}
        destination = payout_settings.get("stripe_connect_account_id")
        if not destination:
            raise ConnectAccountRequiredError(
                "Creator has not set up payment receiving. Subscriptions are not available."
            )

        customer_id = get_or_create_customer(fan_id, email)
        price_id = SubscriptionService.ensure_tier_price(tier)

        subscription = as_dict(stripe.Subscription.create(
            customer=customer_id,
            items=[{"price": price_id}],
            application_fee_percent=PLATFORM_FEE_PERCENTAGE,
            transfer_data={"destination": destination},
            metadata={
                "type": "fan_subscription",
                "tier_id": tier_id,
                "character_id": tier["character_id"],
                "creator_id": tier["creator_id"],
                "fan_id": fan_id,
            },
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
        ))

        invoice = subscription.get("latest_invoice") or {}
        payment_intent = invoice.get("payment_intent") or {}

        logger.info(f"Created Stripe subscription {subscription['id']} for tier {tier_id}")
        return {
            "requiresPayment": True,
            "subscriptionId": subscription["id"],
            "clientSecret": payment_intent.get("client_secret"),
            "status": subscription.get("status"),
            "tierId": tier_id,
            "tierName": tier["name"],
            "amount": tier["price_monthly"],
        }

    @staticmethod
    def update(
        subscription_id: str,
        user_id: UUID | str,
        action: SubscriptionAction,
    ) -> dict[str, Any]:
        """
        Cancel at period end, or undo a scheduled cancellation.

        Stripe failures are logged; the local flag is still updated.
        """
        subscription = SupabaseClient.fetch_one(
            "fan_subscriptions", id=subscription_id, fan_id=normalize_uuid(user_id)
        )
        if not subscription:
            raise SubscriptionNotFoundError(subscription_id)

        cancel = action == SubscriptionAction.CANCEL
        if not cancel and not subscription.get("cancel_at_period_end"):
            raise ValidationFailedError("Subscription is not scheduled for cancellation")

        stripe_subscription_id = subscription.get("stripe_subscription_id")
        if stripe_subscription_id:
            try:
                require_stripe().Subscription.modify(
                    stripe_subscription_id, cancel_at_period_end=cancel
                )
            except Exception as e:
                logger.warning(f"Stripe update failed for {stripe_subscription_id}: {e}")

        client = SupabaseClient.get_client()
        response = (
            client.table("fan_subscriptions")
            .update({"cancel_at_period_end": cancel, "updated_at": utc_now_iso()})
            .eq("id", subscription_id)
            .execute()
        )
        updated = response.data[0] if response.data else {**subscription, "cancel_at_period_end": cancel}

        if cancel:
            InteractionService.record(user_id, subscription["character_id"], "subscription_cancelled")
            message = "Subscription will be cancelled at the end of the billing period"
        else:
            message = "Subscription reactivated successfully"

        return {"success": True, "subscription": updated, "message": message}

    @staticmethod
    def confirm(user_id: UUID | str, stripe_subscription_id: str) -> dict[str, Any]:
        """
        Record a paid Stripe subscription.

        An existing active subscription on the same character is moved to
        the new tier; otherwise a new row is inserted. Calling again for the
        same Stripe subscription returns the stored row.

        Raises:
            ValidationFailedError: Stripe subscription not active
            ForbiddenError: Subscription belongs to another fan
        """
        stripe = require_stripe()
        fan_id = normalize_uuid(user_id)
        stripe_subscription = as_dict(stripe.Subscription.retrieve(stripe_subscription_id))

        if stripe_subscription["status"] not in ACTIVE_STRIPE_STATUSES:
            raise ValidationFailedError(
                "Subscription is not active",
                details={"status": stripe_subscription["status"]},
            )

        metadata = stripe_subscription.get("metadata") or {}
        if metadata.get("fan_id") != fan_id:
            raise ForbiddenError("Subscription does not belong to this user")

        existing = SupabaseClient.fetch_one(
            "fan_subscriptions", stripe_subscription_id=stripe_subscription_id
        )
        if existing:
            return {
                "success": True,
                "subscription": existing,
                "alreadyProcessed": True,
                "message": "Subscription already confirmed",
            }

        tier_id = metadata.get("tier_id")
        character_id = metadata.get("character_id")
        creator_id = metadata.get("creator_id")
        tier = TierService.get_tier(tier_id)

        items = (stripe_subscription.get("items") or {}).get("data") or []
        item = items[0] if items else {}
        period = {
            "current_period_start": iso_from_timestamp(item.get("current_period_start"), fallback_days=0),
            "current_period_end": iso_from_timestamp(item.get("current_period_end"), fallback_days=30),
        }

        previous = SubscriptionService._active_for_character(fan_id, character_id)
        client = SupabaseClient.get_client()

        try:
            if previous:
                response = (
                    client.table("fan_subscriptions")
                    .update({
                        "tier_id": tier_id,
                        "stripe_subscription_id": stripe_subscription_id,
                        "cancel_at_period_end": bool(stripe_subscription.get("cancel_at_period_end")),
                        "updated_at": utc_now_iso(),
                        **period,
                    })
                    .eq("id", previous["id"])
                    .execute()
                )
            else:
                response = (
                    client.table("fan_subscriptions")
                    .insert({
                        "fan_id": fan_id,
                        "tier_id": tier_id,
                        "character_id": character_id,
                        "creator_id": creator_id,
                        "stripe_subscription_id": stripe_subscription_id,
                        "status": FanSubscriptionStatus.ACTIVE.value,
                        **period,
                    })
                    .execute()
                )
            subscription = response.data[0]

        except Exception as e:
            logger.error(f"Failed to record fan subscription {stripe_subscription_id}: {e}")
            raise

        if previous and previous.get("tier_id") != tier_id:
            TierService.adjust_subscriber_count(previous["tier_id"], -1)
            TierService.adjust_subscriber_count(tier_id, 1)
        elif not previous:
            TierService.adjust_subscriber_count(tier_id, 1)

        InteractionService.record(
            fan_id,
            character_id,
            "subscription_upgraded" if previous else "subscription_started",
            {"tier_id": tier_id, "tier_name": tier["name"]},
        )

        price = float(tier["price_monthly"])
        EarningsService.record(
            creator_id, character_id, EarningSource.SUBSCRIPTION, subscription["id"],
            price, EarningStatus.AVAILABLE,
        )
        EarningsService.bump_daily_stats(
            character_id, subscription=price, new_subscribers=0 if previous else 1
        )

        logger.info(f"Confirmed fan subscription {subscription['id']} on tier {tier_id}")
        return {
            "success": True,
            "subscription": subscription,
            "alreadyProcessed": False,
            "message": f"Successfully subscribed to {tier['name']}!",
        }
