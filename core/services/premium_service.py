# =============================================================================
# core/services/premium_service.py - Creator Premium Subscriptions
# =============================================================================
# Premium unlocks monetization (tiers, tips, analytics, payouts) and the
# larger character limit. A user has at most one active row in
# user_premium_subscriptions.
#
# Activation paths:
# - Stripe configured: a Checkout Session is created and the webhook
#   activates the subscription once payment completes
# - Stripe not configured (or admin bypass): activated immediately
# =============================================================================

import logging
import math
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import (
    PremiumRequiredError,
    SubscriptionNotFoundError,
    ValidationFailedError,
)
from core.constants import DEFAULT_PREMIUM_PLAN
from core.models.monetization import (
    BillingCycle,
    CoinTransactionType,
    PremiumStatus,
    SubscriptionAction,
)
from core.services.coin_service import CoinService
from lib.stripe_client import get_or_create_customer, require_stripe, to_cents
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, parse_iso, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

PERIOD_DAYS = {
    BillingCycle.MONTHLY: 30,
    BillingCycle.YEARLY: 365,
}


class PremiumService:
    """
    Service for premium plans and subscriptions.
    """

    # -------------------------------------------------------------------------
    # Premium Gate
    # -------------------------------------------------------------------------

    @staticmethod
    def is_premium(user_id: UUID | str) -> bool:
        """
        Check premium status with the user_has_premium database function.

        Errors count as "not premium" so a broken check never grants access.
        """
        try:
            data = SupabaseClient.rpc("user_has_premium", {"check_user_id": normalize_uuid(user_id)})
            return bool(data)
        except Exception as e:
            logger.warning(f"Premium check failed for {user_id}: {e}")
            return False

    @staticmethod
    def require_premium(user_id: UUID | str, feature: str) -> None:
        """
        Raises:
            PremiumRequiredError: If the user is not premium
        """
        if not PremiumService.is_premium(user_id):
            raise PremiumRequiredError(feature)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @staticmethod
    def get_active_subscription(user_id: UUID | str) -> dict[str, Any] | None:
        """The user's active subscription joined with its plan, or None."""
        client = SupabaseClient.get_client()

        response = (
            client.table("user_premium_subscriptions")
            .select("*, premium_plans (*)")
            .eq("user_id", normalize_uuid(user_id))
            .eq("status", PremiumStatus.ACTIVE.value)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rows[0] if rows else None

    @staticmethod
    def get_status(user_id: UUID | str) -> dict[str, Any]:
        """
        Premium status for the account page.

        Returns:
            Dict with isPremium, subscription, plan, daysRemaining
        """
        is_premium = PremiumService.is_premium(user_id)

        try:
            subscription = PremiumService.get_active_subscription(user_id)
        except Exception as e:
            logger.warning(f"Failed to load premium subscription for {user_id}: {e}")
            subscription = None

        days_remaining = 0
        if subscription:
            period_end = parse_iso(subscription.get("current_period_end"))
            if period_end:
                seconds = (period_end - utc_now()).total_seconds()
                days_remaining = max(0, math.ceil(seconds / 86400))

        return {
            "isPremium": is_premium,
            "subscription": subscription,
            "plan": subscription.get("premium_plans") if subscription else None,
            "daysRemaining": days_remaining,
        }

    @staticmethod
    def list_plans() -> list[dict[str, Any]]:
        """Active plans, cheapest first."""
        client = SupabaseClient.get_client()

        response = (
            client.table("premium_plans")
            .select("*")
            .eq("is_active", True)
            .order("price_monthly")
            .execute()
        )
        return response.data or []

    @staticmethod
    def resolve_plan(plan_id: str | None = None, plan_name: str | None = None) -> dict[str, Any]:
        """
        Find the plan to subscribe to.

        Lookup order: by ID, by name, cheapest active plan. When no plan
        exists at all the default plan is created.
        """
        plan = None
        if plan_id:
            plan = SupabaseClient.fetch_one("premium_plans", id=plan_id, is_active=True)
        if plan is None and plan_name:
            plan = SupabaseClient.fetch_one("premium_plans", name=plan_name, is_active=True)
        if plan is None:
            plans = PremiumService.list_plans()
            plan = plans[0] if plans else None
        if plan is not None:
            return plan

        client = SupabaseClient.get_client()
        try:
            response = client.table("premium_plans").insert(dict(DEFAULT_PREMIUM_PLAN)).execute()
            logger.info("Created default premium plan")
            return response.data[0]

        except Exception as e:
            logger.error(f"Failed to create default premium plan: {e}")
            raise ValidationFailedError("No premium plans available")

    # -------------------------------------------------------------------------
    # Subscribe
    # -------------------------------------------------------------------------

    @staticmethod
    def ensure_stripe_prices(plan: dict[str, Any]) -> dict[str, str | None]:
        """
        Create the Stripe product and recurring prices for a plan if missing.

        IDs are stored back on the plan row so they are created once.

        Returns:
            Dict with monthly and yearly price IDs (yearly may be None)
        """
        stripe = require_stripe()
        client = SupabaseClient.get_client()

        product_id = plan.get("stripe_product_id")
        monthly_id = plan.get("stripe_monthly_price_id")
        yearly_id = plan.get("stripe_yearly_price_id")
        updates: dict[str, Any] = {}

        if not product_id:
            product = stripe.Product.create(
                name=plan["display_name"],
                description=plan.get("description") or f"{plan['display_name']} subscription plan",
                metadata={"plan_id": plan["id"], "plan_name": plan["name"]},
            )
            product_id = updates["stripe_product_id"] = product.id

        if not monthly_id:
            price = stripe.Price.create(
                product=product_id,
                unit_amount=to_cents(plan["price_monthly"]),
                currency="usd",
                recurring={"interval": "month"},
                metadata={"plan_id": plan["id"], "billing_cycle": "monthly"},
            )
            monthly_id = updates["stripe_monthly_price_id"] = price.id

        if plan.get("price_yearly") and not yearly_id:
            price = stripe.Price.create(
                product=product_id,
                unit_amount=to_cents(plan["price_yearly"]),
                currency="usd",
                recurring={"interval": "year"},
                metadata={"plan_id": plan["id"], "billing_cycle": "yearly"},
            )
            yearly_id = updates["stripe_yearly_price_id"] = price.id

        if updates:
            client.table("premium_plans").update(updates).eq("id", plan["id"]).execute()
            logger.info(f"Created Stripe catalogue entries for plan {plan['id']}: {list(updates)}")

        return {"monthly": monthly_id, "yearly": yearly_id}

    @staticmethod
    def subscribe(
        user_id: UUID | str,
        email: str | None,
        plan_id: str | None = None,
        plan_name: str | None = None,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
        admin_bypass: bool = False,
    ) -> dict[str, Any]:
        """
        Start a premium subscription.

        Returns:
            {"checkoutUrl", "sessionId"} when paying through Stripe, otherwise
            {"success", "subscription", "message"}

        Raises:
            ValidationFailedError: If the user already has an active subscription
        """
        if PremiumService.get_active_subscription(user_id):
            raise ValidationFailedError("User already has an active subscription")

        plan = PremiumService.resolve_plan(plan_id, plan_name)
        user_id_str = normalize_uuid(user_id)

        if settings.stripe_enabled and not admin_bypass:
            stripe = require_stripe()
            prices = PremiumService.ensure_stripe_prices(plan)
            price_id = prices["monthly"]
            if billing_cycle == BillingCycle.YEARLY and prices["yearly"]:
                price_id = prices["yearly"]

            customer_id = get_or_create_customer(user_id_str, email)
            metadata = {
                "user_id": user_id_str,
                "plan_id": plan["id"],
                "billing_cycle": billing_cycle.value,
            }
            session = stripe.checkout.Session.create(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=f"{settings.app_url}/dashboard/monetization?success=true",
                cancel_url=f"{settings.app_url}/dashboard/monetization/upgrade?canceled=true",
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )
            logger.info(f"Created premium checkout session {session.id} for {user_id_str}")
            return {"checkoutUrl": session.url, "sessionId": session.id}

        subscription = PremiumService.activate(user_id_str, plan, billing_cycle)
        return {
            "success": True,
            "subscription": subscription,
            "message": "Premium subscription activated successfully!",
        }

    @staticmethod
    def activate(
        user_id: UUID | str,
        plan: dict[str, Any],
        billing_cycle: BillingCycle,
        stripe_fields: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Upsert the user's subscription as active and allocate monthly coins.

        Args:
            user_id: Subscriber
            plan: premium_plans row
            billing_cycle: Period length when no Stripe period is given
            stripe_fields: Stripe subscription/customer IDs and period bounds
        """
        now = utc_now()
        row = {
            "user_id": normalize_uuid(user_id),
            "plan_id": plan["id"],
            "status": PremiumStatus.ACTIVE.value,
            "billing_cycle": billing_cycle.value,
            "current_period_start": now.isoformat(),
            "current_period_end": (now + timedelta(days=PERIOD_DAYS[billing_cycle])).isoformat(),
            "cancel_at_period_end": False,
            "updated_at": now.isoformat(),
        }
        if stripe_fields:
            row.update({k: v for k, v in stripe_fields.items() if v is not None})

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("user_premium_subscriptions")
                .upsert(row, on_conflict="user_id")
                .execute()
            )
            subscription = response.data[0] if response.data else row
            logger.info(f"Activated premium plan {plan['id']} for {user_id}")

        except Exception as e:
            logger.error(f"Failed to activate premium subscription: {e}")
            raise

        PremiumService.allocate_monthly_coins(user_id, plan)
        return subscription

    @staticmethod
    def allocate_monthly_coins(
        user_id: UUID | str,
        plan: dict[str, Any],
        reference_id: str | None = None,
    ) -> None:
        """Credit the plan's monthly coins (no-op for plans without coins)."""
        coins = int(plan.get("monthly_coins") or 0)
        if coins <= 0:
            return
        CoinService.credit(
            user_id,
            coins,
            CoinTransactionType.PREMIUM_ALLOCATION,
            description=f"Premium plan monthly allocation - {plan.get('display_name')}",
            reference_type="premium_subscription" if reference_id else None,
            reference_id=reference_id,
        )

    # -------------------------------------------------------------------------
    # Cancel / Reactivate
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_owned(user_id: UUID | str, subscription_id: str | None) -> dict[str, Any]:
        """The caller's subscription by ID, or their active one."""
        if subscription_id:
            subscription = SupabaseClient.fetch_one(
                "user_premium_subscriptions",
                id=subscription_id,
                user_id=normalize_uuid(user_id),
            )
        else:
            subscription = PremiumService.get_active_subscription(user_id)

        if not subscription:
            raise SubscriptionNotFoundError(subscription_id)
        return subscription

    @staticmethod
    def _set_cancel_flag(subscription: dict[str, Any], cancel: bool) -> dict[str, Any]:
        stripe_subscription_id = subscription.get("stripe_subscription_id")
        if stripe_subscription_id and settings.stripe_enabled:
            require_stripe().Subscription.modify(stripe_subscription_id, cancel_at_period_end=cancel)

        client = SupabaseClient.get_client()
        response = (
            client.table("user_premium_subscriptions")
            .update({"cancel_at_period_end": cancel, "updated_at": utc_now_iso()})
            .eq("id", subscription["id"])
            .execute()
        )
        return response.data[0] if response.data else {**subscription, "cancel_at_period_end": cancel}

    @staticmethod
    def update(
        user_id: UUID | str,
        action: SubscriptionAction,
        subscription_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Cancel at period end, or undo a scheduled cancellation.

        Raises:
            SubscriptionNotFoundError: If the caller has no such subscription
            ValidationFailedError: Reactivating a subscription not set to cancel
        """
        subscription = PremiumService._get_owned(user_id, subscription_id)

        if action == SubscriptionAction.CANCEL:
            updated = PremiumService._set_cancel_flag(subscription, True)
            message = "Subscription will be cancelled at the end of the billing period"
        else:
            if not subscription.get("cancel_at_period_end"):
                raise ValidationFailedError("Subscription is not scheduled for cancellation")
            updated = PremiumService._set_cancel_flag(subscription, False)
            message = "Subscription reactivated successfully"

        logger.info(f"Premium subscription {subscription['id']}: {action.value}")
        return {"success": True, "subscription": updated, "message": message}

    @staticmethod
    def cancel(
        user_id: UUID | str,
        immediate: bool = False,
        subscription_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Cancel a subscription immediately or at period end.
        """
        subscription = PremiumService._get_owned(user_id, subscription_id)

        if not immediate:
            updated = PremiumService._set_cancel_flag(subscription, True)
            return {
                "success": True,
                "subscription": updated,
                "message": "Subscription will be cancelled at the end of the billing period",
            }

        stripe_subscription_id = subscription.get("stripe_subscription_id")
        if stripe_subscription_id and settings.stripe_enabled:
            require_stripe().Subscription.cancel(stripe_subscription_id)

        client = SupabaseClient.get_client()
        try:
            (
                client.table("user_premium_subscriptions")
                .update({
                    "status": PremiumStatus.CANCELLED.value,
                    "cancelled_at": utc_now_iso(),
                    "updated_at": utc_now_iso(),
                })
                .eq("id", subscription["id"])
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to cancel premium subscription {subscription['id']}: {e}")
            raise

        logger.info(f"Premium subscription {subscription['id']} cancelled immediately")
        return {"success": True, "message": "Subscription cancelled immediately"}
