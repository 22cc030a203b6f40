# =============================================================================
# core/services/webhook_service.py - Stripe Webhook Dispatch
# =============================================================================
# Reconciles asynchronous Stripe events with the database:
#
# Premium subscriptions:
#   checkout.session.completed       -> activate + monthly coins
#   customer.subscription.created    -> status / period sync
#   customer.subscription.updated    -> status / period sync
#   customer.subscription.deleted    -> cancelled
#   invoice.paid                     -> renewal coins
#   invoice.payment_failed           -> past_due
#
# Connect:
#   account.updated                  -> payout settings flags
#   transfer.created                 -> payout processing
#   transfer.reversed                -> payout failed
#
# Tips:
#   payment_intent.succeeded (type=tip) -> tip + earnings, once
#
# Handlers raise on database failures so Stripe retries the event.
# =============================================================================

import logging
from typing import Any, Callable

from lib.stripe_client import as_dict, require_stripe
from lib.supabase_client import SupabaseClient
from lib.utils import iso_from_timestamp, utc_now_iso
from core.models.monetization import BillingCycle, PremiumStatus
from core.services.premium_service import PremiumService
from core.services.stripe_connect_service import StripeConnectService
from core.services.tip_service import TipService

logger = logging.getLogger(__name__)

STRIPE_STATUS_MAP = {
    "canceled": PremiumStatus.CANCELLED,
    "past_due": PremiumStatus.PAST_DUE,
    "unpaid": PremiumStatus.EXPIRED,
    "incomplete_expired": PremiumStatus.EXPIRED,
}


def map_subscription_status(stripe_status: str | None) -> PremiumStatus:
    """Stripe subscription status -> premium subscription status."""
    return STRIPE_STATUS_MAP.get(stripe_status or "", PremiumStatus.ACTIVE)


def _first_item(subscription: Any) -> dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _invoice_subscription_id(invoice: Any) -> str | None:
    """
    Subscription ID of an invoice.

    Newer API versions nest it under parent.subscription_details; older
    ones put it on the invoice itself.
    """
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    subscription = details.get("subscription") or invoice.get("subscription")
    if isinstance(subscription, str) or subscription is None:
        return subscription
    return subscription.get("id")


def _premium_table():
    return SupabaseClient.get_client().table("user_premium_subscriptions")


class WebhookService:
    """Dispatches verified Stripe events to their handlers."""

    @staticmethod
    def handle_event(event: Any) -> bool:
        """
        Run the handler for an event.

        Returns:
            True if the event type is handled, False if ignored
        """
        event = as_dict(event)
        event_type = event["type"]
        handler = WebhookService.handlers().get(event_type)
        logger.info(f"Stripe webhook received: {event_type}")

        if not handler:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return False

        handler(event["data"]["object"])
        return True

    @staticmethod
    def handlers() -> dict[str, Callable[[Any], None]]:
        return {
            "checkout.session.completed": WebhookService.on_checkout_completed,
            "customer.subscription.created": WebhookService.on_subscription_updated,
            "customer.subscription.updated": WebhookService.on_subscription_updated,
            "customer.subscription.deleted": WebhookService.on_subscription_deleted,
            "invoice.paid": WebhookService.on_invoice_paid,
            "invoice.payment_failed": WebhookService.on_invoice_payment_failed,
            "account.updated": WebhookService.on_account_updated,
            "transfer.created": WebhookService.on_transfer_created,
            "transfer.reversed": WebhookService.on_transfer_reversed,
            "payment_intent.succeeded": WebhookService.on_payment_intent_succeeded,
        }

    # -------------------------------------------------------------------------
    # Premium Subscriptions
    # -------------------------------------------------------------------------

    @staticmethod
    def on_checkout_completed(session: Any) -> None:
        if session.get("mode") != "subscription" or not session.get("subscription"):
            return

        subscription = as_dict(require_stripe().Subscription.retrieve(session["subscription"]))
        metadata = subscription.get("metadata") or {}
        user_id = metadata.get("user_id")
        plan_id = metadata.get("plan_id")

        if not user_id or not plan_id:
            logger.error(f"Subscription {subscription['id']} is missing user_id or plan_id metadata")
            return

        plan = SupabaseClient.fetch_one("premium_plans", id=plan_id)
        if not plan:
            logger.error(f"Checkout completed for unknown plan {plan_id}")
            return

        item = _first_item(subscription)
        PremiumService.activate(
            user_id,
            plan,
            BillingCycle(metadata.get("billing_cycle") or BillingCycle.MONTHLY.value),
            stripe_fields={
                "stripe_subscription_id": subscription["id"],
                "stripe_customer_id": subscription.get("customer"),
                "current_period_start": iso_from_timestamp(item.get("current_period_start")),
                "current_period_end": iso_from_timestamp(item.get("current_period_end")),
                "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
            },
        )
        logger.info(f"Premium subscription created for user {user_id}")

    @staticmethod
    def on_subscription_updated(subscription: Any) -> None:
        existing = SupabaseClient.fetch_one(
            "user_premium_subscriptions",
            columns="id",
            stripe_subscription_id=subscription["id"],
        )
        if not existing:
            # Fan subscriptions and checkouts not yet completed land here
            logger.info(f"No premium subscription for {subscription['id']}")
            return

        status = map_subscription_status(subscription.get("status"))
        item = _first_item(subscription)
        updates = {
            "status": status.value,
            "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
            "updated_at": utc_now_iso(),
        }
        start = iso_from_timestamp(item.get("current_period_start"))
        end = iso_from_timestamp(item.get("current_period_end"))
        if start:
            updates["current_period_start"] = start
        if end:
            updates["current_period_end"] = end

        _premium_table().update(updates).eq("stripe_subscription_id", subscription["id"]).execute()
        logger.info(f"Subscription {subscription['id']} updated to status: {status.value}")

    @staticmethod
    def on_subscription_deleted(subscription: Any) -> None:
        (
            _premium_table()
            .update({
                "status": PremiumStatus.CANCELLED.value,
                "cancelled_at": utc_now_iso(),
                "updated_at": utc_now_iso(),
            })
            .eq("stripe_subscription_id", subscription["id"])
            .execute()
        )
        logger.info(f"Subscription {subscription['id']} cancelled")

    @staticmethod
    def on_invoice_paid(invoice: Any) -> None:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return

        existing = SupabaseClient.fetch_one(
            "user_premium_subscriptions",
            columns="id, user_id, plan_id",
            stripe_subscription_id=subscription_id,
        )
        if not existing:
            return

        # The first invoice's coins were allocated on checkout completion
        if invoice.get("billing_reason") == "subscription_create":
            return

        plan = SupabaseClient.fetch_one("premium_plans", id=existing["plan_id"])
        if plan:
            PremiumService.allocate_monthly_coins(existing["user_id"], plan, reference_id=existing["id"])
            logger.info(f"Invoice paid, coins allocated for user {existing['user_id']}")

    @staticmethod
    def on_invoice_payment_failed(invoice: Any) -> None:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return

        try:
            (
                _premium_table()
                .update({"status": PremiumStatus.PAST_DUE.value, "updated_at": utc_now_iso()})
                .eq("stripe_subscription_id", subscription_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to mark {subscription_id} past_due: {e}")
            raise
        logger.warning(f"Invoice payment failed for subscription {subscription_id}")

    # -------------------------------------------------------------------------
    # Connect
    # -------------------------------------------------------------------------

    @staticmethod
    def on_account_updated(account: Any) -> None:
        StripeConnectService.apply_account_update(account)

    @staticmethod
    def on_transfer_created(transfer: Any) -> None:
        StripeConnectService.apply_transfer_event(transfer)

    @staticmethod
    def on_transfer_reversed(transfer: Any) -> None:
        StripeConnectService.apply_transfer_event(transfer, reversed_=True)

    # -------------------------------------------------------------------------
    # Tips
    # -------------------------------------------------------------------------

    @staticmethod
    def on_payment_intent_succeeded(payment_intent: Any) -> None:
        metadata = payment_intent.get("metadata") or {}
        if metadata.get("type") != "tip":
            return

        tip, created = TipService.record_card_tip(payment_intent)
        if not created:
            logger.info(f"Tip already recorded for payment intent {payment_intent['id']}")
