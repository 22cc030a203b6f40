# =============================================================================
# lib/stripe_client.py - Stripe Helpers
# =============================================================================
# Shared Stripe plumbing for premium plans, tips, fan subscriptions and
# Connect payouts:
# - API key configuration and the "is Stripe configured" gate
# - Dollar <-> cent conversion (Stripe amounts are integer cents)
# - Customer lookup/creation cached on profiles.stripe_customer_id
# - Webhook signature verification
# - Plain-dict conversion of Stripe objects
# =============================================================================

import logging
from typing import Any

import stripe

from app.config import settings
from app.exceptions import StripeNotConfiguredError, WebhookSignatureError
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def require_stripe():
    """
    Return the configured stripe module.

    Raises:
        StripeNotConfiguredError: If STRIPE_SECRET_KEY is not set
    """
    if not settings.stripe_enabled:
        raise StripeNotConfiguredError()
    stripe.api_key = settings.STRIPE_SECRET_KEY
    return stripe


def as_dict(obj: Any) -> dict[str, Any]:
    """
    Plain-dict copy of a Stripe object.

    StripeObject is not a dict subclass, so services convert retrieved or
    created objects once and read them with ordinary dict access.
    """
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def to_cents(amount: float) -> int:
    """Dollars to integer cents (rounded, not truncated)."""
    return int(round(float(amount) * 100))


def from_cents(cents: int) -> float:
    return round(cents / 100, 2)


def get_or_create_customer(user_id: str, email: str | None = None) -> str:
    """
    Get the Stripe customer ID for a user, creating the customer if needed.

    The ID is stored on the user's profile so later payments reuse it.
    """
    client = require_stripe()
    profile = SupabaseClient.fetch_profile(user_id) or {}

    customer_id = profile.get("stripe_customer_id")
    if customer_id:
        return customer_id

    customer = client.Customer.create(
        email=email or profile.get("email"),
        name=profile.get("full_name"),
        metadata={"user_id": str(user_id)},
    )

    try:
        (
            SupabaseClient.get_client()
            .table("profiles")
            .update({"stripe_customer_id": customer.id})
            .eq("id", str(user_id))
            .execute()
        )
    except Exception as e:
        logger.warning(f"Could not store Stripe customer for {user_id}: {e}")

    logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
    return customer.id


def construct_event(payload: bytes, signature: str | None) -> Any:
    """
    Verify a webhook payload and return the Stripe event.

    Raises:
        WebhookSignatureError: If the signature is missing or invalid
    """
    if not signature:
        raise WebhookSignatureError("No signature")

    client = require_stripe()
    try:
        return client.Webhook.construct_event(
            payload, signature, settings.STRIPE_WEBHOOK_SECRET
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise WebhookSignatureError()
