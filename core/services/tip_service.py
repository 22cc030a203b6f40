# =============================================================================
# core/services/tip_service.py - Tips
# =============================================================================
# A fan tips a monetized character's creator, paying either with coins or by
# card through a Stripe PaymentIntent that transfers to the creator's
# Connect account.
#
# Payment paths:
# - coins: charged at COINS_PER_DOLLAR, tip recorded immediately, earnings
#   are "pending"
# - card: a PaymentIntent is returned to the browser; the tip is recorded
#   by POST /tips/confirm or the payment_intent.succeeded webhook,
#   whichever arrives first, with earnings "available"
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.stripe_client import as_dict, from_cents, get_or_create_customer, require_stripe, to_cents
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, round_money
from core.constants import COINS_PER_DOLLAR, PLATFORM_FEE_PERCENTAGE
from core.models.monetization import (
    CoinTransactionType,
    EarningSource,
    EarningStatus,
    PaymentMethod,
    TipCreateRequest,
    TipDirection,
    TipStatus,
)
from core.services.coin_service import CoinService
from core.services.earnings_service import EarningsService
from core.services.interaction_service import InteractionService
from core.services.premium_service import PremiumService
from core.services.stripe_connect_service import StripeConnectService
from app.exceptions import (
    CharacterNotFoundError,
    ConnectAccountRequiredError,
    TipNotAllowedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

ANONYMOUS_TIPPER = "anonymous"


class TipService:
    """Service for sending, confirming and listing tips."""

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    @staticmethod
    def list_tips(
        user_id: UUID | str,
        direction: TipDirection = TipDirection.RECEIVED,
        character_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Completed tips the caller received (as creator) or sent (as fan).

        Returns:
            Dict with tips, total (sum of amounts on this page) and count
        """
        client = SupabaseClient.get_client()
        column = "creator_id" if direction == TipDirection.RECEIVED else "fan_id"

        query = (
            client.table("tips")
            .select("*, characters (id, name, thumbnail)", count="exact")
            .eq(column, normalize_uuid(user_id))
            .eq("status", TipStatus.COMPLETED.value)
        )
        if character_id:
            query = query.eq("character_id", character_id)

        response = (
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        tips = response.data or []
        total = round_money(sum(float(tip.get("amount") or 0) for tip in tips))

        return {"tips": tips, "total": total, "count": response.count or 0}

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate(
        character_id: str,
        tipper_id: UUID | str,
        amount: float,
    ) -> dict[str, Any]:
        """
        Check the creator accepts this tip.

        Returns:
            The character row

        Raises:
            CharacterNotFoundError: Unknown character
            TipNotAllowedError: Creator not premium, tips disabled, amount
                under the minimum, or tipping yourself
        """
        character = SupabaseClient.fetch_character(character_id, columns="id, name, user_id")
        if not character:
            raise CharacterNotFoundError(character_id)

        creator_id = str(character["user_id"])
        if not PremiumService.is_premium(creator_id):
            raise TipNotAllowedError("Creator does not have monetization enabled")

        monetization = SupabaseClient.fetch_one(
            "character_monetization",
            columns="tips_enabled, min_tip_amount",
            character_id=character_id,
        ) or {}
        if not monetization.get("tips_enabled"):
            raise TipNotAllowedError("Tips are not enabled for this character")

        min_amount = float(monetization.get("min_tip_amount") or 1)
        if amount < min_amount:
            raise TipNotAllowedError(
                f"Minimum tip amount is ${min_amount:.2f}",
                details={"min_tip_amount": min_amount},
            )

        if creator_id == normalize_uuid(tipper_id):
            raise TipNotAllowedError("You cannot tip your own character")

        return character

    # -------------------------------------------------------------------------
    # Send
    # -------------------------------------------------------------------------

    @staticmethod
    def send(
        user_id: UUID | str,
        request: TipCreateRequest,
        email: str | None = None,
    ) -> dict[str, Any]:
        """Validate and send a tip with the requested payment method."""
        amount = round_money(request.amount)
        character = TipService._validate(request.character_id, user_id, amount)

        if request.payment_method == PaymentMethod.CARD:
            return TipService._create_payment_intent(user_id, request, character, amount, email)
        return TipService._send_with_coins(user_id, request, character, amount)

    @staticmethod
    def _send_with_coins(
        user_id: UUID | str,
        request: TipCreateRequest,
        character: dict[str, Any],
        amount: float,
    ) -> dict[str, Any]:
        coin_cost = int(round(amount * COINS_PER_DOLLAR))
        deduction = CoinService.deduct(
            user_id,
            coin_cost,
            CoinTransactionType.TIP_SENT,
            reference_type="tip",
            description=f"Tip to {character['name']}",
        )

        creator_id = str(character["user_id"])
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("tips")
                .insert({
                    "fan_id": None if request.is_anonymous else normalize_uuid(user_id),
                    "creator_id": creator_id,
                    "character_id": character["id"],
                    "amount": amount,
                    "coin_amount": coin_cost,
                    "message": request.message,
                    "is_anonymous": request.is_anonymous,
                    "coin_transaction_id": deduction.get("transaction_id"),
                    "status": TipStatus.COMPLETED.value,
                })
                .execute()
            )
            tip = response.data[0]

        except Exception as e:
            logger.error(f"Failed to record coin tip after deduction for {user_id}: {e}")
            raise

        InteractionService.record(user_id, character["id"], "tip_sent", {
            "amount": amount,
            "is_anonymous": request.is_anonymous,
            "use_coins": True,
        })
        EarningsService.record(
            creator_id, character["id"], EarningSource.TIP, tip["id"], amount, EarningStatus.PENDING
        )
        EarningsService.bump_daily_stats(character["id"], tip=amount)

        logger.info(f"Coin tip {tip['id']}: ${amount:.2f} to {character['id']}")
        return {
            "success": True,
            "tip": tip,
            "newBalance": deduction.get("new_balance"),
            "message": f"Successfully sent ${amount:.2f} tip to {character['name']}!",
        }

    @staticmethod
    def _create_payment_intent(
        user_id: UUID | str,
        request: TipCreateRequest,
        character: dict[str, Any],
        amount: float,
        email: str | None,
    ) -> dict[str, Any]:
        stripe = require_stripe()
        creator_id = str(character["user_id"])

        payout_settings = StripeConnectService.get_payout_settings(creator_id) or {}
        destination = payout_settings.get("stripe_connect_account_id")
        if not destination:
            raise ConnectAccountRequiredError(
                "Creator has not set up payment receiving. Please use coins instead."
            )

        customer_id = get_or_create_customer(normalize_uuid(user_id), email)
        amount_cents = to_cents(amount)

        intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency="usd",
            customer=customer_id,
            application_fee_amount=int(round(amount_cents * PLATFORM_FEE_PERCENTAGE / 100)),
            transfer_data={"destination": destination},
            metadata={
                "type": "tip",
                "character_id": character["id"],
                "creator_id": creator_id,
                "tipper_id": ANONYMOUS_TIPPER if request.is_anonymous else normalize_uuid(user_id),
                "is_anonymous": str(request.is_anonymous).lower(),
                "message": request.message or "",
            },
            description=f"Tip to {character['name']}",
            automatic_payment_methods={"enabled": True},
        )

        logger.info(f"Created tip PaymentIntent {intent.id} for {character['id']}")
        return {
            "requiresPayment": True,
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": amount,
            "characterName": character["name"],
        }

    # -------------------------------------------------------------------------
    # Card Confirmation
    # -------------------------------------------------------------------------

    @staticmethod
    def record_card_tip(payment_intent: Any) -> tuple[dict[str, Any], bool]:
        """
        Record a succeeded tip PaymentIntent exactly once.

        Used by both the confirm endpoint and the webhook. The tip row is
        keyed by stripe_payment_intent_id.

        Returns:
            Tuple of (tip, created); created is False when already recorded
        """
        payment_intent = as_dict(payment_intent)
        existing = SupabaseClient.fetch_one(
            "tips", stripe_payment_intent_id=payment_intent["id"]
        )
        if existing:
            return existing, False

        metadata = dict(payment_intent.get("metadata") or {})
        character_id = metadata.get("character_id")
        creator_id = metadata.get("creator_id")
        tipper_id = metadata.get("tipper_id")
        is_anonymous = metadata.get("is_anonymous") == "true" or tipper_id == ANONYMOUS_TIPPER
        fan_id = None if is_anonymous or tipper_id == ANONYMOUS_TIPPER else tipper_id
        amount = from_cents(payment_intent["amount"])

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("tips")
                .insert({
                    "fan_id": fan_id,
                    "creator_id": creator_id,
                    "character_id": character_id,
                    "amount": amount,
                    "message": metadata.get("message") or None,
                    "is_anonymous": is_anonymous,
                    "stripe_payment_intent_id": payment_intent["id"],
                    "status": TipStatus.COMPLETED.value,
                })
                .execute()
            )
            tip = response.data[0]

        except Exception as e:
            # Lost a race with the other recorder
            if SupabaseClient.is_unique_violation(e):
                existing = SupabaseClient.fetch_one(
                    "tips", stripe_payment_intent_id=payment_intent["id"]
                )
                if existing:
                    return existing, False
            logger.error(f"Failed to record card tip {payment_intent['id']}: {e}")
            raise

        InteractionService.record(tipper_id if fan_id else None, character_id, "tip_sent", {
            "amount": amount,
            "is_anonymous": is_anonymous,
            "payment_method": "stripe",
        })
        EarningsService.record(
            creator_id, character_id, EarningSource.TIP, tip["id"], amount, EarningStatus.AVAILABLE
        )
        EarningsService.bump_daily_stats(character_id, tip=amount)

        logger.info(f"Card tip {tip['id']} recorded from PaymentIntent {payment_intent['id']}")
        return tip, True

    @staticmethod
    def confirm(
        user_id: UUID | str,
        payment_intent_id: str,
        character_id: str,
    ) -> dict[str, Any]:
        """
        Record a card tip after the browser confirmed the PaymentIntent.

        Raises:
            ValidationFailedError: Payment not succeeded, or for another character
        """
        stripe = require_stripe()
        payment_intent = as_dict(stripe.PaymentIntent.retrieve(payment_intent_id))

        if payment_intent["status"] != "succeeded":
            raise ValidationFailedError(
                "Payment has not been completed",
                details={"status": payment_intent["status"]},
            )

        metadata = payment_intent.get("metadata") or {}
        if metadata.get("type") != "tip" or metadata.get("character_id") != character_id:
            raise ValidationFailedError("Payment does not match this character")

        tipper_id = metadata.get("tipper_id")
        if tipper_id not in (ANONYMOUS_TIPPER, normalize_uuid(user_id)):
            raise ValidationFailedError("Payment does not belong to this user")

        tip, created = TipService.record_card_tip(payment_intent)
        character = SupabaseClient.fetch_character(character_id, columns="name") or {}
        amount = float(tip.get("amount") or 0)

        return {
            "success": True,
            "tip": tip,
            "alreadyProcessed": not created,
            "message": f"Successfully sent ${amount:.2f} tip to {character.get('name', 'creator')}!",
        }
