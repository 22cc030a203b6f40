# =============================================================================
# core/services/stripe_connect_service.py - Creator Payouts (Stripe Connect)
# =============================================================================
# Creators receive money through Stripe Express accounts:
# - Onboarding creates the account and returns a hosted onboarding link
# - Account status (charges/payouts enabled) is synced into
#   creator_payout_settings, from GET /account and the account.updated webhook
# - Payouts are requested against the "available" earnings balance; the
#   create_payout_request RPC validates and inserts the request, then a
#   Stripe transfer moves the net amount to the creator's account
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import (
    ConnectAccountRequiredError,
    PayoutError,
    ResourceNotFoundError,
)
from lib.stripe_client import as_dict, require_stripe, to_cents
from lib.supabase_client import SupabaseClient
from lib.utils import first_row, normalize_uuid, round_money, utc_now_iso
from core.constants import MINIMUM_PAYOUT_AMOUNT, PLATFORM_FEE_PERCENTAGE
from core.models.monetization import PayoutStatus
from core.services.earnings_service import EarningsService
from core.services.premium_service import PremiumService

logger = logging.getLogger(__name__)

EMPTY_BALANCE = {
    "total_gross": 0,
    "total_fees": 0,
    "total_net": 0,
    "pending_amount": 0,
    "available_amount": 0,
    "paid_out_amount": 0,
    "pending_payout_amount": 0,
}


def _as_float(value: Any) -> float:
    return float(value or 0)


class StripeConnectService:
    """Service for Connect onboarding, account status and payouts."""

    # -------------------------------------------------------------------------
    # Payout Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def get_payout_settings(creator_id: UUID | str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(
            "creator_payout_settings", creator_id=normalize_uuid(creator_id)
        )

    @staticmethod
    def _update_settings(creator_id: str, updates: dict[str, Any]) -> None:
        client = SupabaseClient.get_client()
        (
            client.table("creator_payout_settings")
            .update({**updates, "updated_at": utc_now_iso()})
            .eq("creator_id", creator_id)
            .execute()
        )

    @staticmethod
    def _account_flags(account: Any) -> dict[str, Any]:
        """Connect account status as creator_payout_settings columns."""
        account = as_dict(account)
        requirements = account.get("requirements") or {}
        return {
            "stripe_connect_onboarding_complete": bool(account.get("details_submitted")),
            "stripe_connect_details_submitted": bool(account.get("details_submitted")),
            "stripe_connect_charges_enabled": bool(account.get("charges_enabled")),
            "stripe_connect_payouts_enabled": bool(account.get("payouts_enabled")),
            "stripe_connect_requirements": dict(requirements),
        }

    # -------------------------------------------------------------------------
    # Account
    # -------------------------------------------------------------------------

    @staticmethod
    def get_account(creator_id: UUID | str) -> dict[str, Any]:
        """
        Connect account status, refreshed from Stripe.

        If Stripe can't be reached the stored flags are returned with an
        error note instead.
        """
        creator_id = normalize_uuid(creator_id)
        payout_settings = StripeConnectService.get_payout_settings(creator_id) or {}
        account_id = payout_settings.get("stripe_connect_account_id")

        if not account_id:
            return {
                "hasAccount": False,
                "onboardingComplete": False,
                "chargesEnabled": False,
                "payoutsEnabled": False,
                "detailsSubmitted": False,
                "requirements": None,
            }

        try:
            account = as_dict(require_stripe().Account.retrieve(account_id))
            StripeConnectService._update_settings(
                creator_id, StripeConnectService._account_flags(account)
            )

        except Exception as e:
            logger.warning(f"Could not refresh Connect account {account_id}: {e}")
            return {
                "hasAccount": True,
                "accountId": account_id,
                "onboardingComplete": bool(payout_settings.get("stripe_connect_onboarding_complete")),
                "chargesEnabled": bool(payout_settings.get("stripe_connect_charges_enabled")),
                "payoutsEnabled": bool(payout_settings.get("stripe_connect_payouts_enabled")),
                "detailsSubmitted": bool(payout_settings.get("stripe_connect_details_submitted")),
                "requirements": None,
                "error": "Could not fetch latest account status",
            }

        requirements = account.get("requirements") or {}
        payouts = (account.get("settings") or {}).get("payouts") or {}
        return {
            "hasAccount": True,
            "accountId": account["id"],
            "onboardingComplete": bool(account.get("details_submitted")),
            "chargesEnabled": bool(account.get("charges_enabled")),
            "payoutsEnabled": bool(account.get("payouts_enabled")),
            "detailsSubmitted": bool(account.get("details_submitted")),
            "requirements": {
                "currentlyDue": requirements.get("currently_due") or [],
                "eventuallyDue": requirements.get("eventually_due") or [],
                "pastDue": requirements.get("past_due") or [],
                "pendingVerification": requirements.get("pending_verification") or [],
                "disabledReason": requirements.get("disabled_reason"),
            },
            "payoutSchedule": payouts.get("schedule"),
            "defaultCurrency": account.get("default_currency"),
            "country": account.get("country"),
        }

    @staticmethod
    def create_login_link(creator_id: UUID | str) -> dict[str, str]:
        """
        Express dashboard login link.

        Raises:
            ResourceNotFoundError: If the creator has no Connect account
        """
        payout_settings = StripeConnectService.get_payout_settings(creator_id) or {}
        account_id = payout_settings.get("stripe_connect_account_id")
        if not account_id:
            raise ResourceNotFoundError("Stripe Connect account")

        link = require_stripe().Account.create_login_link(account_id)
        return {"url": link.url}

    @staticmethod
    def onboard(
        creator_id: UUID | str,
        email: str | None = None,
        refresh_url: str | None = None,
        return_url: str | None = None,
    ) -> dict[str, str]:
        """
        Create (or reuse) the creator's Express account and return an
        onboarding link.

        Raises:
            PremiumRequiredError: If the creator isn't premium
        """
        stripe = require_stripe()
        creator_id = normalize_uuid(creator_id)
        PremiumService.require_premium(creator_id, "monetization")

        payout_settings = StripeConnectService.get_payout_settings(creator_id) or {}
        account_id = payout_settings.get("stripe_connect_account_id")

        if not account_id:
            profile = SupabaseClient.fetch_profile(creator_id) or {}
            account = stripe.Account.create(
                type="express",
                country="US",
                email=profile.get("email") or email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                business_type="individual",
                metadata={"user_id": creator_id},
                settings={"payouts": {"schedule": {"interval": "manual"}}},
            )
            account_id = account.id

            client = SupabaseClient.get_client()
            try:
                (
                    client.table("creator_payout_settings")
                    .upsert({
                        "creator_id": creator_id,
                        "stripe_connect_account_id": account_id,
                        "stripe_connect_country": "US",
                        "stripe_connect_currency": "usd",
                        "stripe_connect_created_at": utc_now_iso(),
                        "payout_threshold": MINIMUM_PAYOUT_AMOUNT,
                        "updated_at": utc_now_iso(),
                    }, on_conflict="creator_id")
                    .execute()
                )
            except Exception as e:
                logger.error(f"Failed to store Connect account {account_id}: {e}")
                raise

            logger.info(f"Created Connect account {account_id} for creator {creator_id}")

        base_url = settings.app_url
        link = stripe.AccountLink.create(
            account=account_id,
            refresh_url=refresh_url or f"{base_url}/dashboard/monetization/settings?refresh=true",
            return_url=return_url or f"{base_url}/dashboard/monetization/settings?success=true",
            type="account_onboarding",
        )
        return {"url": link.url, "accountId": account_id}

    @staticmethod
    def apply_account_update(account: Any, event_type: str = "account.updated") -> None:
        """
        Sync a Connect account's flags from a webhook and log the event.
        """
        account = as_dict(account)
        account_id = account["id"]
        client = SupabaseClient.get_client()

        payout_settings = SupabaseClient.fetch_one(
            "creator_payout_settings",
            columns="creator_id",
            stripe_connect_account_id=account_id,
        )
        creator_id = payout_settings.get("creator_id") if payout_settings else None

        (
            client.table("creator_payout_settings")
            .update({**StripeConnectService._account_flags(account), "updated_at": utc_now_iso()})
            .eq("stripe_connect_account_id", account_id)
            .execute()
        )

        try:
            client.table("stripe_connect_events").insert({
                "creator_id": creator_id,
                "stripe_account_id": account_id,
                "event_type": event_type,
                "event_data": {
                    "details_submitted": bool(account.get("details_submitted")),
                    "charges_enabled": bool(account.get("charges_enabled")),
                    "payouts_enabled": bool(account.get("payouts_enabled")),
                },
                "processed": True,
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to log Connect event for {account_id}: {e}")

        logger.info(f"Synced Connect account {account_id}")

    # -------------------------------------------------------------------------
    # Payouts
    # -------------------------------------------------------------------------

    @staticmethod
    def get_balance(creator_id: UUID | str) -> dict[str, float]:
        """
        Earnings balance from get_creator_available_balance.

        available excludes amounts already requested in pending payouts.
        """
        try:
            balance = first_row(SupabaseClient.rpc(
                "get_creator_available_balance",
                {"p_creator_id": normalize_uuid(creator_id)},
            )) or EMPTY_BALANCE
        except Exception as e:
            logger.warning(f"Failed to load balance for {creator_id}: {e}")
            balance = EMPTY_BALANCE

        pending_payout = _as_float(balance.get("pending_payout_amount"))
        return {
            "totalGross": round_money(_as_float(balance.get("total_gross"))),
            "totalFees": round_money(_as_float(balance.get("total_fees"))),
            "totalNet": round_money(_as_float(balance.get("total_net"))),
            "pending": round_money(_as_float(balance.get("pending_amount"))),
            "available": round_money(_as_float(balance.get("available_amount")) - pending_payout),
            "paidOut": round_money(_as_float(balance.get("paid_out_amount"))),
            "pendingPayout": round_money(pending_payout),
        }

    @staticmethod
    def get_payout_overview(
        creator_id: UUID | str,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Balance, payout history and payout readiness."""
        creator_id = normalize_uuid(creator_id)
        client = SupabaseClient.get_client()

        response = (
            client.table("payout_requests")
            .select("*", count="exact")
            .eq("creator_id", creator_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        payout_settings = StripeConnectService.get_payout_settings(creator_id) or {}

        return {
            "balance": StripeConnectService.get_balance(creator_id),
            "payouts": response.data or [],
            "totalPayouts": response.count or 0,
            "settings": {
                "minimumPayout": MINIMUM_PAYOUT_AMOUNT,
                "platformFeePercentage": PLATFORM_FEE_PERCENTAGE,
                "payoutsEnabled": bool(payout_settings.get("stripe_connect_payouts_enabled")),
                "hasStripeAccount": bool(payout_settings.get("stripe_connect_account_id")),
                "onboardingComplete": bool(payout_settings.get("stripe_connect_onboarding_complete")),
            },
            "minimumPayout": MINIMUM_PAYOUT_AMOUNT,
        }

    @staticmethod
    def _set_payout_status(payout_id: str, status: PayoutStatus, **fields: Any) -> None:
        client = SupabaseClient.get_client()
        (
            client.table("payout_requests")
            .update({"status": status.value, **fields, "updated_at": utc_now_iso()})
            .eq("id", payout_id)
            .execute()
        )

    @staticmethod
    def request_payout(creator_id: UUID | str, amount: float) -> dict[str, Any]:
        """
        Request a payout and transfer the net amount to the creator.

        Raises:
            PayoutError: Below minimum, RPC refusal, or transfer failure (500)
            ConnectAccountRequiredError: No account or payouts disabled
        """
        stripe = require_stripe()
        creator_id = normalize_uuid(creator_id)
        amount = round_money(amount)

        if amount < MINIMUM_PAYOUT_AMOUNT:
            raise PayoutError(f"Minimum payout amount is ${MINIMUM_PAYOUT_AMOUNT:.2f}")

        payout_settings = StripeConnectService.get_payout_settings(creator_id)
        if not payout_settings or not payout_settings.get("stripe_connect_account_id"):
            raise ConnectAccountRequiredError(
                "Stripe Connect account not set up. Please complete onboarding."
            )
        if not payout_settings.get("stripe_connect_payouts_enabled"):
            raise ConnectAccountRequiredError(
                "Payouts are not enabled on your Stripe account. Please complete account verification."
            )

        result = first_row(SupabaseClient.rpc("create_payout_request", {
            "p_creator_id": creator_id,
            "p_amount": amount,
        }))
        if not result or not result.get("success"):
            message = (result or {}).get("error_message") or "Failed to create payout request"
            raise PayoutError(message)

        payout_id = result["payout_request_id"]
        fee, net = EarningsService.split(amount)

        try:
            transfer = stripe.Transfer.create(
                amount=to_cents(net),
                currency="usd",
                destination=payout_settings["stripe_connect_account_id"],
                metadata={
                    "payout_request_id": str(payout_id),
                    "creator_id": creator_id,
                    "gross_amount": str(amount),
                    "platform_fee": str(fee),
                    "net_amount": str(net),
                },
                description=f"Creator payout - ${net:.2f}",
            )

        except Exception as e:
            logger.error(f"Stripe transfer failed for payout {payout_id}: {e}")
            StripeConnectService._set_payout_status(
                payout_id, PayoutStatus.FAILED, failure_reason=str(e) or "Stripe transfer failed"
            )
            raise PayoutError("Failed to process payout. Please try again later.", status_code=500)

        StripeConnectService._set_payout_status(
            payout_id,
            PayoutStatus.PROCESSING,
            stripe_transfer_id=transfer.id,
            processed_at=utc_now_iso(),
        )
        SupabaseClient.rpc("mark_earnings_paid_out", {
            "p_creator_id": creator_id,
            "p_amount": amount,
            "p_payout_request_id": payout_id,
        })

        logger.info(f"Payout {payout_id}: transfer {transfer.id} of ${net:.2f} to {creator_id}")
        return {
            "success": True,
            "payoutRequestId": payout_id,
            "transferId": transfer.id,
            "grossAmount": amount,
            "platformFee": fee,
            "netAmount": net,
            "message": (
                f"Payout of ${net:.2f} has been initiated (after {PLATFORM_FEE_PERCENTAGE}% platform fee). "
                "Funds will arrive in your bank account within 2-7 business days."
            ),
        }

    @staticmethod
    def apply_transfer_event(transfer: Any, reversed_: bool = False) -> None:
        """Move the payout linked to a transfer to processing or failed."""
        transfer = as_dict(transfer)
        payout_id = (transfer.get("metadata") or {}).get("payout_request_id")
        if not payout_id:
            return

        if reversed_:
            StripeConnectService._set_payout_status(
                payout_id, PayoutStatus.FAILED, failure_reason="Transfer was reversed"
            )
        else:
            StripeConnectService._set_payout_status(
                payout_id,
                PayoutStatus.PROCESSING,
                stripe_transfer_id=transfer["id"],
                processed_at=utc_now_iso(),
            )
        logger.info(f"Payout {payout_id} updated from transfer {transfer['id']}")
