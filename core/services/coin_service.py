# =============================================================================
# core/services/coin_service.py - Coin Ledger Operations
# =============================================================================
# Coins are the in-app currency used for image generation, gifts and coin
# tips. Balance changes always go through the deduct_coins / add_coins
# database functions, which update user_coin_balances and append a
# coin_transactions row atomically.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import first_row, normalize_uuid, utc_now_iso
from core.constants import AUTO_RECHARGE_MIN_PRICE, PROMOTIONAL_COIN_PACKAGES
from core.models.monetization import CoinTransactionType
from app.exceptions import InsufficientCoinsError, ResourceNotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)


class CoinService:
    """
    Service for coin balances, purchases and deductions.
    """

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    @staticmethod
    def get_balance(user_id: UUID | str) -> dict[str, Any]:
        """
        Get a user's balance row, creating an empty one on first access.

        Returns:
            Balance dict with balance, lifetime_earned, lifetime_spent and
            auto-recharge settings
        """
        user_id_str = normalize_uuid(user_id)
        balance = SupabaseClient.fetch_one("user_coin_balances", user_id=user_id_str)
        if balance:
            return balance

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("user_coin_balances")
                .insert({
                    "user_id": user_id_str,
                    "balance": 0,
                    "lifetime_earned": 0,
                    "lifetime_spent": 0,
                })
                .execute()
            )
            logger.info(f"Created coin balance for user: {user_id_str}")
            return response.data[0] if response.data else {"user_id": user_id_str, "balance": 0}

        except Exception as e:
            logger.error(f"Failed to create coin balance: {e}")
            raise

    @staticmethod
    def list_transactions(user_id: UUID | str, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent coin transactions for a user."""
        client = SupabaseClient.get_client()

        response = (
            client.table("coin_transactions")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    # -------------------------------------------------------------------------
    # Ledger Mutations
    # -------------------------------------------------------------------------

    @staticmethod
    def deduct(
        user_id: UUID | str,
        amount: int,
        transaction_type: CoinTransactionType,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """
        Deduct coins from a user's balance.

        Args:
            user_id: User paying the coins
            amount: Positive coin amount
            transaction_type: Ledger reason
            reference_type: What the coins were spent on (e.g. "tip")
            reference_id: ID of that thing
            description: Human-readable ledger description

        Returns:
            Dict with new_balance and transaction_id

        Raises:
            InsufficientCoinsError: If the balance is too low
        """
        if amount <= 0:
            raise ValidationFailedError("Coin amount must be positive")

        result = first_row(SupabaseClient.rpc("deduct_coins", {
            "p_user_id": normalize_uuid(user_id),
            "p_amount": amount,
            "p_transaction_type": transaction_type.value,
            "p_reference_type": reference_type,
            "p_reference_id": reference_id,
            "p_description": description,
        }))

        if not result or not result.get("success"):
            current = CoinService.get_balance(user_id).get("balance", 0)
            logger.info(f"Coin deduction refused for {user_id}: {amount} > {current}")
            raise InsufficientCoinsError(required=amount, balance=current)

        logger.info(f"Deducted {amount} coins from {user_id} ({transaction_type.value})")
        return result

    @staticmethod
    def credit(
        user_id: UUID | str,
        amount: int,
        transaction_type: CoinTransactionType,
        description: str | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
        stripe_payment_intent_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Add coins to a user's balance.

        Returns:
            Dict with new_balance and transaction_id (empty if the RPC
            returned nothing)
        """
        if amount <= 0:
            raise ValidationFailedError("Coin amount must be positive")

        params = {
            "p_user_id": normalize_uuid(user_id),
            "p_amount": amount,
            "p_transaction_type": transaction_type.value,
            "p_reference_type": reference_type,
            "p_reference_id": reference_id,
            "p_description": description,
        }
        if stripe_payment_intent_id:
            params["p_stripe_payment_intent_id"] = stripe_payment_intent_id

        result = first_row(SupabaseClient.rpc("add_coins", params)) or {}
        logger.info(f"Credited {amount} coins to {user_id} ({transaction_type.value})")
        return result

    # -------------------------------------------------------------------------
    # Packages
    # -------------------------------------------------------------------------

    @staticmethod
    def _normalize_package(row: dict[str, Any]) -> dict[str, Any]:
        """Map a coin_packages row (old or new column names) to one shape."""
        price = float(row.get("price_usd", row.get("price", 0)) or 0)
        coin_amount = row.get("coin_amount", row.get("coins", 0)) or 0
        bonus = row.get("bonus_coins", 0) or 0
        return {
            "id": str(row.get("id")),
            "name": row.get("name"),
            "coin_amount": coin_amount,
            "bonus_coins": bonus,
            "total_coins": coin_amount + bonus,
            "price_usd": price,
            "original_price_usd": row.get("original_price_usd"),
            "sort_order": row.get("sort_order", 0),
            "auto_recharge_eligible": price >= AUTO_RECHARGE_MIN_PRICE,
        }

    @staticmethod
    def list_packages() -> list[dict[str, Any]]:
        """
        Active coin packages, falling back to the promotional catalogue.

        Database errors are logged and the fallback is returned so the store
        page always renders.
        """
        client = SupabaseClient.get_client()
        rows: list[dict[str, Any]] = []

        try:
            response = (
                client.table("coin_packages")
                .select("*")
                .eq("is_active", True)
                .order("sort_order")
                .execute()
            )
            rows = response.data or []
        except Exception as e:
            logger.warning(f"Falling back to promotional coin packages: {e}")

        source = rows or PROMOTIONAL_COIN_PACKAGES
        return [CoinService._normalize_package(row) for row in source]

    @staticmethod
    def get_package(package_id: str) -> dict[str, Any]:
        """
        Find a package by ID in the database, then in the promotional list.

        Raises:
            ResourceNotFoundError: If no package matches
        """
        try:
            row = SupabaseClient.fetch_one("coin_packages", id=package_id, is_active=True)
        except Exception as e:
            logger.warning(f"Coin package lookup failed for {package_id}: {e}")
            row = None

        if row is None:
            row = next((p for p in PROMOTIONAL_COIN_PACKAGES if p["id"] == package_id), None)
        if row is None:
            raise ResourceNotFoundError("Coin package", package_id)
        return CoinService._normalize_package(row)

    @staticmethod
    def purchase_package(user_id: UUID | str, package_id: str) -> dict[str, Any]:
        """
        Credit a package's coins (plus bonus) to the user.

        Returns:
            Dict with coinsAdded, newBalance, transactionId
        """
        package = CoinService.get_package(package_id)
        description = f"Purchased {package['name']} - {package['coin_amount']} coins"
        if package["bonus_coins"]:
            description += f" + {package['bonus_coins']} bonus"

        result = CoinService.credit(
            user_id,
            package["total_coins"],
            CoinTransactionType.PURCHASE,
            description=description,
            reference_type="coin_package",
            reference_id=package["id"],
        )

        return {
            "success": True,
            "coinsAdded": package["total_coins"],
            "newBalance": result.get("new_balance"),
            "transactionId": result.get("transaction_id"),
        }

    @staticmethod
    def update_auto_recharge(
        user_id: UUID | str,
        enabled: bool,
        threshold: int | None = None,
        package_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Update auto-recharge settings.

        The recharge amount is the package's total coins; only packages
        priced at AUTO_RECHARGE_MIN_PRICE or more qualify.
        """
        CoinService.get_balance(user_id)

        update_data: dict[str, Any] = {
            "auto_recharge_enabled": enabled,
            "updated_at": utc_now_iso(),
        }
        if threshold is not None:
            update_data["auto_recharge_threshold"] = threshold
        if package_id:
            package = CoinService.get_package(package_id)
            if not package["auto_recharge_eligible"]:
                raise ValidationFailedError(
                    "This package is not available for auto-recharge",
                    suggestion=f"Choose a package priced at ${AUTO_RECHARGE_MIN_PRICE} or more",
                )
            update_data["auto_recharge_amount"] = package["total_coins"]

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("user_coin_balances")
                .update(update_data)
                .eq("user_id", normalize_uuid(user_id))
                .execute()
            )
            return response.data[0] if response.data else update_data

        except Exception as e:
            logger.error(f"Failed to update auto-recharge: {e}")
            raise
