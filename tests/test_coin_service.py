# =============================================================================
# tests/test_coin_service.py - Coin Ledger Tests
# =============================================================================
# Tests for CoinService against the in-memory Supabase:
# - Balance rows are created lazily
# - Deductions go through deduct_coins and refuse overdrafts
# - Package purchases credit coins plus bonus
# - Auto-recharge only accepts qualifying packages
# =============================================================================

import pytest

from app.exceptions import InsufficientCoinsError, ResourceNotFoundError, ValidationFailedError
from core.models import CoinTransactionType
from core.services.coin_service import CoinService

from tests.conftest import USER_ID


class TestBalance:
    """Tests for get_balance."""

    def test_creates_balance_on_first_access(self, fake_db):
        balance = CoinService.get_balance(USER_ID)

        assert balance["balance"] == 0
        assert len(fake_db.rows("user_coin_balances")) == 1

    def test_returns_existing_balance(self, fake_db):
        fake_db.seed("user_coin_balances", {"user_id": USER_ID, "balance": 250})

        assert CoinService.get_balance(USER_ID)["balance"] == 250
        assert len(fake_db.rows("user_coin_balances")) == 1


class TestDeduct:
    """Tests for deduct."""

    def test_deducts_through_rpc(self, fake_db, coin_ledger):
        coin_ledger[USER_ID] = 100

        result = CoinService.deduct(
            USER_ID, 30, CoinTransactionType.IMAGE_GENERATION, reference_type="image"
        )

        assert result["new_balance"] == 70
        name, params = fake_db.rpc_calls[-1]
        assert name == "deduct_coins"
        assert params["p_transaction_type"] == "image_generation"
        assert params["p_reference_type"] == "image"

    def test_insufficient_balance(self, fake_db, coin_ledger):
        coin_ledger[USER_ID] = 10
        fake_db.seed("user_coin_balances", {"user_id": USER_ID, "balance": 10})

        with pytest.raises(InsufficientCoinsError) as exc_info:
            CoinService.deduct(USER_ID, 30, CoinTransactionType.GIFT)

        assert exc_info.value.status_code == 402
        assert exc_info.value.details == {"required": 30, "balance": 10}
        assert coin_ledger[USER_ID] == 10

    def test_rejects_non_positive_amount(self, fake_db, coin_ledger):
        with pytest.raises(ValidationFailedError):
            CoinService.deduct(USER_ID, 0, CoinTransactionType.GIFT)
        assert fake_db.rpc_calls == []


class TestPackages:
    """Tests for the coin package catalogue and purchases."""

    def test_falls_back_to_promotional_packages(self, fake_db):
        packages = CoinService.list_packages()

        assert [p["id"] for p in packages][:2] == ["starter-20", "value-50"]
        assert packages[0]["total_coins"] == 200
        assert packages[0]["auto_recharge_eligible"] is True

    def test_database_packages_win(self, fake_db):
        fake_db.seed("coin_packages", {
            "id": "small", "name": "Small", "coins": 50, "price": 4.99,
            "is_active": True, "sort_order": 1,
        })

        packages = CoinService.list_packages()

        assert len(packages) == 1
        assert packages[0]["coin_amount"] == 50
        assert packages[0]["auto_recharge_eligible"] is False

    def test_unknown_package(self, fake_db):
        with pytest.raises(ResourceNotFoundError):
            CoinService.get_package("nope")

    def test_purchase_credits_coins_and_bonus(self, fake_db, coin_ledger):
        result = CoinService.purchase_package(USER_ID, "starter-20")

        assert result["coinsAdded"] == 200
        assert result["newBalance"] == 200
        name, params = fake_db.rpc_calls[-1]
        assert name == "add_coins"
        assert params["p_transaction_type"] == "purchase"
        assert "+ 40 bonus" in params["p_description"]


class TestAutoRecharge:
    """Tests for update_auto_recharge."""

    def test_enables_with_eligible_package(self, fake_db):
        settings = CoinService.update_auto_recharge(USER_ID, True, threshold=50, package_id="value-50")

        assert settings["auto_recharge_enabled"] is True
        assert settings["auto_recharge_threshold"] == 50
        assert settings["auto_recharge_amount"] == 550

    def test_rejects_cheap_package(self, fake_db):
        fake_db.seed("coin_packages", {
            "id": "small", "name": "Small", "coin_amount": 50, "price_usd": 4.99, "is_active": True,
        })

        with pytest.raises(ValidationFailedError):
            CoinService.update_auto_recharge(USER_ID, True, package_id="small")
