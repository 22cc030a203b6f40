# =============================================================================
# tests/test_monetization.py - Monetization Settings & Earnings Route Tests
# =============================================================================

import pytest

from app.exceptions import NotCharacterOwnerError, PremiumRequiredError, ResourceNotFoundError
from core.models import EarningSource, EarningStatus, MonetizationSettingsRequest
from core.services.earnings_service import EarningsService
from core.services.monetization_service import MonetizationService

from tests.conftest import CHARACTER_ID, CREATOR_ID, USER_ID


class TestMonetizationSettings:
    """Tests for MonetizationService."""

    def test_enable_requires_premium(self, fake_db, character, premium_users):
        with pytest.raises(PremiumRequiredError):
            MonetizationService.enable(CREATOR_ID, MonetizationSettingsRequest(character_id=CHARACTER_ID))

    def test_enable_requires_owner(self, fake_db, character, premium_users):
        premium_users.add(USER_ID)

        with pytest.raises(NotCharacterOwnerError):
            MonetizationService.enable(USER_ID, MonetizationSettingsRequest(character_id=CHARACTER_ID))

    def test_enable_defaults_and_ranking(self, fake_db, character, premium_users):
        premium_users.add(CREATOR_ID)

        result = MonetizationService.enable(
            CREATOR_ID,
            MonetizationSettingsRequest(character_id=CHARACTER_ID, welcome_message="Hi!"),
        )

        settings = result["settings"]
        assert settings["tips_enabled"] is True
        assert settings["min_tip_amount"] == 1.0
        assert settings["welcome_message"] == "Hi!"
        assert fake_db.first("character_rankings", character_id=CHARACTER_ID)["category"] == "Lifestyle"

    def test_enable_twice_keeps_one_row(self, fake_db, character, premium_users):
        premium_users.add(CREATOR_ID)
        request = MonetizationSettingsRequest(character_id=CHARACTER_ID)

        MonetizationService.enable(CREATOR_ID, request)
        MonetizationService.enable(CREATOR_ID, request)

        assert len(fake_db.rows("character_monetization")) == 1

    def test_update_only_sent_fields(self, fake_db, character):
        fake_db.seed("character_monetization", {
            "character_id": CHARACTER_ID, "tips_enabled": True, "min_tip_amount": 1.0,
        })

        result = MonetizationService.update(
            CREATOR_ID, MonetizationSettingsRequest(character_id=CHARACTER_ID, min_tip_amount=3)
        )

        assert result["settings"]["min_tip_amount"] == 3
        assert result["settings"]["tips_enabled"] is True

    def test_update_before_enable(self, fake_db, character):
        with pytest.raises(ResourceNotFoundError):
            MonetizationService.update(
                CREATOR_ID, MonetizationSettingsRequest(character_id=CHARACTER_ID, tips_enabled=False)
            )

    def test_public_settings_route(self, anonymous_client, character, fake_db):
        fake_db.seed("character_monetization", {"character_id": CHARACTER_ID, "is_monetized": True})
        fake_db.seed("creator_tiers", {
            "character_id": CHARACTER_ID, "name": "Gold", "tier_level": 1, "is_active": True,
        })

        body = anonymous_client.get("/api/v1/monetization", params={"characterId": CHARACTER_ID}).json()

        assert body["isMonetized"] is True
        assert [t["name"] for t in body["tiers"]] == ["Gold"]


class TestEarningsRoute:
    """Tests for GET /api/v1/earnings."""

    def test_filtered_page_with_summary(self, client, fake_db):
        for gross, status in ((10, "pending"), (20, "available"), (30, "available")):
            EarningsService.record(
                USER_ID, CHARACTER_ID, EarningSource.TIP, None, gross, EarningStatus(status)
            )

        body = client.get("/api/v1/earnings", params={"status": "available", "limit": 1}).json()

        assert body["total"] == 2
        assert len(body["earnings"]) == 1
        assert body["summary"]["totalGross"] == 60
        assert body["summary"]["pending"] == 8.5

    def test_invalid_status(self, client):
        assert client.get("/api/v1/earnings", params={"status": "lost"}).status_code == 422
