# =============================================================================
# tests/test_follows_discovery.py - Follows, Interactions & Discovery Tests
# =============================================================================
# Tests for the audience-facing services:
# - Following public characters (never your own, never twice)
# - Anonymous vs signed-in interaction tracking
# - Discovery filters, sorting and featured-first ordering
# =============================================================================

import pytest

from app.exceptions import AuthenticationRequiredError, CharacterNotFoundError, ValidationFailedError
from core.services.discovery_service import DiscoveryService, DiscoverySort, filter_and_sort, shape_character
from core.services.follow_service import FollowService
from core.services.interaction_service import InteractionService

from tests.conftest import CHARACTER_ID, CREATOR_ID, USER_ID


# =============================================================================
# Follows
# =============================================================================

class TestFollows:
    """Tests for FollowService."""

    def test_follow(self, fake_db, character):
        result = FollowService.follow(USER_ID, CHARACTER_ID)

        assert result["message"] == "Now following Luna!"
        assert FollowService.get_status(USER_ID, CHARACTER_ID)["isFollowing"] is True
        assert fake_db.first("character_rankings", character_id=CHARACTER_ID)["follower_count"] == 1
        assert fake_db.rpc_calls[0][1]["p_interaction_type"] == "followed"

    def test_follow_twice(self, fake_db, character):
        FollowService.follow(USER_ID, CHARACTER_ID)

        with pytest.raises(ValidationFailedError, match="Already following"):
            FollowService.follow(USER_ID, CHARACTER_ID)

    def test_cannot_follow_own_character(self, fake_db, character):
        with pytest.raises(ValidationFailedError):
            FollowService.follow(CREATOR_ID, CHARACTER_ID)

    def test_private_character_not_found(self, fake_db, character):
        fake_db.first("characters", id=CHARACTER_ID)["is_public"] = False

        with pytest.raises(CharacterNotFoundError):
            FollowService.follow(USER_ID, CHARACTER_ID)

    def test_unfollow_updates_ranking(self, fake_db, character):
        FollowService.follow(USER_ID, CHARACTER_ID)
        FollowService.unfollow(USER_ID, CHARACTER_ID)

        assert fake_db.rows("user_follows") == []
        assert fake_db.first("character_rankings", character_id=CHARACTER_ID)["follower_count"] == 0

    def test_stats(self, fake_db, character):
        FollowService.follow(USER_ID, CHARACTER_ID)
        fake_db.seed(
            "fan_subscriptions",
            {"character_id": CHARACTER_ID, "status": "active"},
            {"character_id": CHARACTER_ID, "status": "cancelled"},
        )

        assert FollowService.get_stats(CHARACTER_ID) == {"followerCount": 1, "subscriberCount": 1}

    def test_notifications_require_follow(self, fake_db):
        from app.exceptions import ResourceNotFoundError

        with pytest.raises(ResourceNotFoundError):
            FollowService.set_notifications(USER_ID, CHARACTER_ID, False)


class TestFollowRoutes:
    """Tests for /api/v1/follows."""

    def test_follow_and_list(self, client, character):
        response = client.post("/api/v1/follows", json={"characterId": CHARACTER_ID})
        assert response.status_code == 200

        follows = client.get("/api/v1/follows").json()["follows"]
        assert [f["character_id"] for f in follows] == [CHARACTER_ID]

        response = client.patch(
            "/api/v1/follows",
            json={"characterId": CHARACTER_ID, "notificationsEnabled": False},
        )
        assert response.json()["follow"]["notifications_enabled"] is False

    def test_stats_are_public(self, anonymous_client, character):
        response = anonymous_client.get("/api/v1/follows/stats", params={"characterId": CHARACTER_ID})
        assert response.status_code == 200
        assert response.json()["followerCount"] == 0

    def test_status_requires_auth(self, anonymous_client):
        response = anonymous_client.get("/api/v1/follows/status", params={"characterId": CHARACTER_ID})
        assert response.status_code == 401


# =============================================================================
# Interactions
# =============================================================================

class TestInteractions:
    """Tests for InteractionService."""

    def test_anonymous_view_counts(self, fake_db):
        fake_db.rpc_handlers["increment_stat"] = lambda params: None

        InteractionService.track_anonymous(CHARACTER_ID, "profile_viewed")

        assert fake_db.first("character_daily_stats", character_id=CHARACTER_ID) is not None
        assert fake_db.rpc_calls[-1] == ("increment_stat", {
            "p_character_id": CHARACTER_ID,
            "p_date": fake_db.rows("character_daily_stats")[0]["date"],
            "p_column": "profile_views",
        })

    def test_anonymous_other_types_rejected(self, fake_db):
        with pytest.raises(AuthenticationRequiredError):
            InteractionService.track_anonymous(CHARACTER_ID, "message_sent")

    def test_record_swallows_failures(self, fake_db):
        fake_db.rpc_handlers.pop("record_interaction")
        InteractionService.record(USER_ID, CHARACTER_ID, "liked")

    def test_record_skips_anonymous(self, fake_db):
        InteractionService.record(None, CHARACTER_ID, "liked")
        assert fake_db.rpc_calls == []

    def test_anonymous_route(self, anonymous_client, fake_db):
        fake_db.rpc_handlers["increment_stat"] = lambda params: None

        response = anonymous_client.post("/api/v1/interactions", json={
            "characterId": CHARACTER_ID, "interactionType": "post_viewed",
        })

        assert response.json() == {"success": True, "anonymous": True}

    def test_anonymous_route_rejects_messages(self, anonymous_client):
        response = anonymous_client.post("/api/v1/interactions", json={
            "characterId": CHARACTER_ID, "interactionType": "message_sent",
        })
        assert response.status_code == 401

    def test_signed_in_route(self, client, fake_db):
        response = client.post("/api/v1/interactions", json={
            "characterId": CHARACTER_ID, "interactionType": "liked", "metadata": {"postId": "p1"},
        })

        assert response.json()["success"] is True
        name, params = fake_db.rpc_calls[-1]
        assert name == "record_interaction"
        assert params["p_user_id"] == USER_ID
        assert params["p_metadata"] == {"postId": "p1"}

    def test_history(self, client, fake_db):
        fake_db.seed(
            "user_interactions",
            {"user_id": USER_ID, "character_id": CHARACTER_ID, "interaction_type": "liked"},
            {"user_id": CREATOR_ID, "character_id": CHARACTER_ID, "interaction_type": "liked"},
        )

        body = client.get("/api/v1/interactions").json()

        assert body["total"] == 1


# =============================================================================
# Discovery
# =============================================================================

def card(name, featured=False, monetized=True, price=None, trending=0.0, followers=0):
    return shape_character({
        "id": name,
        "name": name,
        "character_rankings": [{
            "follower_count": followers,
            "trending_score": trending,
            "is_featured": featured,
        }],
        "character_monetization": {"is_monetized": monetized},
        "creator_tiers": [] if price is None else [{"id": f"t-{name}", "price_monthly": price}],
    })


class TestDiscoveryRanking:
    """Tests for the in-memory filters and sort."""

    def test_shape_character(self):
        shaped = shape_character({
            "id": "c1",
            "name": "Luna",
            "profiles": {"full_name": "Ana"},
            "character_rankings": [],
            "creator_tiers": [
                {"id": "t1", "price_monthly": 9.99, "is_active": True},
                {"id": "t2", "price_monthly": 4.99, "is_active": True},
                {"id": "t3", "price_monthly": 1.99, "is_active": False},
            ],
        })

        assert shaped["creatorName"] == "Ana"
        assert shaped["lowestTierPrice"] == 4.99
        assert shaped["tierCount"] == 2
        assert shaped["followerCount"] == 0
        assert shaped["isMonetized"] is False

    def test_featured_first(self):
        results = filter_and_sort([
            card("a", trending=10),
            card("b", trending=1, featured=True),
            card("c", trending=5),
        ])
        assert [r["id"] for r in results] == ["b", "a", "c"]

    def test_price_range_keeps_characters_without_tiers(self):
        results = filter_and_sort(
            [card("cheap", price=2), card("pricey", price=50), card("free", monetized=False), card("none")],
            min_price=5,
            max_price=20,
            sort=DiscoverySort.NEWEST,
        )
        assert [r["id"] for r in results] == ["free", "none"]

    def test_monetized_filter(self):
        results = filter_and_sort([card("m"), card("f", monetized=False)], monetized=False)
        assert [r["id"] for r in results] == ["f"]

    def test_price_sort(self):
        results = filter_and_sort(
            [card("b", price=10), card("a", price=3), card("c", price=7)],
            sort=DiscoverySort.PRICE_LOW,
        )
        assert [r["id"] for r in results] == ["a", "c", "b"]


class TestDiscoveryService:
    """Tests for DiscoveryService.discover against the fake database."""

    @pytest.fixture
    def catalogue(self, fake_db, character):
        fake_db.seed(
            "characters",
            {"id": "private", "user_id": CREATOR_ID, "name": "Hidden", "is_public": False, "tags": []},
            {"id": "chef", "user_id": CREATOR_ID, "name": "Chef Marco", "description": "Pasta",
             "category": "Food", "is_public": True, "tags": ["cooking"]},
        )
        return fake_db

    def test_only_public(self, catalogue):
        result = DiscoveryService.discover()

        assert {c["id"] for c in result["characters"]} == {CHARACTER_ID, "chef"}
        assert result["total"] == 2
        assert result["totalPages"] == 1

    def test_category_and_tags(self, catalogue):
        assert [c["id"] for c in DiscoveryService.discover(category="Food")["characters"]] == ["chef"]
        assert [c["id"] for c in DiscoveryService.discover(tags=["coffee"])["characters"]] == [CHARACTER_ID]

    def test_search(self, catalogue):
        result = DiscoveryService.discover(search="pasta")
        assert [c["id"] for c in result["characters"]] == ["chef"]

    def test_viewer_state(self, catalogue):
        catalogue.seed("user_follows", {"follower_id": USER_ID, "character_id": "chef"})
        catalogue.seed("fan_subscriptions", {
            "fan_id": USER_ID, "character_id": CHARACTER_ID, "tier_id": "tier-1", "status": "active",
        })

        cards = {c["id"]: c for c in DiscoveryService.discover(user_id=USER_ID)["characters"]}

        assert cards["chef"]["isFollowing"] is True
        assert cards["chef"]["isSubscribed"] is False
        assert cards[CHARACTER_ID]["currentTierId"] == "tier-1"

    def test_route_splits_tags(self, anonymous_client, catalogue):
        response = anonymous_client.get("/api/v1/discovery", params={"tags": "cooking, "})

        assert response.status_code == 200
        assert [c["id"] for c in response.json()["characters"]] == ["chef"]

    def test_route_sort_by(self, anonymous_client, catalogue):
        luna = catalogue.first("characters", id=CHARACTER_ID)
        luna["created_at"] = "2024-01-01T00:00:00+00:00"
        luna["character_rankings"] = [{"follower_count": 50}]

        default = anonymous_client.get("/api/v1/discovery").json()
        popular = anonymous_client.get("/api/v1/discovery", params={"sortBy": "popularity"}).json()

        assert [c["id"] for c in default["characters"]] == ["chef", CHARACTER_ID]
        assert [c["id"] for c in popular["characters"]] == [CHARACTER_ID, "chef"]

    def test_route_rejects_unknown_sort(self, anonymous_client, catalogue):
        response = anonymous_client.get("/api/v1/discovery", params={"sortBy": "random"})
        assert response.status_code == 422
