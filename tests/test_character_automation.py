# =============================================================================
# tests/test_character_automation.py - Character Automation Tests
# =============================================================================
# Tests for CharacterAutomationService and /api/v1/character-automation:
# - Slot arithmetic, weighted gender picks, looks, prompts and tags
# - Settings create/replace, toggle and partial updates
# - The cron pass that fills the queue and the queue pass that works it
# - Generation: free images, per-image failures, bookkeeping rows
# - Releasing generated characters
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from app.exceptions import (
    CharacterNotFoundError,
    ExternalServiceError,
    NotCharacterOwnerError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from core.constants import CHARACTER_PROFILE_TYPES
from core.models import (
    AutomationSettingsRequest,
    AutomationSettingsUpdate,
    BulkReleaseRequest,
    CharacterGenerateRequest,
    GenderDistribution,
    ReleaseRequest,
)
from core.services.character_automation_service import (
    PHYSICAL_OPTIONS,
    PROFILE_TYPE_DESCRIPTIONS,
    SCENE_TEMPLATES,
    CharacterAutomationService,
    build_image_prompts,
    build_tags,
    next_slot_at,
    random_physical_attributes,
    weighted_gender,
)
from lib.llm import LLMError
from lib.segmind import SegmindError
from lib.utils import utc_now

from tests.conftest import CHARACTER_ID, CREATOR_ID, USER_ID

PROFILE = {
    "name": "Marco Rossi",
    "description": "A Roman chef who cooks for friends every Sunday.",
    "category": "Food",
    "personality": {
        "traits": ["passionate", "warm", "funny", "bold"],
        "mood": "jovial",
        "occupation": "Chef",
    },
}


def rolls(value: float) -> MagicMock:
    """An rng whose random() always returns value."""
    rng = MagicMock()
    rng.random.return_value = value
    return rng


@pytest.fixture
def profile_reply():
    """Patch the JSON completion used for character profiles."""
    with patch(
        "core.services.character_automation_service.json_completion",
        return_value=PROFILE,
    ) as completion:
        yield completion


@pytest.fixture
def stats_rpc(fake_db):
    fake_db.rpc_handlers["increment_auto_generation_stats"] = lambda params: None
    return fake_db


@pytest.fixture
def automation(fake_db):
    """Active automation for CREATOR_ID that is already due."""
    return fake_db.seed("character_auto_generation_settings", {
        "id": "auto-1",
        "user_id": CREATOR_ID,
        "is_active": True,
        "characters_per_day": 3,
        "images_per_character": 2,
        "profile_types": ["chef"],
        "gender_distribution": {"male": 100, "female": 0, "nonBinary": 0},
        "timezone": "UTC",
        "generation_time_slots": ["09:00", "18:00"],
        "make_public_by_default": False,
        "next_scheduled_at": (utc_now() - timedelta(minutes=5)).isoformat(),
    })[0]


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_next_slot_later_today(self):
        now = datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)
        assert next_slot_at(["18:00", "09:00"], now) == datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)

    def test_next_slot_is_strictly_after_now(self):
        now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert next_slot_at(["09:00", "14:00"], now) == datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)

    def test_next_slot_rolls_to_tomorrow(self):
        now = datetime(2026, 3, 31, 19, 0, tzinfo=timezone.utc)
        assert next_slot_at(["18:00", "09:00"], now) == datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)

    def test_next_slot_defaults(self):
        now = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert next_slot_at([], now).hour == 9

    @pytest.mark.parametrize("roll,gender", [
        (0.0, "male"),
        (0.39, "male"),
        (0.40, "female"),
        (0.89, "female"),
        (0.90, "non-binary"),
    ])
    def test_weighted_gender(self, roll, gender):
        distribution = {"male": 40, "female": 50, "nonBinary": 10}
        assert weighted_gender(distribution, rolls(roll)) == gender

    def test_profile_tables_cover_every_type(self):
        assert set(PROFILE_TYPE_DESCRIPTIONS) == set(CHARACTER_PROFILE_TYPES)
        assert set(SCENE_TEMPLATES) == set(CHARACTER_PROFILE_TYPES)

    def test_physical_attributes(self):
        male = random_physical_attributes("male", "gamer")
        female = random_physical_attributes("female", "gamer")

        assert male["makeup"] == "none"
        assert male["bodyType"] in PHYSICAL_OPTIONS["body_types"]["male"]
        assert female["ethnicity"] in PHYSICAL_OPTIONS["ethnicities"]["female"]
        assert female["fashionStyle"] in PROFILE_TYPE_DESCRIPTIONS["gamer"]["fashion_styles"]
        assert 1 <= len(female["distinctiveFeatures"]) <= 2

    def test_image_prompts_are_distinct_and_capped(self):
        prompts = build_image_prompts("chef", 20)

        assert len(prompts) == len(SCENE_TEMPLATES["chef"])
        assert len(set(prompts)) == len(prompts)
        assert all(p.endswith("professional photography, high quality") for p in prompts)

    def test_tags(self):
        tags = build_tags(
            "yoga_instructor", "female", {"ethnicity": "Asian", "hairColor": "black"},
            ["calm", "kind", "warm", "patient"],
        )
        assert tags == ["yoga instructor", "female", "Asian", "black", "calm", "kind", "warm"]


class TestSettings:
    """Tests for settings CRUD."""

    def test_defaults_when_missing(self, fake_db):
        result = CharacterAutomationService.get_settings(CREATOR_ID)

        assert result["exists"] is False
        assert result["defaults"]["charactersPerDay"] == 5
        assert result["defaults"]["genderDistribution"] == {"male": 40, "female": 50, "nonBinary": 10}

    def test_create_active(self, fake_db):
        result = CharacterAutomationService.save_settings(
            CREATOR_ID,
            AutomationSettingsRequest(is_active=True, characters_per_day=2, generation_time_slots=["06:00"]),
        )

        stored = fake_db.first("character_auto_generation_settings", user_id=CREATOR_ID)
        assert result["settings"]["charactersPerDay"] == 2
        assert stored["gender_distribution"] == {"male": 40, "female": 50, "nonBinary": 10}
        assert stored["next_scheduled_at"] > utc_now().isoformat()
        assert stored["next_scheduled_at"][11:16] == "06:00"

    def test_inactive_has_no_next_run(self, fake_db):
        result = CharacterAutomationService.save_settings(CREATOR_ID, AutomationSettingsRequest())
        assert result["settings"]["nextScheduledAt"] is None

    def test_save_replaces_existing(self, automation, fake_db):
        CharacterAutomationService.save_settings(CREATOR_ID, AutomationSettingsRequest(characters_per_day=7))

        rows = fake_db.rows("character_auto_generation_settings")
        assert len(rows) == 1
        assert rows[0]["characters_per_day"] == 7
        assert rows[0]["is_active"] is False
        assert rows[0]["next_scheduled_at"] is None

    def test_distribution_must_total_100(self, fake_db):
        request = AutomationSettingsRequest(
            gender_distribution=GenderDistribution(male=50, female=40, non_binary=0)
        )
        with pytest.raises(ValidationFailedError):
            CharacterAutomationService.save_settings(CREATOR_ID, request)
        assert fake_db.rows("character_auto_generation_settings") == []

    def test_toggle(self, automation, fake_db):
        off = CharacterAutomationService.update_settings(CREATOR_ID, AutomationSettingsUpdate(action="toggle"))
        assert off["settings"]["isActive"] is False
        assert off["settings"]["nextScheduledAt"] is None

        on = CharacterAutomationService.update_settings(CREATOR_ID, AutomationSettingsUpdate(action="toggle"))
        assert on["settings"]["isActive"] is True
        assert on["settings"]["nextScheduledAt"] > utc_now().isoformat()

    def test_partial_update_recomputes_schedule(self, automation, fake_db):
        result = CharacterAutomationService.update_settings(
            CREATOR_ID, AutomationSettingsUpdate(generation_time_slots=["23:59"])
        )

        assert result["settings"]["generationTimeSlots"] == ["23:59"]
        assert result["settings"]["nextScheduledAt"][11:16] == "23:59"

    def test_partial_update_keeps_schedule(self, automation, fake_db):
        result = CharacterAutomationService.update_settings(
            CREATOR_ID, AutomationSettingsUpdate(timezone="Europe/Rome")
        )

        assert result["settings"]["timezone"] == "Europe/Rome"
        assert result["settings"]["nextScheduledAt"] == automation["next_scheduled_at"]

    def test_update_distribution_checked(self, automation):
        with pytest.raises(ValidationFailedError):
            CharacterAutomationService.update_settings(
                CREATOR_ID,
                AutomationSettingsUpdate(gender_distribution=GenderDistribution(male=10, female=10, non_binary=10)),
            )

    def test_update_without_settings(self, fake_db):
        with pytest.raises(ResourceNotFoundError):
            CharacterAutomationService.update_settings(CREATOR_ID, AutomationSettingsUpdate(action="toggle"))

    def test_stats(self, automation, fake_db):
        fake_db.seed("character_generation_queue",
                     {"user_id": CREATOR_ID, "status": "pending"},
                     {"user_id": CREATOR_ID, "status": "completed"})
        fake_db.seed("auto_generated_characters", {"user_id": CREATOR_ID, "character_id": CHARACTER_ID})

        result = CharacterAutomationService.get_settings(CREATOR_ID, include_stats=True)

        assert [item["status"] for item in result["queue"]] == ["pending"]
        assert len(result["recentCharacters"]) == 1

    def test_delete(self, automation, fake_db):
        CharacterAutomationService.delete_settings(CREATOR_ID)
        assert fake_db.rows("character_auto_generation_settings") == []

    def test_route_rejects_bad_distribution(self, client):
        response = client.post(
            "/api/v1/character-automation",
            json={"genderDistribution": {"male": 90, "female": 20, "nonBinary": 0}},
        )
        assert response.status_code == 400

    def test_route_rejects_unknown_profile_type(self, client):
        response = client.post("/api/v1/character-automation", json={"profileTypes": ["wizard"]})
        assert response.status_code == 422

    def test_route_put_without_settings(self, client):
        response = client.put("/api/v1/character-automation", json={"action": "toggle"})
        assert response.status_code == 404


class TestScheduling:
    """Tests for the cron pass that fills the queue."""

    def test_queues_a_days_characters(self, automation, fake_db):
        result = CharacterAutomationService.process_due_settings()

        queue = fake_db.rows("character_generation_queue")
        assert result["totalCharactersQueued"] == 3
        assert result["success"] == 1
        assert len(queue) == 3
        assert {item["profile_type"] for item in queue} == {"chef"}
        assert {item["gender"] for item in queue} == {"male"}
        assert all(item["status"] == "pending" and item["total_images"] == 2 for item in queue)
        assert all(item["settings_id"] == "auto-1" for item in queue)

        stored = fake_db.first("character_auto_generation_settings", id="auto-1")
        assert stored["last_generated_at"] is not None
        assert stored["next_scheduled_at"] > utc_now().isoformat()

    def test_nothing_due(self, fake_db):
        result = CharacterAutomationService.process_due_settings()

        assert result["message"] == "No auto-generation settings due for execution"
        assert result["processed"] == 0

    def test_paused_and_future_skipped(self, automation, fake_db):
        fake_db.first("character_auto_generation_settings", id="auto-1")["next_scheduled_at"] = (
            utc_now() + timedelta(hours=1)
        ).isoformat()
        fake_db.seed("character_auto_generation_settings", {
            "user_id": USER_ID, "is_active": False,
            "next_scheduled_at": (utc_now() - timedelta(hours=1)).isoformat(),
        })

        assert CharacterAutomationService.process_due_settings()["processed"] == 0

    def test_queue_failure_reported(self, automation, fake_db):
        fake_db.errors[("character_generation_queue", "insert")] = Exception("db down")

        result = CharacterAutomationService.process_due_settings()

        assert result["failed"] == 1
        assert result["results"][0]["error"] == "db down"
        assert result["totalCharactersQueued"] == 0


class TestGeneration:
    """Tests for generating one character."""

    def test_generate(self, automation, stats_rpc, segmind_mock, profile_reply):
        queue_item = stats_rpc.seed("character_generation_queue", {
            "user_id": CREATOR_ID, "settings_id": "auto-1", "status": "pending", "total_images": 2,
        })[0]

        result = CharacterAutomationService.generate(
            CREATOR_ID,
            CharacterGenerateRequest(
                profile_type="chef", gender="male", images_per_character=2,
                settings_id="auto-1", queue_item_id=queue_item["id"],
            ),
        )

        character = stats_rpc.first("characters", id=result["character"]["id"])
        assert character["name"] == "Marco Rossi"
        assert character["is_public"] is False
        assert character["tags"][:2] == ["chef", "male"]
        assert character["personality"]["mood"] == "jovial"
        assert character["personality"]["speakingStyle"] == "casual"
        assert character["physical_attributes"]["gender"] == "male"
        assert character["main_face_image"]

        assert result["imagesGenerated"] == 2
        assert "errors" not in result
        assert len(stats_rpc.rows("character_images")) == 2
        assert not any(name == "deduct_coins" for name, _ in stats_rpc.rpc_calls)

        item = stats_rpc.first("character_generation_queue", id=queue_item["id"])
        assert item["status"] == "completed"
        assert item["character_id"] == character["id"]
        assert item["images_generated"] == 2

        record = stats_rpc.first("auto_generated_characters", character_id=character["id"])
        assert record["is_complete"] is True
        assert len(record["generation_prompts"]) == 2
        assert ("increment_auto_generation_stats", {
            "p_settings_id": "auto-1", "p_characters": 1, "p_images": 2,
        }) in stats_rpc.rpc_calls

    def test_image_failures_are_collected(self, automation, stats_rpc, segmind_mock, profile_reply):
        segmind_mock.generate_image.side_effect = SegmindError("model overloaded", status_code=500)

        result = CharacterAutomationService.generate(
            CREATOR_ID,
            CharacterGenerateRequest(profile_type="chef", gender="male", images_per_character=2, settings_id="auto-1"),
        )

        assert result["imagesGenerated"] == 0
        assert len(result["errors"]) == 2
        assert result["errors"][0].startswith("Image 1:")
        record = stats_rpc.first("auto_generated_characters", character_id=result["character"]["id"])
        assert record["is_complete"] is False

    def test_public_by_default(self, automation, stats_rpc, segmind_mock, profile_reply):
        automation_row = stats_rpc.first("character_auto_generation_settings", id="auto-1")
        automation_row["make_public_by_default"] = True

        result = CharacterAutomationService.generate(
            CREATOR_ID,
            CharacterGenerateRequest(profile_type="chef", gender="female", images_per_character=0, settings_id="auto-1"),
        )

        assert result["character"]["isPublic"] is True
        assert stats_rpc.first("auto_generated_characters", character_id=result["character"]["id"])["is_released"] is True

    def test_stats_failure_does_not_fail_generation(self, automation, fake_db, segmind_mock, profile_reply):
        result = CharacterAutomationService.generate(
            CREATOR_ID,
            CharacterGenerateRequest(profile_type="chef", gender="male", images_per_character=0, settings_id="auto-1"),
        )
        assert result["success"] is True

    def test_profile_failure(self, fake_db):
        with patch(
            "core.services.character_automation_service.json_completion",
            side_effect=LLMError("rate limited"),
        ):
            with pytest.raises(ExternalServiceError):
                CharacterAutomationService.generate(
                    CREATOR_ID, CharacterGenerateRequest(profile_type="chef", gender="male"),
                )
        assert fake_db.rows("characters") == []

    def test_profile_without_name(self, fake_db):
        with patch(
            "core.services.character_automation_service.json_completion",
            return_value={"description": "nameless"},
        ):
            with pytest.raises(ExternalServiceError):
                CharacterAutomationService.generate_profile("chef", "male")

    def test_process_queue_oldest_first(self, automation, stats_rpc, segmind_mock, profile_reply):
        stats_rpc.seed(
            "character_generation_queue",
            {"id": "newer", "user_id": CREATOR_ID, "settings_id": "auto-1", "profile_type": "chef",
             "gender": "male", "status": "pending", "total_images": 0, "created_at": "2026-01-02T00:00:00+00:00"},
            {"id": "older", "user_id": CREATOR_ID, "settings_id": "auto-1", "profile_type": "artist",
             "gender": "female", "status": "pending", "total_images": 0, "created_at": "2026-01-01T00:00:00+00:00"},
        )

        result = CharacterAutomationService.process_queue(limit=1)

        assert result["processed"] == 1
        assert result["results"][0]["queueItemId"] == "older"
        assert stats_rpc.first("character_generation_queue", id="older")["status"] == "completed"
        assert stats_rpc.first("character_generation_queue", id="newer")["status"] == "pending"

    def test_process_queue_marks_failures(self, automation, fake_db):
        fake_db.seed("character_generation_queue", {
            "id": "item-1", "user_id": CREATOR_ID, "profile_type": "chef",
            "gender": "male", "status": "pending", "total_images": 1,
        })

        with patch(
            "core.services.character_automation_service.json_completion",
            side_effect=LLMError("rate limited"),
        ):
            result = CharacterAutomationService.process_queue()

        item = fake_db.first("character_generation_queue", id="item-1")
        assert result["failed"] == 1
        assert item["status"] == "failed"
        assert "rate limited" in item["error_message"]

    def test_route_requires_gender(self, client):
        response = client.post("/api/v1/character-automation/generate", json={"profileType": "chef"})
        assert response.status_code == 422


class TestRelease:
    """Tests for publishing generated characters."""

    def test_release(self, character, fake_db):
        fake_db.seed("auto_generated_characters", {
            "user_id": CREATOR_ID, "character_id": CHARACTER_ID, "is_released": True,
        })

        result = CharacterAutomationService.release(
            CREATOR_ID, ReleaseRequest(character_id=CHARACTER_ID, is_public=False)
        )

        assert result["character"] == {"id": CHARACTER_ID, "name": "Luna", "isPublic": False}
        assert fake_db.first("characters", id=CHARACTER_ID)["is_public"] is False
        assert fake_db.first("auto_generated_characters", character_id=CHARACTER_ID)["is_released"] is False

    def test_release_requires_owner(self, character):
        with pytest.raises(NotCharacterOwnerError):
            CharacterAutomationService.release(USER_ID, ReleaseRequest(character_id=CHARACTER_ID, is_public=True))

    def test_release_missing(self, fake_db):
        with pytest.raises(CharacterNotFoundError):
            CharacterAutomationService.release(USER_ID, ReleaseRequest(character_id="missing", is_public=True))

    def test_bulk_release_skips_others(self, character, fake_db):
        fake_db.seed("characters", {"id": "mine", "user_id": USER_ID, "name": "Nova", "is_public": False})

        result = CharacterAutomationService.release_many(
            USER_ID, BulkReleaseRequest(character_ids=["mine", CHARACTER_ID], is_public=True)
        )

        assert result["updated"] == 1
        assert result["characters"] == [{"id": "mine", "name": "Nova", "is_public": True}]
        assert fake_db.first("characters", id=CHARACTER_ID)["is_public"] is True

    def test_release_route_forbidden(self, client, character):
        response = client.put(
            "/api/v1/character-automation/release",
            json={"characterId": CHARACTER_ID, "isPublic": False},
        )
        assert response.status_code == 403


class TestCronEndpoints:
    """Tests for GET and POST /api/v1/character-automation/cron."""

    @pytest.fixture(autouse=True)
    def no_cron_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")

    def test_queue_due_inline(self, anonymous_client, automation, fake_db):
        response = anonymous_client.get("/api/v1/character-automation/cron", params={"inline": "true"})

        assert response.status_code == 200
        assert response.json()["totalCharactersQueued"] == 3

    def test_queue_due_task(self, anonymous_client):
        with patch("workers.tasks.process_due_character_automation") as task:
            task.delay.return_value = MagicMock(id="task-1")
            response = anonymous_client.get("/api/v1/character-automation/cron")

        assert response.json()["task_id"] == "task-1"

    def test_process_queue_inline(self, anonymous_client, fake_db):
        response = anonymous_client.post(
            "/api/v1/character-automation/cron", params={"inline": "true"}, json={"limit": 2}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "No pending queue items"

    def test_process_queue_task_gets_limit(self, anonymous_client):
        with patch("workers.tasks.process_character_generation_queue") as task:
            task.delay.return_value = MagicMock(id="task-2")
            response = anonymous_client.post("/api/v1/character-automation/cron", json={"limit": 3})

        assert response.json()["status"] == "PENDING"
        task.delay.assert_called_once_with(3)

    def test_process_queue_default_limit(self, anonymous_client):
        with patch("workers.tasks.process_character_generation_queue") as task:
            task.delay.return_value = MagicMock(id="task-3")
            anonymous_client.post("/api/v1/character-automation/cron")

        task.delay.assert_called_once_with(5)

    def test_broker_down(self, anonymous_client):
        with patch("workers.tasks.process_due_character_automation") as task:
            task.delay.side_effect = ConnectionError("redis unavailable")
            response = anonymous_client.get("/api/v1/character-automation/cron")

        assert response.status_code == 503

    def test_secret_required_when_configured(self, anonymous_client, monkeypatch, fake_db):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        rejected = anonymous_client.get("/api/v1/character-automation/cron", params={"inline": "true"})
        accepted = anonymous_client.get(
            "/api/v1/character-automation/cron",
            params={"inline": "true"},
            headers={"Authorization": "Bearer s3cret"},
        )

        assert rejected.status_code == 401
        assert accepted.status_code == 200
