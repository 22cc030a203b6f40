# =============================================================================
# tests/test_content_generation.py - Scheduled Content Tests
# =============================================================================
# Tests for ContentGenerationService and /api/v1/content-generation:
# - Prompt suggestions (model output cleaned, failures surfaced as 502)
# - Schedule CRUD and next-run arithmetic
# - Running schedules: free image generation, generated_content rows,
#   schedule bookkeeping, one failure not stopping the batch
# - The cron endpoint and its shared-secret guard
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from app.exceptions import ExternalServiceError, NotCharacterOwnerError, ResourceNotFoundError
from core.models import ScheduleCreate, ScheduleUpdate
from core.services.content_generation_service import (
    ContentGenerationService,
    build_style_context,
    clean_suggestion,
    next_run_at,
)
from lib.llm import LLMError
from lib.utils import utc_now

from tests.conftest import CHARACTER_ID, CREATOR_ID, USER_ID

SUGGESTION = {
    "prompt": "Latte art at sunrise on a Lisbon rooftop",
    "caption": "Morning ritual",
    "hashtags": ["coffee", "lisbon"],
    "mood": "calm",
    "setting": "rooftop",
    "reasoning": "Fits her barista life",
}


@pytest.fixture
def model_reply():
    """Patch the JSON completion used for prompt suggestions."""
    with patch(
        "core.services.content_generation_service.json_completion",
        return_value={"prompts": [SUGGESTION]},
    ) as completion:
        yield completion


@pytest.fixture
def schedule(fake_db, character):
    """A daily schedule for Luna, already due."""
    past = (utc_now() - timedelta(minutes=5)).isoformat()
    return fake_db.seed("content_generation_schedules", {
        "id": "sched-1",
        "user_id": CREATOR_ID,
        "character_id": CHARACTER_ID,
        "content_type": "lifestyle",
        "frequency_type": "daily",
        "frequency_value": 1,
        "is_active": True,
        "auto_post": False,
        "total_posts_generated": 2,
        "next_scheduled_at": past,
    })[0]


class TestHelpers:
    """Tests for the module-level helpers."""

    @pytest.mark.parametrize("frequency,value,hours", [
        ("hourly", 3, 3),
        ("daily", 2, 48),
        ("weekly", 1, 168),
        ("unknown", 1, 24),
        ("daily", 0, 24),
    ])
    def test_next_run_at(self, frequency, value, hours):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        expected = (now + timedelta(hours=hours)).isoformat()
        assert next_run_at(frequency, value, now) == expected

    def test_clean_suggestion(self):
        cleaned = clean_suggestion({"prompt": "  Beach day  ", "hashtags": "not-a-list"})

        assert cleaned["prompt"] == "Beach day"
        assert cleaned["hashtags"] == []
        assert cleaned["caption"] == ""

    @pytest.mark.parametrize("raw", [None, "text", {"caption": "no prompt"}, {"prompt": "   "}])
    def test_clean_suggestion_drops_empty(self, raw):
        assert clean_suggestion(raw) is None

    def test_style_context(self):
        context = build_style_context({"mood": ["cozy"], "additionalInstructions": "film grain"})

        assert "Mood: cozy" in context
        assert "Additional: film grain" in context
        assert build_style_context(None) == ""


class TestSuggestions:
    """Tests for prompt suggestions."""

    def test_suggest_filters_bad_entries(self, fake_db, character):
        with patch(
            "core.services.content_generation_service.json_completion",
            return_value={"prompts": [SUGGESTION, {"caption": "missing prompt"}]},
        ):
            suggestions = ContentGenerationService.suggest(character, "lifestyle", count=3)

        assert [s["prompt"] for s in suggestions] == [SUGGESTION["prompt"]]

    def test_previous_prompts_are_avoided(self, fake_db, character, model_reply):
        fake_db.seed("generated_content", {
            "character_id": CHARACTER_ID, "original_prompt": "Reading in a bookshop",
        })

        ContentGenerationService.suggest(character, "lifestyle", custom_themes=["autumn"])

        user_message = model_reply.call_args.args[0][1]["content"]
        assert "- Reading in a bookshop" in user_message
        assert "Custom themes to incorporate: autumn" in user_message

    def test_model_failure(self, fake_db, character):
        with patch(
            "core.services.content_generation_service.json_completion",
            side_effect=LLMError("rate limited"),
        ):
            with pytest.raises(ExternalServiceError) as exc_info:
                ContentGenerationService.suggest(character, "lifestyle")
        assert exc_info.value.status_code == 502

    def test_prompts_route_requires_owner(self, client, character, model_reply):
        response = client.post("/api/v1/content-generation/prompts", json={"characterId": CHARACTER_ID})
        assert response.status_code == 403


class TestSchedules:
    """Tests for schedule CRUD."""

    def test_create(self, fake_db, character):
        created = ContentGenerationService.create_schedule(
            CREATOR_ID,
            ScheduleCreate(character_id=CHARACTER_ID, frequency_type="hourly", frequency_value=6),
        )

        assert created["is_active"] is True
        assert created["total_posts_generated"] == 0
        assert created["frequency_type"] == "hourly"
        assert created["next_scheduled_at"] > utc_now().isoformat()

    def test_create_requires_owner(self, fake_db, character):
        with pytest.raises(NotCharacterOwnerError):
            ContentGenerationService.create_schedule(USER_ID, ScheduleCreate(character_id=CHARACTER_ID))

    def test_update_recomputes_next_run(self, schedule, fake_db):
        updated = ContentGenerationService.update_schedule(
            "sched-1", CREATOR_ID, ScheduleUpdate(frequency_type="weekly")
        )

        assert updated["frequency_type"] == "weekly"
        assert updated["next_scheduled_at"] > (utc_now() + timedelta(days=6)).isoformat()

    def test_pause_keeps_next_run(self, schedule, fake_db):
        updated = ContentGenerationService.update_schedule(
            "sched-1", CREATOR_ID, ScheduleUpdate(is_active=False)
        )

        assert updated["is_active"] is False
        assert updated["next_scheduled_at"] == schedule["next_scheduled_at"]

    def test_other_users_schedule_not_found(self, schedule):
        with pytest.raises(ResourceNotFoundError):
            ContentGenerationService.get_schedule("sched-1", USER_ID)

    def test_delete(self, schedule, fake_db):
        ContentGenerationService.delete_schedule("sched-1", CREATOR_ID)
        assert fake_db.rows("content_generation_schedules") == []


class TestExecution:
    """Tests for running schedules."""

    def test_run_schedule(self, schedule, fake_db, segmind_mock, model_reply):
        content = ContentGenerationService.run_schedule(schedule)

        assert content["status"] == "generated"
        assert content["original_prompt"] == SUGGESTION["prompt"]
        assert content["hashtags"] == ["coffee", "lisbon"]
        assert content["ai_suggestions"]["mood"] == "calm"
        assert content["character_image_id"] == fake_db.rows("character_images")[0]["id"]

        stored = fake_db.first("content_generation_schedules", id="sched-1")
        assert stored["total_posts_generated"] == 3
        assert stored["last_executed_at"] is not None
        assert stored["next_scheduled_at"] > utc_now().isoformat()
        assert not any(name == "deduct_coins" for name, _ in fake_db.rpc_calls)

    def test_auto_post_marks_scheduled(self, schedule, fake_db, segmind_mock, model_reply):
        schedule["auto_post"] = True
        assert ContentGenerationService.run_schedule(schedule)["status"] == "scheduled"

    def test_nothing_due(self, fake_db):
        result = ContentGenerationService.process_due_schedules()

        assert result["message"] == "No schedules due for execution"
        assert result["processed"] == 0

    def test_future_and_paused_schedules_skipped(self, schedule, fake_db):
        stored = fake_db.first("content_generation_schedules", id="sched-1")
        stored["next_scheduled_at"] = (utc_now() + timedelta(hours=1)).isoformat()
        fake_db.seed("content_generation_schedules", {
            "user_id": CREATOR_ID, "character_id": CHARACTER_ID, "is_active": False,
            "next_scheduled_at": (utc_now() - timedelta(hours=1)).isoformat(),
        })

        assert ContentGenerationService.process_due_schedules()["processed"] == 0

    def test_one_failure_does_not_stop_others(self, schedule, fake_db, segmind_mock, model_reply):
        fake_db.seed("content_generation_schedules", {
            "id": "sched-orphan",
            "user_id": CREATOR_ID,
            "character_id": "deleted-character",
            "is_active": True,
            "next_scheduled_at": schedule["next_scheduled_at"],
        })

        result = ContentGenerationService.process_due_schedules()

        assert result["processed"] == 2
        assert result["success"] == 1
        assert result["failed"] == 1
        failure = next(r for r in result["results"] if not r["success"])
        assert failure["scheduleId"] == "sched-orphan"
        assert result["message"] == "Processed 2 schedules: 1 success, 1 failed"


class TestCronEndpoint:
    """Tests for POST /api/v1/content-generation/cron."""

    @pytest.fixture(autouse=True)
    def no_cron_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")

    def test_inline(self, anonymous_client, fake_db):
        response = anonymous_client.post("/api/v1/content-generation/cron", params={"inline": "true"})

        assert response.status_code == 200
        assert response.json()["processed"] == 0

    def test_queues_task(self, anonymous_client):
        with patch("workers.tasks.process_due_content_schedules") as task:
            task.delay.return_value = MagicMock(id="task-123")
            response = anonymous_client.post("/api/v1/content-generation/cron")

        assert response.json()["task_id"] == "task-123"
        assert response.json()["status"] == "PENDING"

    def test_broker_down(self, anonymous_client):
        with patch("workers.tasks.process_due_content_schedules") as task:
            task.delay.side_effect = ConnectionError("redis unavailable")
            response = anonymous_client.post("/api/v1/content-generation/cron")

        assert response.status_code == 503

    def test_secret_required_when_configured(self, anonymous_client, monkeypatch, fake_db):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        rejected = anonymous_client.post("/api/v1/content-generation/cron", params={"inline": "true"})
        wrong = anonymous_client.post(
            "/api/v1/content-generation/cron",
            params={"inline": "true"},
            headers={"Authorization": "Bearer nope"},
        )
        accepted = anonymous_client.post(
            "/api/v1/content-generation/cron",
            params={"inline": "true"},
            headers={"Authorization": "Bearer s3cret"},
        )

        assert rejected.status_code == 401
        assert wrong.status_code == 401
        assert accepted.status_code == 200
