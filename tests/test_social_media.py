# =============================================================================
# tests/test_social_media.py - Late Publishing & Caption Tests
# =============================================================================
# Late is replaced by a MagicMock LateClient; only the request shaping,
# key resolution and error mapping are under test. Caption drafting patches
# the chat completion.
# =============================================================================

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.exceptions import ExternalServiceError, ValidationFailedError
from core.models import CaptionRequest, PlatformTarget, SocialConfigUpdate, SocialListType, SocialPostCreate
from core.services.social_media_service import SocialMediaService, parse_hashtags
from lib.late import LateAPIError, LateClient
from lib.llm import LLMError

from tests.conftest import PNG_DATA_URL, USER_ID

RealClient = httpx.Client


@pytest.fixture
def late(monkeypatch):
    """A MagicMock Late client returned for every key."""
    client = MagicMock(spec=LateClient)
    client.presign_media.return_value = {
        "uploadUrl": "https://upload.getlate.dev/abc",
        "publicUrl": "https://media.getlate.dev/abc.webp",
    }
    client.create_post.return_value = {
        "post": {"_id": "late-1", "status": "scheduled", "scheduledFor": "2026-01-01T09:00:00Z"},
        "message": "Post scheduled",
    }
    factory = MagicMock(return_value=client)
    monkeypatch.setattr("core.services.social_media_service.LateClient", factory)
    client.factory = factory
    return client


def post_request(**overrides) -> SocialPostCreate:
    data = {
        "image_url": PNG_DATA_URL,
        "content": "Sunday brunch",
        "hashtags": ["brunch"],
        "platforms": [PlatformTarget(platform="instagram", account_id="acc-1")],
    }
    data.update(overrides)
    return SocialPostCreate(**data)


class TestPayload:
    """Tests for build_post_payload scheduling precedence."""

    def test_draft(self):
        payload = SocialMediaService.build_post_payload(post_request(), "https://m")

        assert payload["content"] == "Sunday brunch\n\n#brunch"
        assert payload["mediaItems"] == [{"url": "https://m", "type": "image"}]
        assert payload["platforms"] == [{"platform": "instagram", "accountId": "acc-1"}]
        assert "publishNow" not in payload and "scheduledFor" not in payload

    def test_publish_now_wins(self):
        payload = SocialMediaService.build_post_payload(
            post_request(publish_now=True, use_queue=True, profile_id="p1", scheduled_for="2026-01-01"),
            "https://m",
        )
        assert payload["publishNow"] is True
        assert "queuedFromProfile" not in payload

    def test_queue_needs_profile(self):
        queued = SocialMediaService.build_post_payload(
            post_request(use_queue=True, profile_id="p1", queue_id="q1"), "https://m"
        )
        no_profile = SocialMediaService.build_post_payload(
            post_request(use_queue=True, scheduled_for="2026-01-01T09:00"), "https://m"
        )

        assert queued["queuedFromProfile"] == "p1"
        assert queued["queueId"] == "q1"
        assert no_profile["scheduledFor"] == "2026-01-01T09:00"


class TestKeys:
    """Tests for API key resolution."""

    def test_no_key(self, fake_db, monkeypatch):
        monkeypatch.setattr("core.services.social_media_service.settings.LATE_API_KEY", None)

        with pytest.raises(ValidationFailedError, match="Late API key not configured"):
            SocialMediaService.get_client(USER_ID)

    def test_user_key_preferred(self, fake_db, late, monkeypatch):
        monkeypatch.setattr("core.services.social_media_service.settings.LATE_API_KEY", "shared-key")
        fake_db.seed("user_social_config", {"user_id": USER_ID, "late_api_key": "user-key"})

        SocialMediaService.get_client(USER_ID)

        late.factory.assert_called_with("user-key")

    def test_config_masks_key(self, fake_db, late):
        result = SocialMediaService.update_config(
            USER_ID, SocialConfigUpdate(late_api_key="sk_live_abcd1234", late_profile_id="p1")
        )

        assert result["config"]["late_api_key"] == "********1234"
        assert fake_db.first("user_social_config", user_id=USER_ID)["late_api_key"] == "sk_live_abcd1234"

    def test_config_rejects_bad_key(self, fake_db, late):
        late.list_profiles.side_effect = LateAPIError("Unauthorized", status_code=401)

        with pytest.raises(ValidationFailedError, match="Invalid Late API key"):
            SocialMediaService.update_config(USER_ID, SocialConfigUpdate(late_api_key="bad"))


class TestPublishing:
    """Tests for create_post and list_remote."""

    @pytest.fixture(autouse=True)
    def shared_key(self, monkeypatch):
        monkeypatch.setattr("core.services.social_media_service.settings.LATE_API_KEY", "shared-key")

    def test_create_post(self, fake_db, late):
        result = SocialMediaService.create_post(USER_ID, post_request(character_id="char-1"))

        assert result["post"]["_id"] == "late-1"
        uploaded = late.upload_media.call_args.args
        assert uploaded[0] == "https://upload.getlate.dev/abc"
        assert uploaded[1].startswith(b"\x89PNG")

        local = fake_db.first("social_media_posts", late_post_id="late-1")
        assert local["platforms"] == ["instagram"]
        assert local["status"] == "scheduled"

    def test_local_save_failure_is_swallowed(self, fake_db, late):
        fake_db.errors[("social_media_posts", "insert")] = Exception("db down")

        result = SocialMediaService.create_post(USER_ID, post_request())

        assert result["success"] is True
        assert result["localPost"] is None

    def test_late_failure(self, fake_db, late):
        late.create_post.side_effect = LateAPIError("Account disconnected", status_code=400)

        with pytest.raises(ExternalServiceError) as exc_info:
            SocialMediaService.create_post(USER_ID, post_request())

        assert exc_info.value.status_code == 502
        assert fake_db.rows("social_media_posts") == []

    def test_queue_requires_profile(self, fake_db, late):
        with pytest.raises(ValidationFailedError, match="Profile ID is required"):
            SocialMediaService.list_remote(USER_ID, SocialListType.QUEUE)

    def test_list_profiles_route(self, client, late):
        late.list_profiles.return_value = [{"_id": "p1", "name": "Main"}]

        response = client.get("/api/v1/social-media", params={"type": "profiles"})

        assert response.json() == [{"_id": "p1", "name": "Main"}]


class TestCaptions:
    """Tests for AI-drafted post text and hashtags."""

    @pytest.fixture
    def completion(self):
        with patch("core.services.social_media_service.chat_completion") as completion:
            yield completion

    def test_parse_hashtags(self):
        assert parse_hashtags("#coffee, lisbon  #morning\n#latte") == ["coffee", "lisbon", "morning", "latte"]

    def test_parse_hashtags_capped(self):
        assert len(parse_hashtags(" ".join(f"#tag{i}" for i in range(15)))) == 10

    def test_content(self, completion):
        completion.return_value = "Sunday mornings with Luna"

        result = SocialMediaService.generate_caption(
            CaptionRequest(caption_type="content", character_name="Luna", platforms=["instagram"])
        )

        assert result == {"content": "Sunday mornings with Luna"}
        assert completion.call_args.kwargs == {"temperature": 0.8, "max_tokens": 200}
        assert "(instagram)" in completion.call_args.args[0][1]["content"]

    def test_hashtags(self, completion):
        completion.return_value = "#coffee #barista #morning"

        result = SocialMediaService.generate_caption(
            CaptionRequest(caption_type="hashtags", character_name="Luna", image_prompt="rooftop latte")
        )

        assert result == {"hashtags": ["coffee", "barista", "morning"]}
        assert completion.call_args.kwargs == {"temperature": 0.7, "max_tokens": 100}
        assert "rooftop latte" in completion.call_args.args[0][1]["content"]

    @pytest.mark.parametrize("caption_type,name,message", [
        ("", "Luna", "Missing required fields"),
        ("content", "", "Missing required fields"),
        ("story", "Luna", "Invalid type"),
    ])
    def test_rejected(self, completion, caption_type, name, message):
        with pytest.raises(ValidationFailedError, match=message):
            SocialMediaService.generate_caption(CaptionRequest(caption_type=caption_type, character_name=name))
        completion.assert_not_called()

    def test_llm_failure(self, completion):
        completion.side_effect = LLMError("rate limited")

        with pytest.raises(ExternalServiceError):
            SocialMediaService.generate_caption(CaptionRequest(caption_type="content", character_name="Luna"))

    def test_route(self, client, completion):
        completion.return_value = "#luna"

        response = client.post(
            "/api/v1/social-media/generate",
            json={"type": "hashtags", "characterName": "Luna"},
        )

        assert response.status_code == 200
        assert response.json() == {"hashtags": ["luna"]}

    def test_route_missing_fields(self, client, completion):
        response = client.post("/api/v1/social-media/generate", json={"type": "content"})
        assert response.status_code == 400


class TestLateClient:
    """Tests for LateClient error handling against a mock transport."""

    def test_error_body_message(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(401, json={"error": "Invalid API key"})
        )

        with patch("lib.late.httpx.Client", lambda **kwargs: RealClient(transport=transport, **kwargs)):
            with pytest.raises(LateAPIError) as exc_info:
                LateClient("bad").list_profiles()

        assert exc_info.value.message == "Invalid API key"
        assert exc_info.value.status_code == 401

    def test_none_params_dropped(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"accounts": [{"_id": "a1"}]})

        transport = httpx.MockTransport(handler)
        with patch("lib.late.httpx.Client", lambda **kwargs: RealClient(transport=transport, **kwargs)):
            accounts = LateClient("key").list_accounts()

        assert accounts == [{"_id": "a1"}]
        assert seen["url"] == "https://getlate.dev/api/v1/accounts"
        assert seen["auth"] == "Bearer key"
