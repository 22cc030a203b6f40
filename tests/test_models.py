# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for the request models to ensure:
# - camelCase bodies from the web client and snake_case both parse
# - Invalid data raises ValidationError
# - Default values work as expected
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

import pytest
from pydantic import ValidationError

from core.models import (
    AutomationSettingsRequest,
    AutomationSettingsUpdate,
    CaptionRequest,
    CharacterCreate,
    CharacterGender,
    CharacterGenerateRequest,
    CharacterUpdate,
    ChatRequest,
    ContentPromptRequest,
    GalleryStatus,
    ImageGenerateRequest,
    ImageInteractionRequest,
    ImageStatusUpdate,
    InteractionCreate,
    MessageSender,
    PaymentMethod,
    ScheduleCreate,
    ScheduleFrequency,
    ScheduleUpdate,
    SocialPostCreate,
    TierCreateRequest,
    TipCreateRequest,
)


# =============================================================================
# Character Model Tests
# =============================================================================

class TestCharacterCreate:
    """Tests for CharacterCreate model."""

    def test_camel_case_body(self):
        """The web client's camelCase keys map onto snake_case fields."""
        character = CharacterCreate.model_validate({
            "name": "Luna",
            "description": "A stargazing barista",
            "physicalAttributes": {"hairColor": "black"},
        })

        assert character.physical_attributes == {"hairColor": "black"}
        assert character.category == "Lifestyle"
        assert character.personality == {}

    def test_snake_case_body(self):
        """populate_by_name keeps snake_case working for internal callers."""
        character = CharacterCreate(
            name="Luna",
            description="A stargazing barista",
            physical_attributes={"gender": "woman"},
        )
        assert character.physical_attributes["gender"] == "woman"

    def test_name_is_stripped(self):
        character = CharacterCreate(name="  Luna  ", description="Bio")
        assert character.name == "Luna"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CharacterCreate(name="   ", description="Bio")

    def test_name_too_long_rejected(self):
        with pytest.raises(ValidationError):
            CharacterCreate(name="x" * 101, description="Bio")


class TestCharacterUpdate:
    """Partial updates only carry the fields that were sent."""

    def test_exclude_unset(self):
        update = CharacterUpdate.model_validate({"isPublic": True})
        assert update.model_dump(exclude_unset=True) == {"is_public": True}


class TestImageModels:
    """Tests for image generation and gallery models."""

    def test_generate_defaults(self):
        request = ImageGenerateRequest(character_id="abc")

        assert request.steps == 8
        assert request.seed == -1
        assert request.image_format == "webp"
        assert request.skip_face_swap is False

    def test_generate_rejects_unknown_format(self):
        with pytest.raises(ValidationError):
            ImageGenerateRequest(character_id="abc", image_format="bmp")

    def test_generate_rejects_tiny_width(self):
        with pytest.raises(ValidationError):
            ImageGenerateRequest(character_id="abc", width=64)

    def test_gallery_status_from_camel_case(self):
        update = ImageStatusUpdate.model_validate({"galleryStatus": "posted"})
        assert update.gallery_status == GalleryStatus.POSTED

    def test_gallery_status_rejects_unknown(self):
        with pytest.raises(ValidationError):
            ImageStatusUpdate.model_validate({"galleryStatus": "deleted"})


# =============================================================================
# Chat Model Tests
# =============================================================================

class TestChatRequest:
    """Tests for ChatRequest model."""

    def test_history_parses(self):
        request = ChatRequest.model_validate({
            "characterId": "abc",
            "message": "How was your day?",
            "history": [
                {"sender": "user", "text": "Hi"},
                {"sender": "character", "text": "Hey you!"},
            ],
        })

        assert request.history[1].sender == MessageSender.CHARACTER
        assert request.session_id is None

    def test_empty_message_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequest(character_id="abc", message="")

    def test_unknown_sender_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequest.model_validate({
                "characterId": "abc",
                "message": "Hi",
                "history": [{"sender": "system", "text": "x"}],
            })


# =============================================================================
# Monetization Model Tests
# =============================================================================

class TestTipCreateRequest:
    """Tests for TipCreateRequest model."""

    def test_defaults_to_coins(self):
        tip = TipCreateRequest.model_validate({"characterId": "abc", "amount": 5})

        assert tip.payment_method == PaymentMethod.COINS
        assert tip.is_anonymous is False

    def test_card_payment(self):
        tip = TipCreateRequest.model_validate({
            "characterId": "abc",
            "amount": 5,
            "paymentMethod": "card",
            "isAnonymous": True,
        })
        assert tip.payment_method == PaymentMethod.CARD
        assert tip.is_anonymous is True

    @pytest.mark.parametrize("amount", [0, -1, 10001])
    def test_amount_bounds(self, amount):
        with pytest.raises(ValidationError):
            TipCreateRequest(character_id="abc", amount=amount)

    def test_message_length(self):
        with pytest.raises(ValidationError):
            TipCreateRequest(character_id="abc", amount=5, message="x" * 501)


class TestTierCreateRequest:
    """Tests for TierCreateRequest model."""

    def test_defaults(self):
        tier = TierCreateRequest.model_validate({
            "characterId": "abc",
            "name": "Gold",
            "priceMonthly": 9.99,
        })

        assert tier.benefits == []
        assert tier.badge_color == "#8b5cf6"
        assert tier.custom_images_per_month == 0

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            TierCreateRequest(character_id="abc", name="Gold", price_monthly=0)


# =============================================================================
# Social Model Tests
# =============================================================================

class TestInteractionCreate:
    """Tests for InteractionCreate model."""

    def test_known_type(self):
        interaction = InteractionCreate.model_validate({
            "characterId": "abc",
            "interactionType": "profile_viewed",
        })
        assert interaction.metadata == {}

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            InteractionCreate(character_id="abc", interaction_type="teleported")


class TestSocialPostCreate:
    """Tests for SocialPostCreate model."""

    def test_requires_a_platform(self):
        with pytest.raises(ValidationError):
            SocialPostCreate(image_url="https://img", platforms=[])

    def test_platform_targets_from_camel_case(self):
        post = SocialPostCreate.model_validate({
            "imageUrl": "https://img",
            "platforms": [{"platform": "instagram", "accountId": "acc_1"}],
        })
        assert post.platforms[0].account_id == "acc_1"
        assert post.timezone == "UTC"


class TestContentModels:
    """Tests for prompt and schedule models."""

    def test_prompt_request_defaults(self):
        request = ContentPromptRequest(character_id="abc")
        assert request.content_type == "lifestyle"
        assert request.count == 3

    def test_unknown_content_type_rejected(self):
        with pytest.raises(ValidationError):
            ContentPromptRequest(character_id="abc", content_type="cooking-show")

    def test_count_bounds(self):
        with pytest.raises(ValidationError):
            ContentPromptRequest(character_id="abc", count=11)

    def test_schedule_defaults(self):
        schedule = ScheduleCreate.model_validate({"characterId": "abc"})

        assert schedule.frequency_type == ScheduleFrequency.DAILY
        assert schedule.frequency_value == 1
        assert schedule.auto_post is False

    def test_schedule_style_preferences(self):
        schedule = ScheduleCreate.model_validate({
            "characterId": "abc",
            "contentType": "travel",
            "stylePreferences": {"colorScheme": ["pastel"], "mood": ["calm"]},
        })
        assert schedule.style_preferences.color_scheme == ["pastel"]

    def test_schedule_update_validates_content_type(self):
        with pytest.raises(ValidationError):
            ScheduleUpdate(content_type="nonsense")

    def test_schedule_update_exclude_unset(self):
        update = ScheduleUpdate.model_validate({"isActive": False})
        assert update.model_dump(exclude_unset=True) == {"is_active": False}


class TestAutomationModels:
    """Tests for character automation and image interaction requests."""

    def test_settings_defaults(self):
        request = AutomationSettingsRequest()
        assert request.is_active is False
        assert request.generation_time_slots == ["09:00", "14:00", "18:00"]
        assert request.gender_distribution.total == 100
        assert len(request.profile_types) == 10

    def test_distribution_alias(self):
        request = AutomationSettingsRequest.model_validate({
            "genderDistribution": {"male": 20, "female": 30, "nonBinary": 50},
        })
        assert request.gender_distribution.non_binary == 50
        assert request.gender_distribution.model_dump(by_alias=True) == {
            "male": 20, "female": 30, "nonBinary": 50,
        }

    @pytest.mark.parametrize("slots", [["9:00"], ["24:00"], ["12:60"], []])
    def test_bad_time_slots(self, slots):
        with pytest.raises(ValidationError):
            AutomationSettingsRequest(generation_time_slots=slots)

    def test_update_action_is_toggle_only(self):
        assert AutomationSettingsUpdate(action="toggle").action == "toggle"
        with pytest.raises(ValidationError):
            AutomationSettingsUpdate(action="pause")

    def test_generate_request(self):
        request = CharacterGenerateRequest.model_validate({"profileType": "yoga_instructor", "gender": "non-binary"})
        assert request.gender == CharacterGender.NON_BINARY
        assert request.images_per_character == 5

        with pytest.raises(ValidationError):
            CharacterGenerateRequest(profile_type="wizard", gender="male")

    def test_caption_type_alias(self):
        request = CaptionRequest.model_validate({"type": "hashtags", "characterName": "Luna"})
        assert request.caption_type == "hashtags"
        assert request.platforms == []

    def test_image_interaction_index(self):
        with pytest.raises(ValidationError):
            ImageInteractionRequest(character_id="abc", image_index=-1, action="like")
