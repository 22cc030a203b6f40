# =============================================================================
# tests/test_lib.py - Library Helper Tests
# =============================================================================
# Tests for the pure helpers in lib/ and core/constants:
# - Image payload decoding and sniffing
# - Money, timestamp and cent conversion
# - Image coin pricing
# - Social post formatting
# =============================================================================

import base64
from datetime import datetime, timezone

import pytest

from core.constants import image_coin_cost
from core.services.social_media_service import format_post_content, mask_key
from lib.images import (
    ImagePayloadError,
    detect_image_type,
    normalize_base64_image,
    parse_data_url,
    to_data_url,
)
from lib.stripe_client import from_cents, to_cents
from lib.utils import first_row, iso_from_timestamp, parse_iso, round_money

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
WEBP_BYTES = b"RIFF\x00\x00\x00\x00WEBPVP8 " + b"\x00" * 8


class TestImagePayloads:
    """Tests for lib/images.py."""

    def test_detects_png(self):
        assert detect_image_type(PNG_BYTES) == "image/png"

    def test_detects_webp(self):
        assert detect_image_type(WEBP_BYTES) == "image/webp"

    def test_unknown_defaults_to_jpeg(self):
        assert detect_image_type(b"not an image") == "image/jpeg"

    def test_parse_uses_sniffed_type(self):
        """The declared MIME type is ignored in favour of the bytes."""
        url = f"data:image/jpeg;base64,{base64.b64encode(PNG_BYTES).decode()}"

        data, mime = parse_data_url(url)

        assert data == PNG_BYTES
        assert mime == "image/png"

    def test_parse_round_trips_to_data_url(self):
        data, mime = parse_data_url(to_data_url(WEBP_BYTES))
        assert (data, mime) == (WEBP_BYTES, "image/webp")

    def test_parse_rejects_plain_url(self):
        with pytest.raises(ImagePayloadError):
            parse_data_url("https://example.com/a.png")

    def test_parse_rejects_non_base64(self):
        with pytest.raises(ImagePayloadError):
            parse_data_url("data:image/png,rawtext")

    def test_normalize_raw_base64(self):
        assert normalize_base64_image("QUJD") == "data:image/webp;base64,QUJD"

    def test_normalize_keeps_data_url(self):
        url = "data:image/png;base64,QUJD"
        assert normalize_base64_image(url) == url


class TestMoneyAndTime:
    """Tests for lib/utils.py and cent conversion."""

    def test_round_money(self):
        assert round_money(8.499999) == 8.5

    def test_to_cents_rounds(self):
        assert to_cents(19.99) == 1999
        assert to_cents(0.295) in (29, 30)

    def test_from_cents(self):
        assert from_cents(699) == 6.99

    def test_iso_from_timestamp(self):
        assert iso_from_timestamp(0, None) is None
        assert iso_from_timestamp(1700000000).startswith("2023-11-14T22:13:20")

    def test_iso_from_timestamp_fallback(self):
        value = parse_iso(iso_from_timestamp(None, fallback_days=30))
        assert value > datetime.now(timezone.utc)

    def test_parse_iso_accepts_z_suffix(self):
        parsed = parse_iso("2024-05-01T10:00:00Z")
        assert parsed.tzinfo is not None
        assert parsed.hour == 10

    def test_first_row(self):
        assert first_row([{"a": 1}, {"a": 2}]) == {"a": 1}
        assert first_row({"a": 1}) == {"a": 1}
        assert first_row([]) is None
        assert first_row(None) is None


class TestImageCoinCost:
    """Bigger images cost more coins."""

    @pytest.mark.parametrize("width,height,cost", [
        (512, 512, 5),
        (1024, 1024, 10),
        (720, 1280, 10),
        (2048, 2048, 15),
    ])
    def test_cost_tiers(self, width, height, cost):
        assert image_coin_cost(width, height) == cost


class TestSocialFormatting:
    """Tests for post text helpers."""

    def test_hashtags_appended_with_prefix(self):
        assert format_post_content("Sunday", ["brunch", "#la"]) == "Sunday\n\n#brunch #la"

    def test_no_hashtags(self):
        assert format_post_content("Sunday", ["", " "]) == "Sunday"

    def test_mask_key(self):
        assert mask_key("late_abcdef1234") == "********1234"
        assert mask_key(None) is None
