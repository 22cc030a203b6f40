# =============================================================================
# lib/segmind.py - Segmind Image API Client
# =============================================================================
# HTTP client for the two Segmind endpoints the platform uses:
# - z-image-turbo: text-to-image generation for character scenes
# - faceswap-v5:   composites a character's base face onto a generated scene
#
# Both endpoints are called synchronously with httpx and always return a
# data URL so callers can store or forward the image without caring whether
# Segmind answered with JSON or raw bytes.
# =============================================================================

import logging
import random
import time
from typing import Any

import httpx

from app.config import settings
from lib.images import normalize_base64_image, to_data_url

logger = logging.getLogger(__name__)

SEGMIND_IMAGE_API = "https://api.segmind.com/v1/z-image-turbo"
SEGMIND_FACESWAP_API = "https://api.segmind.com/v1/faceswap-v5"

IMAGE_TIMEOUT_SECONDS = 120
FACESWAP_TIMEOUT_SECONDS = 115


class SegmindError(Exception):
    """Raised when a Segmind request fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SegmindTimeoutError(SegmindError):
    """Raised when Segmind doesn't answer within the timeout."""


def _headers() -> dict[str, str]:
    if not settings.SEGMIND_API_KEY:
        raise SegmindError("Image generation API not configured")
    return {
        "x-api-key": settings.SEGMIND_API_KEY,
        "Content-Type": "application/json",
    }


def _extract_image(response: httpx.Response, image_format: str) -> str:
    """
    Turn a Segmind response into a data URL.

    JSON bodies carry base64 under `image`, `output` or `images[0]`;
    anything else is treated as raw image bytes.
    """
    mime = f"image/{image_format}"
    content_type = response.headers.get("content-type", "")

    if "application/json" in content_type:
        payload: dict[str, Any] = response.json()
        encoded = payload.get("image") or payload.get("output")
        if not encoded and payload.get("images"):
            encoded = payload["images"][0]
        if not encoded:
            raise SegmindError("Segmind response did not contain an image")
        return normalize_base64_image(encoded, mime)

    if not response.content:
        raise SegmindError("Segmind returned an empty body")
    return to_data_url(response.content, mime)


def _post(url: str, body: dict[str, Any], timeout: float) -> httpx.Response:
    started = time.monotonic()
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(url, json=body, headers=_headers())
    except httpx.TimeoutException as e:
        logger.error(f"Segmind request to {url} timed out")
        raise SegmindTimeoutError("Segmind request timed out") from e
    except httpx.HTTPError as e:
        logger.error(f"Segmind request to {url} failed: {e}")
        raise SegmindError(f"Failed to reach Segmind: {e}") from e

    logger.info(f"Segmind {url.rsplit('/', 1)[-1]} responded in {time.monotonic() - started:.1f}s, status: {response.status_code}")

    if response.status_code >= 400:
        raise SegmindError(response.text[:500], status_code=response.status_code)
    return response


def generate_image(
    prompt: str,
    width: int = 1024,
    height: int = 1024,
    steps: int = 8,
    guidance_scale: float = 1,
    seed: int = -1,
    image_format: str = "webp",
    quality: int = 90,
) -> str:
    """
    Generate an image from a text prompt.

    Returns:
        Data URL of the generated image

    Raises:
        SegmindError: On HTTP or payload errors
        SegmindTimeoutError: If the request times out
    """
    body = {
        "prompt": prompt,
        "steps": steps,
        "guidance_scale": guidance_scale,
        "seed": seed,
        "height": height,
        "width": width,
        "image_format": image_format,
        "quality": quality,
        "base_64": True,
    }
    response = _post(SEGMIND_IMAGE_API, body, IMAGE_TIMEOUT_SECONDS)
    return _extract_image(response, image_format)


def face_swap(
    source_image_url: str,
    target_image_url: str,
    additional_prompt: str = "",
    image_format: str = "webp",
    quality: int = 95,
    seed: int | None = None,
) -> str:
    """
    Swap the face from `source_image_url` onto `target_image_url`.

    Both images must be publicly reachable URLs.

    Returns:
        Data URL of the composited image
    """
    body = {
        "source_image": source_image_url,
        "target_image": target_image_url,
        "additional_prompt": additional_prompt,
        "image_format": image_format,
        "quality": quality,
        "seed": seed if seed is not None else random.randint(0, 999_999_999_999_999),
    }
    response = _post(SEGMIND_FACESWAP_API, body, FACESWAP_TIMEOUT_SECONDS)
    return _extract_image(response, image_format)
