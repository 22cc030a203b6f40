# =============================================================================
# core/services/image_service.py - Character Image Generation
# =============================================================================
# Generates character images with Segmind and keeps a character's face
# consistent across scenes with a face swap.
#
# Pipeline:
# 1. Resolve size and coin cost, charge coins
# 2. Build the prompt from physical attributes + scene
# 3. Generate (z-image-turbo)
# 4. Face swap with the custom or saved base face (failure keeps the raw image)
# 5. Upload to storage (failure keeps the data URL)
# 6. Save character_images row as "unposted", fill in face/thumbnail
# =============================================================================

import hashlib
import logging
import time
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import (
    ExternalServiceError,
    ResourceNotFoundError,
    StorageUploadError,
)
from core.constants import ASPECT_RATIO_RESOLUTIONS, DEFAULT_IMAGE_SIZE, image_coin_cost
from core.models.character import GalleryStatus, ImageGenerateRequest
from core.models.monetization import CoinTransactionType
from core.services.character_service import CharacterService
from core.services.coin_service import CoinService
from core.services.interaction_service import InteractionService
from lib import segmind
from lib.images import ImagePayloadError, extension_for, normalize_base64_image, parse_data_url
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


def resolve_size(request: ImageGenerateRequest) -> tuple[int, int]:
    """Aspect ratio preset, else explicit width/height, else the default."""
    if request.aspect_ratio in ASPECT_RATIO_RESOLUTIONS:
        return ASPECT_RATIO_RESOLUTIONS[request.aspect_ratio]
    if request.width and request.height:
        return request.width, request.height
    return DEFAULT_IMAGE_SIZE


def build_image_prompt(attributes: dict[str, Any] | None, scene_prompt: str) -> str:
    """
    Describe the character's appearance in front of the scene prompt so the
    same person shows up in every image.
    """
    if not attributes:
        return scene_prompt

    a = attributes.get
    features = a("distinctiveFeatures") or []
    parts = [
        f"A {a('age', '')} {a('ethnicity', '')} {a('gender', '')}",
        f"with {a('skinTone', '')} skin",
        f"{a('faceShape', '')} face shape",
        f"{a('eyeColor', '')} {a('eyeShape', '')} eyes",
        f"{a('hairLength', '')} {a('hairTexture', '')} {a('hairColor', '')} hair styled in {a('hairStyle', '')}",
        f"{a('bodyType', '')} {a('height', '')} build",
        f"distinctive features: {', '.join(features)}" if features else "",
        f"{a('fashionStyle', '')} fashion style",
        f"{a('makeup')} makeup" if a("makeup") else "",
    ]
    description = ", ".join(" ".join(p.split()) for p in parts if p.strip())
    return (
        f"Portrait photography, {description}. {scene_prompt}. "
        "High quality, detailed, professional photography, 8k, sharp focus, beautiful lighting."
    )


def serialize_image(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "characterId": row.get("character_id"),
        "imageUrl": row.get("image_url"),
        "prompt": row.get("prompt") or "",
        "isMainFace": bool(row.get("is_main_face")),
        "createdAt": row.get("created_at"),
        "settings": row.get("settings") or {},
        "galleryStatus": row.get("gallery_status") or GalleryStatus.UNPOSTED.value,
    }


class ImageService:
    """
    Service for image generation, face swap and gallery management.
    """

    @staticmethod
    def require_configured() -> None:
        if not settings.segmind_enabled:
            raise ExternalServiceError("Segmind", "Image generation API not configured", status_code=503)

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @staticmethod
    def store_image(path: str, image: str) -> str:
        """
        Upload a data URL (or raw base64) to the images bucket.

        Returns:
            Public URL

        Raises:
            StorageUploadError: If decoding or uploading fails
        """
        try:
            content, mime = parse_data_url(normalize_base64_image(image, "image/jpeg"))
        except ImagePayloadError as e:
            raise StorageUploadError(str(e))

        try:
            return SupabaseClient.upload_public_file(
                settings.CHARACTER_IMAGES_BUCKET,
                f"{path}.{extension_for(mime)}",
                content,
                mime,
            )
        except Exception as e:
            raise StorageUploadError(str(e))

    @staticmethod
    def ensure_public_url(image: str, prefix: str, cache: bool = False) -> str:
        """
        Return a URL Segmind can fetch.

        HTTP(S) URLs pass through. Data URLs are uploaded; with cache=True the
        filename is a fingerprint of the image so a base face is stored once.
        """
        if image.startswith(("http://", "https://")):
            return image

        if cache:
            fingerprint = hashlib.md5((image[:1000] + str(len(image))).encode()).hexdigest()[:12]
            path = f"faceswap_{prefix}_{fingerprint}"
        else:
            path = f"faceswap_{prefix}_{int(time.time() * 1000)}"
        return ImageService.store_image(path, image)

    # -------------------------------------------------------------------------
    # Face Swap
    # -------------------------------------------------------------------------

    @staticmethod
    def face_swap(
        source_image: str,
        target_image: str,
        additional_prompt: str = "",
        image_format: str = "webp",
        quality: int = 95,
        seed: int | None = None,
    ) -> dict[str, Any]:
        """
        Put the face from source_image onto target_image.

        Returns:
            Dict with success, imageUrl (data URL), format

        Raises:
            ExternalServiceError: On Segmind failure (504 on timeout)
        """
        ImageService.require_configured()
        source_url = ImageService.ensure_public_url(source_image, "source", cache=True)
        target_url = ImageService.ensure_public_url(target_image, "target")

        try:
            result = segmind.face_swap(
                source_url,
                target_url,
                additional_prompt=additional_prompt,
                image_format=image_format,
                quality=quality,
                seed=seed,
            )
        except segmind.SegmindTimeoutError:
            raise ExternalServiceError("Segmind", "Face swap timed out", status_code=504)
        except segmind.SegmindError as e:
            raise ExternalServiceError("Segmind", str(e))

        return {"success": True, "imageUrl": result, "format": image_format}

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    @staticmethod
    def generate(
        user_id: UUID | str,
        request: ImageGenerateRequest,
        charge_coins: bool = True,
    ) -> dict[str, Any]:
        """
        Generate, store and register a character image.

        Args:
            user_id: Caller (must own the character)
            request: Generation parameters
            charge_coins: False for scheduled content jobs

        Returns:
            Dict with image, coinsSpent, newBalance, prompt, faceSwapped

        Raises:
            NotCharacterOwnerError: If the caller doesn't own the character
            InsufficientCoinsError: If the caller can't afford the image
            ExternalServiceError: If generation fails (coins are refunded)
        """
        ImageService.require_configured()
        character = CharacterService.get_owned_character(request.character_id, user_id)
        character_id = character["id"]
        width, height = resolve_size(request)
        cost = image_coin_cost(width, height) if charge_coins else 0

        new_balance = None
        if cost:
            deduction = CoinService.deduct(
                user_id,
                cost,
                CoinTransactionType.IMAGE_GENERATION,
                reference_type="character_image",
                reference_id=character_id,
                description=f"Image generation for {character.get('name')} ({width}x{height})",
            )
            new_balance = deduction.get("new_balance")

        prompt = build_image_prompt(character.get("physical_attributes"), request.scene_prompt)

        try:
            image_url = segmind.generate_image(
                prompt,
                width=width,
                height=height,
                steps=request.steps,
                guidance_scale=request.guidance_scale,
                seed=request.seed,
                image_format=request.image_format,
                quality=request.quality,
            )
        except segmind.SegmindError as e:
            logger.error(f"Image generation failed for {character_id}: {e}")
            if cost:
                CoinService.credit(
                    user_id,
                    cost,
                    CoinTransactionType.REFUND,
                    description=f"Refund for failed image generation ({character.get('name')})",
                    reference_type="character_image",
                    reference_id=character_id,
                )
            status = 504 if isinstance(e, segmind.SegmindTimeoutError) else 502
            raise ExternalServiceError("Segmind", str(e), status_code=status)

        face = request.custom_base_face or character.get("main_face_image")
        final_url = image_url
        face_swapped = False
        if face and not request.skip_face_swap:
            try:
                final_url = ImageService.face_swap(face, image_url)["imageUrl"]
                face_swapped = True
            except Exception as e:
                logger.warning(f"Face swap failed for {character_id}, keeping raw image: {e}")

        try:
            stored_url = ImageService.store_image(f"char_{character_id}_{int(time.time() * 1000)}", final_url)
        except StorageUploadError as e:
            logger.warning(f"Storage upload failed, storing data URL: {e}")
            stored_url = final_url

        client = SupabaseClient.get_client()
        row = {
            "character_id": character_id,
            "image_url": stored_url,
            "prompt": prompt,
            "is_main_face": not character.get("main_face_image") and not request.custom_base_face,
            "gallery_status": GalleryStatus.UNPOSTED.value,
            "settings": {
                "prompt": prompt,
                "steps": request.steps,
                "guidanceScale": request.guidance_scale,
                "seed": request.seed,
                "width": width,
                "height": height,
                "imageFormat": request.image_format,
                "quality": request.quality,
                "faceSwapApplied": face_swapped,
            },
        }

        try:
            saved = client.table("character_images").insert(row).execute().data[0]
        except Exception as e:
            logger.error(f"Failed to save generated image for {character_id}: {e}")
            raise

        character_update: dict[str, Any] = {}
        if request.custom_base_face:
            character_update["main_face_image"] = request.custom_base_face
        elif not character.get("main_face_image"):
            character_update["main_face_image"] = final_url
        if not character.get("thumbnail"):
            character_update["thumbnail"] = stored_url
        if character_update:
            client.table("characters").update(character_update).eq("id", character_id).execute()

        InteractionService.record(user_id, character_id, "image_generated", {"width": width, "height": height})
        logger.info(f"Generated image {saved.get('id')} for {character_id} ({cost} coins)")

        return {
            "success": True,
            "image": serialize_image(saved),
            "coinsSpent": cost,
            "newBalance": new_balance,
            "prompt": prompt,
            "faceSwapped": face_swapped,
        }

    # -------------------------------------------------------------------------
    # Gallery
    # -------------------------------------------------------------------------

    @staticmethod
    def list_images(
        character_id: str,
        user_id: UUID | str | None = None,
        status: GalleryStatus | None = None,
    ) -> list[dict[str, Any]]:
        """
        A character's images, newest first.

        The owner may filter by any status; everyone else only sees posted.
        """
        character = CharacterService.get_character(character_id, user_id)
        is_owner = user_id is not None and str(character.get("user_id")) == normalize_uuid(user_id)

        client = SupabaseClient.get_client()
        query = client.table("character_images").select("*").eq("character_id", character_id)
        if not is_owner:
            query = query.eq("gallery_status", GalleryStatus.POSTED.value)
        elif status:
            query = query.eq("gallery_status", status.value)

        rows = query.order("created_at", desc=True).execute().data or []
        return [serialize_image(row) for row in rows]

    @staticmethod
    def _get_owned_image(image_id: str, user_id: UUID | str) -> dict[str, Any]:
        image = SupabaseClient.fetch_one("character_images", id=image_id)
        if not image:
            raise ResourceNotFoundError("Image", image_id)
        CharacterService.get_owned_character(image["character_id"], user_id)
        return image

    @staticmethod
    def update_status(image_id: str, user_id: UUID | str, status: GalleryStatus) -> dict[str, Any]:
        """Move an owned image between unposted, posted and archived."""
        image = ImageService._get_owned_image(image_id, user_id)
        client = SupabaseClient.get_client()

        response = (
            client.table("character_images")
            .update({"gallery_status": status.value})
            .eq("id", image_id)
            .execute()
        )
        logger.info(f"Image {image_id} -> {status.value}")
        return serialize_image(response.data[0] if response.data else {**image, "gallery_status": status.value})

    @staticmethod
    def delete_image(image_id: str, user_id: UUID | str) -> None:
        ImageService._get_owned_image(image_id, user_id)
        client = SupabaseClient.get_client()
        client.table("character_images").delete().eq("id", image_id).execute()
        logger.info(f"Deleted image: {image_id}")

