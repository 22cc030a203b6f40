# =============================================================================
# app/routers/images.py - Image Generation & Gallery Endpoints
# =============================================================================
# Handlers are plain def: Segmind calls block for up to two minutes, so
# they run in the threadpool instead of on the event loop.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.auth import AuthUser, get_current_user, get_current_user_optional
from core.models.character import (
    FaceSwapRequest,
    GalleryStatus,
    ImageGenerateRequest,
    ImageStatusUpdate,
)
from core.services.image_service import ImageService

router = APIRouter()


@router.post("/generate")
def generate_image(request: ImageGenerateRequest, user: AuthUser = Depends(get_current_user)):
    """
    Generate an image of an owned character.

    Costs 5, 10 or 15 coins depending on resolution; 402 when the balance
    is too low. Coins are refunded if generation fails.
    """
    return ImageService.generate(user.id, request)


@router.get("")
def list_images(
    character_id: Annotated[str, Query(alias="characterId")],
    user: AuthUser | None = Depends(get_current_user_optional),
    status: Annotated[GalleryStatus | None, Query()] = None,
):
    images = ImageService.list_images(character_id, user.id if user else None, status)
    return {"images": images}


@router.patch("/{image_id}")
def update_image_status(
    image_id: str,
    request: ImageStatusUpdate,
    user: AuthUser = Depends(get_current_user),
):
    image = ImageService.update_status(image_id, user.id, request.gallery_status)
    return {"success": True, "image": image}


@router.delete("/{image_id}")
def delete_image(image_id: str, user: AuthUser = Depends(get_current_user)):
    ImageService.delete_image(image_id, user.id)
    return {"success": True}


@router.post("/face-swap")
def face_swap(request: FaceSwapRequest, user: AuthUser = Depends(get_current_user)):
    """Swap the source face onto the target image; 504 on provider timeout."""
    return ImageService.face_swap(
        request.source_image,
        request.target_image,
        additional_prompt=request.additional_prompt,
        image_format=request.image_format,
        quality=request.quality,
        seed=request.seed,
    )
