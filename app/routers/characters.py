# =============================================================================
# app/routers/characters.py - Character CRUD Endpoints
# =============================================================================
# Reads accept anonymous callers; private characters are owner-only.
# Writes require authentication and ownership.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.auth import AuthUser, get_current_user, get_current_user_optional
from core.models.character import CharacterCreate, CharacterScope, CharacterUpdate
from core.services.character_service import CharacterService

router = APIRouter()


@router.get("/limits")
async def get_character_limits(user: AuthUser = Depends(get_current_user)):
    """How many characters the caller has and may create."""
    return CharacterService.get_limits(user.id)


@router.get("")
async def list_characters(
    user: AuthUser | None = Depends(get_current_user_optional),
    scope: Annotated[CharacterScope, Query(description="mine, public or all")] = CharacterScope.ALL,
):
    """
    List characters, newest first.

    - mine: the caller's characters (empty when anonymous)
    - public: public characters
    - all: public characters plus the caller's own
    """
    characters = CharacterService.list_characters(scope, user.id if user else None)
    return {"characters": characters}


@router.get("/{character_id}")
async def get_character(
    character_id: str,
    user: AuthUser | None = Depends(get_current_user_optional),
    include_all: Annotated[bool, Query(alias="includeAll")] = False,
):
    """
    Character with its gallery.

    Non-owners only see posted images; the owner can pass includeAll=true.
    """
    return CharacterService.get_with_images(
        character_id,
        user.id if user else None,
        include_all=include_all,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_character(
    request: CharacterCreate,
    user: AuthUser = Depends(get_current_user),
):
    character = CharacterService.create_character(user.id, request)
    return {"character": character}


@router.put("/{character_id}")
def update_character(
    character_id: str,
    request: CharacterUpdate,
    user: AuthUser = Depends(get_current_user),
):
    character = CharacterService.update_character(character_id, user.id, request)
    return {"character": character}


@router.delete("/{character_id}")
async def delete_character(character_id: str, user: AuthUser = Depends(get_current_user)):
    CharacterService.delete_character(character_id, user.id)
    return {"success": True}
