# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Sign-up and login happen client-side with Supabase Auth; these routes
# expose the verified caller.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, ProfileResponse
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=ProfileResponse)
async def get_current_user_info(user: AuthUser = Depends(get_current_user)) -> ProfileResponse:
    """
    The caller's profile.

    Falls back to the token's identity while the profile row doesn't exist
    yet (the sign-up trigger may not have run).
    """
    try:
        profile = SupabaseClient.fetch_profile(user.id)
        if profile:
            return ProfileResponse(**profile)
    except Exception as e:
        logger.warning(f"Could not fetch profile for {user.id}: {e}")

    return ProfileResponse(id=user.id, email=user.email)


@router.get("/verify")
async def verify_token(user: AuthUser = Depends(get_current_user)) -> dict:
    """Confirm the token is valid."""
    return {"valid": True, "user_id": str(user.id), "email": user.email}
