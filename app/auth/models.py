# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for the authenticated caller and their profile.
# =============================================================================

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """
    Caller extracted from a verified Supabase access token.

    Only what the token carries; the profile lives in public.profiles.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None


class ProfileResponse(BaseModel):
    """Row of public.profiles returned by /auth/me."""

    id: UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
