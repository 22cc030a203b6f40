# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Supabase access-token verification.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/coins")
#   async def coins(user: AuthUser = Depends(get_current_user)):
#       return CoinService.get_balance(user.id)
# =============================================================================

from app.auth.dependencies import get_current_user, get_current_user_optional
from app.auth.models import AuthUser, ProfileResponse

__all__ = [
    "get_current_user",
    "get_current_user_optional",
    "AuthUser",
    "ProfileResponse",
]
