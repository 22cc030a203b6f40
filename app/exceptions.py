# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error carries a machine-readable code and, where possible, a
# suggestion telling the client how to recover.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class PersonaException(Exception):
    """
    Base exception for the Persona API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "PERSONA_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Generic Exceptions
# =============================================================================

class ValidationFailedError(PersonaException):
    """Raised when a request is well-formed but semantically invalid."""

    def __init__(self, message: str, suggestion: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="VALIDATION_FAILED",
            status_code=400,
            suggestion=suggestion,
            details=details,
        )


class ResourceNotFoundError(PersonaException):
    """Raised when a record doesn't exist or the caller may not see it."""

    def __init__(self, resource: str, resource_id: str | None = None):
        super().__init__(
            message=f"{resource} not found" + (f": {resource_id}" if resource_id else ""),
            code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
            details={"id": resource_id} if resource_id else None,
        )


class ForbiddenError(PersonaException):
    """Raised when the caller is authenticated but not allowed."""

    def __init__(self, message: str, code: str = "FORBIDDEN", suggestion: str | None = None):
        super().__init__(
            message=message,
            code=code,
            status_code=403,
            suggestion=suggestion,
        )


class AuthenticationRequiredError(PersonaException):
    """Raised by optional-auth endpoints when the action needs a user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="AUTHENTICATION_REQUIRED",
            status_code=401,
            suggestion="Sign in and retry with a Bearer token",
        )


# =============================================================================
# Character Exceptions
# =============================================================================

class CharacterNotFoundError(PersonaException):
    """Raised when a character ID doesn't exist (or is private to someone else)."""

    def __init__(self, character_id: str):
        super().__init__(
            message=f"Character not found: {character_id}",
            code="CHARACTER_NOT_FOUND",
            status_code=404,
            suggestion="Check that the character_id is correct and the character is public",
            details={"character_id": character_id}
        )


class NotCharacterOwnerError(ForbiddenError):
    """Raised when a non-owner tries an owner-only action."""

    def __init__(self, character_id: str):
        super().__init__(
            message="You don't own this character",
            code="NOT_CHARACTER_OWNER",
        )
        self.details = {"character_id": character_id}


class CharacterLimitError(ForbiddenError):
    """Raised when a user is at their plan's character limit."""

    def __init__(self, current: int, limit: int, is_premium: bool):
        super().__init__(
            message=f"Character limit reached ({current}/{limit})",
            code="CHARACTER_LIMIT_REACHED",
            suggestion=None if is_premium else "Upgrade to premium to create up to 10 characters",
        )
        self.details = {"current": current, "limit": limit, "is_premium": is_premium}


# =============================================================================
# Monetization Exceptions
# =============================================================================

class PremiumRequiredError(ForbiddenError):
    """Raised when a creator feature needs an active premium subscription."""

    def __init__(self, feature: str):
        super().__init__(
            message=f"Premium subscription required for {feature}",
            code="PREMIUM_REQUIRED",
            suggestion="Subscribe to a premium plan via POST /api/v1/premium",
        )


class InsufficientCoinsError(PersonaException):
    """Raised when a coin deduction would overdraw the balance."""

    def __init__(self, required: int, balance: int | None = None):
        super().__init__(
            message=f"Insufficient coins: {required} required",
            code="INSUFFICIENT_COINS",
            status_code=402,
            suggestion="Purchase more coins via POST /api/v1/coins/purchase",
            details={"required": required, "balance": balance},
        )


class TipNotAllowedError(ValidationFailedError):
    """Raised when a tip fails the creator's monetization rules."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)
        self.code = "TIP_NOT_ALLOWED"


class TierNotFoundError(PersonaException):
    """Raised when a subscription tier doesn't exist or is inactive."""

    def __init__(self, tier_id: str):
        super().__init__(
            message=f"Tier not found: {tier_id}",
            code="TIER_NOT_FOUND",
            status_code=404,
            details={"tier_id": tier_id}
        )


class SubscriptionNotFoundError(PersonaException):
    """Raised when a fan or premium subscription doesn't exist."""

    def __init__(self, subscription_id: str | None = None):
        super().__init__(
            message="Subscription not found",
            code="SUBSCRIPTION_NOT_FOUND",
            status_code=404,
            details={"subscription_id": subscription_id} if subscription_id else None,
        )


class ConnectAccountRequiredError(ValidationFailedError):
    """Raised when a creator hasn't finished Stripe Connect onboarding."""

    def __init__(self, message: str = "Creator has not set up payouts yet"):
        super().__init__(
            message=message,
            suggestion="Complete payout onboarding via POST /api/v1/stripe-connect/onboard",
        )
        self.code = "CONNECT_ACCOUNT_REQUIRED"


class PayoutError(PersonaException):
    """Raised when a payout request fails."""

    def __init__(self, message: str, status_code: int = 400, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="PAYOUT_FAILED",
            status_code=status_code,
            details=details,
        )


class StripeNotConfiguredError(PersonaException):
    """Raised when a payment endpoint is used without Stripe credentials."""

    def __init__(self):
        super().__init__(
            message="Payment processing is not configured",
            code="STRIPE_NOT_CONFIGURED",
            status_code=503,
            suggestion="Set STRIPE_SECRET_KEY in the server environment",
        )


class WebhookSignatureError(PersonaException):
    """Raised when a Stripe webhook payload can't be verified."""

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(
            message=message,
            code="INVALID_WEBHOOK_SIGNATURE",
            status_code=400,
        )


# =============================================================================
# External Service Exceptions
# =============================================================================

class ExternalServiceError(PersonaException):
    """Raised when a third-party API (Segmind, Late, OpenAI, Stripe) fails."""

    def __init__(self, service: str, error: str, status_code: int = 502):
        super().__init__(
            message=f"{service} request failed: {error}",
            code=f"{service.upper()}_ERROR",
            status_code=status_code,
            suggestion="Try again later or contact support if the issue persists",
            details={"service": service},
        )


class StorageUploadError(PersonaException):
    """Raised when file upload to storage fails."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Failed to upload file to storage: {error}",
            code="STORAGE_UPLOAD_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error}
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def persona_exception_handler(
    request: Request,
    exc: PersonaException
) -> JSONResponse:
    """
    Convert PersonaException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
