# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# Main entry point for the Persona API.
# Configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import PersonaException, persona_exception_handler
from app.routers import (
    analytics,
    character_automation,
    characters,
    chat,
    coins,
    content_generation,
    discovery,
    earnings,
    follows,
    health,
    images,
    image_interactions,
    interactions,
    monetization,
    premium,
    social_media,
    stripe_connect,
    subscriptions,
    tasks,
    tiers,
    tips,
    webhooks,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration on startup and shutdown."""
    logger.info(f"Starting Persona API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.stripe_enabled:
        logger.warning("STRIPE_SECRET_KEY not set: payments, payouts and webhooks are disabled")
    if not settings.segmind_enabled:
        logger.warning("SEGMIND_API_KEY not set: image generation is disabled")

    yield

    logger.info("Shutting down Persona API")


app = FastAPI(
    title="Persona API",
    description="""
## AI Companion & Influencer Platform API

Creators design AI characters, chat with them, generate consistent images,
publish to social media and earn from their fans.

### Money

| Flow | Mechanism |
|------|-----------|
| **Coins** | Prepaid balance spent on images, gifts and tips |
| **Premium** | Creator subscription (Stripe Checkout) |
| **Tips & fan subscriptions** | Stripe Connect with a 15% platform fee |
| **Payouts** | Transfers of available earnings (minimum $20) |

Stripe events are reconciled by `POST /api/v1/webhooks/stripe`.
""",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Verify Supabase access tokens"},
        {"name": "Characters", "description": "Create and manage AI characters"},
        {"name": "Chat", "description": "In-character chat and gifts"},
        {"name": "Images", "description": "Image generation, face swap and galleries"},
        {"name": "Coins", "description": "Coin balance, packages and auto-recharge"},
        {"name": "Premium", "description": "Creator premium subscription"},
        {"name": "Tips", "description": "Tips with coins or card"},
        {"name": "Tiers", "description": "Creator subscription tiers"},
        {"name": "Subscriptions", "description": "Fan subscriptions to creator tiers"},
        {"name": "Monetization", "description": "Per-character monetization settings"},
        {"name": "Earnings", "description": "Creator earnings ledger"},
        {"name": "Stripe Connect", "description": "Creator onboarding and payouts"},
        {"name": "Webhooks", "description": "Stripe event receiver"},
        {"name": "Follows", "description": "Follow characters"},
        {"name": "Interactions", "description": "Engagement tracking"},
        {"name": "Image Interactions", "description": "Likes and comments on gallery images"},
        {"name": "Analytics", "description": "Creator dashboards"},
        {"name": "Discovery", "description": "Browse public characters"},
        {"name": "Social Media", "description": "Publish through Late and draft captions"},
        {"name": "Content Generation", "description": "Scheduled AI content"},
        {"name": "Character Automation", "description": "Scheduled AI character generation"},
        {"name": "Tasks", "description": "Background task status"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(PersonaException)
async def handle_persona_exception(request: Request, exc: PersonaException):
    """Handle domain exceptions."""
    return await persona_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api/v1"

ROUTERS = [
    (auth_routes.router, "/auth", "Auth"),
    (health.router, "", "Health"),
    (characters.router, "/characters", "Characters"),
    (chat.router, "/chat", "Chat"),
    (images.router, "/images", "Images"),
    (coins.router, "/coins", "Coins"),
    (premium.router, "/premium", "Premium"),
    (tips.router, "/tips", "Tips"),
    (tiers.router, "/tiers", "Tiers"),
    (subscriptions.router, "/subscriptions", "Subscriptions"),
    (monetization.router, "/monetization", "Monetization"),
    (earnings.router, "/earnings", "Earnings"),
    (stripe_connect.router, "/stripe-connect", "Stripe Connect"),
    (webhooks.router, "/webhooks", "Webhooks"),
    (follows.router, "/follows", "Follows"),
    (interactions.router, "/interactions", "Interactions"),
    (image_interactions.router, "/image-interactions", "Image Interactions"),
    (analytics.router, "/analytics", "Analytics"),
    (discovery.router, "/discovery", "Discovery"),
    (social_media.router, "/social-media", "Social Media"),
    (content_generation.router, "/content-generation", "Content Generation"),
    (character_automation.router, "/character-automation", "Character Automation"),
    (tasks.router, "/tasks", "Tasks"),
]

for router, prefix, tag in ROUTERS:
    app.include_router(router, prefix=f"{API_PREFIX}{prefix}", tags=[tag])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Persona API",
        "version": health.API_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
    }
