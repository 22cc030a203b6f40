# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - characters.py, chat.py, images.py: Characters and their content
# - coins.py, premium.py: Coin ledger and creator premium
# - tips.py, tiers.py, subscriptions.py, monetization.py: Fan payments
# - earnings.py, stripe_connect.py, webhooks.py: Creator money and Stripe
# - follows.py, interactions.py, analytics.py, discovery.py: Social graph
# - image_interactions.py: Likes and comments on gallery images
# - social_media.py, content_generation.py, tasks.py: Publishing and jobs
# - character_automation.py: Scheduled character generation
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import characters
from . import chat
from . import images
from . import coins
from . import premium
from . import tips
from . import tiers
from . import subscriptions
from . import monetization
from . import earnings
from . import stripe_connect
from . import webhooks
from . import follows
from . import interactions
from . import image_interactions
from . import analytics
from . import discovery
from . import social_media
from . import content_generation
from . import character_automation
from . import tasks

__all__ = [
    "health",
    "characters",
    "chat",
    "images",
    "coins",
    "premium",
    "tips",
    "tiers",
    "subscriptions",
    "monetization",
    "earnings",
    "stripe_connect",
    "webhooks",
    "follows",
    "interactions",
    "image_interactions",
    "analytics",
    "discovery",
    "social_media",
    "content_generation",
    "character_automation",
    "tasks",
]
