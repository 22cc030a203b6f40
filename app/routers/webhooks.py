# =============================================================================
# app/routers/webhooks.py - Stripe Webhook Receiver
# =============================================================================
# The body must be read raw: the signature covers the exact bytes Stripe sent.
# A handler failure returns 500 so Stripe redelivers the event.
# =============================================================================

import logging

from fastapi import APIRouter, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from core.services.webhook_service import WebhookService
from lib.stripe_client import construct_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
):
    payload = await request.body()
    event = construct_event(payload, stripe_signature)

    try:
        await run_in_threadpool(WebhookService.handle_event, event)
    except Exception as e:
        logger.error(f"Webhook handler error for {event['type']}: {e}")
        return JSONResponse(status_code=500, content={"detail": "Webhook handler failed"})

    return {"received": True}
