# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependencies that aren't tied to a user session.
# =============================================================================

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.config import settings

logger = logging.getLogger(__name__)


def verify_cron_secret(authorization: Annotated[str | None, Header()] = None) -> None:
    """
    Guard for scheduler-invoked endpoints.

    When CRON_SECRET is set the request must carry
    `Authorization: Bearer <CRON_SECRET>`; without it the check is off.
    """
    if not settings.CRON_SECRET:
        return

    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        logger.warning("Rejected cron request with a bad or missing secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


CronAuth = Annotated[None, Depends(verify_cron_secret)]
