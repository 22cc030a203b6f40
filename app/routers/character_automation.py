# =============================================================================
# app/routers/character_automation.py - Automated Character Generation
# =============================================================================
# Settings and release endpoints act for the signed-in creator. The two
# /cron endpoints are for an external scheduler (Celery beat runs the same
# tasks) and are guarded by CRON_SECRET:
# - GET /cron queues a day's characters for every due settings row
# - POST /cron generates pending queue items
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.auth import AuthUser, get_current_user
from app.dependencies import CronAuth
from core.models.character import (
    AutomationSettingsRequest,
    AutomationSettingsUpdate,
    BulkReleaseRequest,
    CharacterGenerateRequest,
    QueueProcessRequest,
    ReleaseRequest,
)
from core.services.character_automation_service import CharacterAutomationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def get_settings(
    user: AuthUser = Depends(get_current_user),
    include_stats: Annotated[bool, Query(alias="includeStats")] = False,
):
    """Saved settings, or the defaults when the creator has none."""
    return CharacterAutomationService.get_settings(user.id, include_stats)


@router.post("")
def save_settings(request: AutomationSettingsRequest, user: AuthUser = Depends(get_current_user)):
    return CharacterAutomationService.save_settings(user.id, request)


@router.put("")
def update_settings(request: AutomationSettingsUpdate, user: AuthUser = Depends(get_current_user)):
    """Partial update, or {"action": "toggle"} to switch automation on or off."""
    return CharacterAutomationService.update_settings(user.id, request)


@router.delete("")
def delete_settings(user: AuthUser = Depends(get_current_user)):
    CharacterAutomationService.delete_settings(user.id)
    return {"success": True}


@router.post("/generate")
def generate_character(request: CharacterGenerateRequest, user: AuthUser = Depends(get_current_user)):
    """Generate one character and its images now. Can take several minutes."""
    return CharacterAutomationService.generate(user.id, request)


@router.put("/release")
def release_character(request: ReleaseRequest, user: AuthUser = Depends(get_current_user)):
    return CharacterAutomationService.release(user.id, request)


@router.post("/release")
def release_characters(request: BulkReleaseRequest, user: AuthUser = Depends(get_current_user)):
    return CharacterAutomationService.release_many(user.id, request)


def _submit(task_name: str, *args):
    try:
        from workers import tasks

        result = getattr(tasks, task_name).delay(*args)
    except Exception as e:
        logger.error(f"Error submitting {task_name}: {e}")
        raise HTTPException(
            status_code=503,
            detail=f"Failed to submit task. Is Redis running? Error: {e}",
        )

    return {
        "task_id": result.id,
        "status": "PENDING",
        "message": "Character automation queued. Use GET /api/v1/tasks/{task_id} to check status.",
    }


@router.get("/cron")
def queue_due_settings(
    _: CronAuth,
    inline: Annotated[bool, Query()] = False,
):
    """Queue characters for every due settings row (inline=true runs it in the request)."""
    if inline:
        return CharacterAutomationService.process_due_settings()
    return _submit("process_due_character_automation")


@router.post("/cron")
def process_queue(
    _: CronAuth,
    request: Annotated[QueueProcessRequest | None, Body()] = None,
    inline: Annotated[bool, Query()] = False,
):
    """Generate up to limit pending queue items, oldest first."""
    limit = (request or QueueProcessRequest()).limit
    if inline:
        return CharacterAutomationService.process_queue(limit)
    return _submit("process_character_generation_queue", limit)
