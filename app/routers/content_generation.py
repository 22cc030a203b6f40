# =============================================================================
# app/routers/content_generation.py - Scheduled Content Generation
# =============================================================================
# POST /cron is called by an external scheduler (or Celery beat runs the
# same task); it is guarded by CRON_SECRET, not a user token.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth import AuthUser, get_current_user
from app.dependencies import CronAuth
from core.models.social import ContentPromptRequest, ContentStatus, ScheduleCreate, ScheduleUpdate
from core.services.content_generation_service import ContentGenerationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/prompts")
def generate_prompts(request: ContentPromptRequest, user: AuthUser = Depends(get_current_user)):
    """Creative prompt suggestions for an owned character."""
    return ContentGenerationService.generate_prompts(user.id, request)


@router.get("/schedules")
def list_schedules(
    user: AuthUser = Depends(get_current_user),
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    active_only: Annotated[bool, Query(alias="activeOnly")] = False,
):
    schedules = ContentGenerationService.list_schedules(user.id, character_id, active_only)
    return {"schedules": schedules}


@router.get("/schedules/{schedule_id}")
def get_schedule(schedule_id: str, user: AuthUser = Depends(get_current_user)):
    return ContentGenerationService.get_schedule(schedule_id, user.id)


@router.post("/schedules", status_code=status.HTTP_201_CREATED)
def create_schedule(request: ScheduleCreate, user: AuthUser = Depends(get_current_user)):
    return ContentGenerationService.create_schedule(user.id, request)


@router.patch("/schedules/{schedule_id}")
def update_schedule(
    schedule_id: str,
    request: ScheduleUpdate,
    user: AuthUser = Depends(get_current_user),
):
    return ContentGenerationService.update_schedule(schedule_id, user.id, request)


@router.delete("/schedules/{schedule_id}")
def delete_schedule(schedule_id: str, user: AuthUser = Depends(get_current_user)):
    ContentGenerationService.delete_schedule(schedule_id, user.id)
    return {"success": True}


@router.post("/schedules/{schedule_id}/run")
def run_schedule_now(
    schedule_id: str,
    user: AuthUser = Depends(get_current_user),
    inline: Annotated[bool, Query()] = False,
):
    """Generate one piece of content for an owned schedule now."""
    schedule = ContentGenerationService.get_schedule(schedule_id, user.id)
    if inline:
        return {"success": True, "content": ContentGenerationService.run_schedule(schedule)}

    try:
        from workers.tasks import run_content_schedule

        result = run_content_schedule.delay(schedule_id)
    except Exception as e:
        logger.error(f"Error submitting schedule {schedule_id}: {e}")
        raise HTTPException(
            status_code=503,
            detail=f"Failed to submit task. Is Redis running? Error: {e}",
        )

    return {"task_id": result.id, "status": "PENDING"}


@router.get("/content")
def list_content(
    user: AuthUser = Depends(get_current_user),
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    content_status: Annotated[ContentStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
):
    content = ContentGenerationService.list_content(user.id, character_id, content_status, limit)
    return {"content": content}


@router.post("/cron")
def run_due_schedules(
    _: CronAuth,
    inline: Annotated[bool, Query()] = False,
):
    """
    Process every due schedule.

    By default the work is queued on Celery and a task ID is returned; with
    inline=true it runs in the request and returns the summary.
    """
    if inline:
        return ContentGenerationService.process_due_schedules()

    try:
        from workers.tasks import process_due_content_schedules

        result = process_due_content_schedules.delay()
    except Exception as e:
        logger.error(f"Error submitting content schedule task: {e}")
        raise HTTPException(
            status_code=503,
            detail=f"Failed to submit task. Is Redis running? Error: {e}",
        )

    return {
        "task_id": result.id,
        "status": "PENDING",
        "message": "Content generation queued. Use GET /api/v1/tasks/{task_id} to check status.",
    }
