# =============================================================================
# app/routers/tasks.py - Background Task Status
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path
from pydantic import BaseModel

logger = logging.getLogger(__name__)

router = APIRouter()


class TaskStatusResponse(BaseModel):
    """Response model for task status."""
    task_id: str
    status: str
    message: str | None = None
    result: dict | None = None
    error: str | None = None


STATUS_MESSAGES = {
    "PENDING": "Waiting in queue...",
    "STARTED": "Starting...",
    "SUCCESS": "Complete",
    "FAILURE": "Failed",
}


@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: Annotated[str, Path(description="Celery task ID")],
):
    """
    State of a queued content generation run.

    SUCCESS includes the run summary; FAILURE includes the error.
    """
    try:
        from workers.celery_app import celery_app

        result = celery_app.AsyncResult(task_id)
        response = TaskStatusResponse(
            task_id=task_id,
            status=result.status,
            message=STATUS_MESSAGES.get(result.status),
        )
        if result.status == "SUCCESS":
            response.result = result.result
        elif result.status == "FAILURE":
            response.error = str(result.result) if result.result else "Unknown error"
        return response

    except Exception as e:
        logger.error(f"Error getting task status: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get task status: {e}")
