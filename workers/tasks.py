# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Tasks:
# - process_due_content_schedules: Run every due content schedule (beat + cron)
# - run_content_schedule: Run one schedule now, regardless of its next run time
# - process_due_character_automation: Queue characters for due automations
# - process_character_generation_queue: Generate pending queued characters
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="workers.tasks.process_due_content_schedules")
def process_due_content_schedules(self) -> dict[str, Any]:
    """
    Generate content for every active schedule whose next run has passed.

    Returns:
        Dict with processed, success, failed and per-schedule results
    """
    from core.services.content_generation_service import ContentGenerationService

    summary = ContentGenerationService.process_due_schedules()
    logger.info(
        f"Content schedules processed: {summary['processed']} "
        f"({summary['success']} success, {summary['failed']} failed)"
    )
    return summary


@shared_task(bind=True, name="workers.tasks.run_content_schedule")
def run_content_schedule(self, schedule_id: str) -> dict[str, Any]:
    """
    Run a single schedule immediately.

    Returns:
        Dict with success and the generated_content row or the error
    """
    from core.services.content_generation_service import SCHEDULES_TABLE, ContentGenerationService

    schedule = SupabaseClient.fetch_one(SCHEDULES_TABLE, id=schedule_id)
    if not schedule:
        logger.warning(f"Content schedule {schedule_id} not found")
        return {"success": False, "error": "Schedule not found"}

    try:
        content = ContentGenerationService.run_schedule(schedule)
    except Exception as e:
        logger.error(f"Content schedule {schedule_id} failed: {e}")
        return {"success": False, "error": str(e)}

    return {"success": True, "content": content}


@shared_task(bind=True, name="workers.tasks.process_due_character_automation")
def process_due_character_automation(self) -> dict[str, Any]:
    """
    Queue a day's characters for every active automation that is due.

    Returns:
        Dict with processed, success, failed and totalCharactersQueued
    """
    from core.services.character_automation_service import CharacterAutomationService

    summary = CharacterAutomationService.process_due_settings()
    logger.info(
        f"Character automations processed: {summary['processed']} "
        f"({summary['totalCharactersQueued']} characters queued)"
    )
    return summary


# Each character is a profile plus several images, up to two minutes each
@shared_task(
    bind=True,
    name="workers.tasks.process_character_generation_queue",
    time_limit=3600,
    soft_time_limit=3540,
)
def process_character_generation_queue(self, limit: int = 5) -> dict[str, Any]:
    """
    Generate up to limit pending characters, oldest first.

    Returns:
        Dict with processed, success, failed and per-item results
    """
    from core.services.character_automation_service import CharacterAutomationService

    summary = CharacterAutomationService.process_queue(limit)
    logger.info(
        f"Character queue processed: {summary['processed']} "
        f"({summary['success']} success, {summary['failed']} failed)"
    )
    return summary
