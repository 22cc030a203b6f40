# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# scheduled content generation.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (due schedules, single schedule runs)
# - config.py: Worker-specific settings
#
# Usage:
#   # Start worker and beat
#   celery -A workers.celery_app worker -Q default,ai_tasks --beat --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import run_content_schedule
#   result = run_content_schedule.delay(schedule_id)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
