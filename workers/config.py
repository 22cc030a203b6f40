# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers.
# =============================================================================

from app.config import settings


class CeleryConfig:
    """
    Celery configuration settings.

    Applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge after completion so a crashed worker's task is redelivered
    task_acks_late = True
    worker_prefetch_multiplier = 1

    result_expires = 3600

    # A content run generates one image per due schedule. The character queue
    # task sets its own, longer limits
    task_time_limit = 900
    task_soft_time_limit = 840

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "ai_tasks": {
            "exchange": "ai_tasks",
            "routing_key": "ai_tasks",
        },
    }

    task_routes = {
        "workers.tasks.process_due_content_schedules": {"queue": "ai_tasks"},
        "workers.tasks.run_content_schedule": {"queue": "ai_tasks"},
        "workers.tasks.process_due_character_automation": {"queue": "default"},
        "workers.tasks.process_character_generation_queue": {"queue": "ai_tasks"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Periodic Tasks (celery beat)
    # -------------------------------------------------------------------------

    beat_schedule = {
        "process-due-content-schedules": {
            "task": "workers.tasks.process_due_content_schedules",
            "schedule": float(settings.CONTENT_SCHEDULE_INTERVAL_SECONDS),
        },
        "process-due-character-automation": {
            "task": "workers.tasks.process_due_character_automation",
            "schedule": float(settings.CHARACTER_AUTOMATION_INTERVAL_SECONDS),
        },
        "process-character-generation-queue": {
            "task": "workers.tasks.process_character_generation_queue",
            "schedule": float(settings.CHARACTER_AUTOMATION_INTERVAL_SECONDS),
        },
    }

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    worker_send_task_events = True
    task_send_sent_event = True

    timezone = "UTC"
    enable_utc = True
