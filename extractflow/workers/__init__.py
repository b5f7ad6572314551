"""
Celery workers module.

Background poller and expiration sweep, scheduled by Celery beat.

Dependencies: celery, python-dotenv, extractflow.configs
System role: Background task processing
"""

from celery import Celery
from dotenv import load_dotenv

from extractflow.configs import get_settings

# boto3 reads AWS credentials from the process environment
load_dotenv()

settings = get_settings()
celery_config = settings.celery

POLL_TASK_NAME = "extractflow.poll_active_jobs"
SWEEP_TASK_NAME = "extractflow.sweep_expired_sessions"

celery_app = Celery(
    "extractflow",
    broker=celery_config.broker_url,
    backend=celery_config.result_backend_url,
    include=["extractflow.workers.tasks.polling", "extractflow.workers.tasks.cleanup"],
)

celery_app.conf.update(
    task_serializer=celery_config.task_serializer,
    result_serializer=celery_config.result_serializer,
    accept_content=celery_config.accept_content,
    timezone=celery_config.timezone,
    beat_schedule={
        "poll-active-jobs": {
            "task": POLL_TASK_NAME,
            "schedule": settings.processing.polling_interval_seconds,
        },
        "sweep-expired-sessions": {
            "task": SWEEP_TASK_NAME,
            "schedule": float(settings.processing.cleanup_interval_seconds),
        },
    },
)
