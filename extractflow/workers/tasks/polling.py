"""
Background poller Celery task.

Task: poll_active_jobs()
Flow: submit queued jobs -> poll in-flight jobs -> aggregate sessions -> bundle

Dependencies: extractflow.workers
System role: Periodic job progression
"""

import logging

from extractflow.workers import POLL_TASK_NAME, celery_app
from extractflow.workers.runtime import run_processing

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=POLL_TASK_NAME, ignore_result=True)
def poll_active_jobs(self):
    """
    Run one polling cycle.

    Overlapping runs are safe: every job and session step is a
    conditional transition.

    Returns:
        dict: Counts of touched and aggregated sessions
    """
    result = run_processing(lambda service: service.poll_cycle())
    logger.debug(f"{__name__}:poll_active_jobs - {result}")
    return result
