"""
Expiration sweep Celery task.

Task: sweep_expired_sessions()
Flow: expire due sessions -> refund unfinished jobs -> purge storage -> log

Dependencies: extractflow.workers
System role: Periodic storage reclamation
"""

import logging

from extractflow.workers import SWEEP_TASK_NAME, celery_app
from extractflow.workers.runtime import run_processing

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=SWEEP_TASK_NAME)
def sweep_expired_sessions(self):
    """
    Run one expiration sweep.

    Returns:
        dict: Summary of the sweep's cleanup log
    """
    summary = run_processing(lambda service: service.cleanup_cycle())
    logger.info(f"{__name__}:sweep_expired_sessions - {summary}")
    return summary
