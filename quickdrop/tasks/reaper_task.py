"""
Reaper Task

Celery beat task for the periodic sweep of expired and consumed objects.
Thin wrapper that delegates to the Reaper application service.
"""

import logging

from celery_app import celery_app
from quickdrop.config.celery_config import REAPER_TASK_NAME

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=REAPER_TASK_NAME)
def reap_expired_objects(self):
    """
    Periodic sweep that expires overdue objects, purges terminal ones and
    removes orphaned payloads.

    Runs every REAPER_INTERVAL_SECONDS (configured in the Celery beat
    schedule). Only the Reaper is accessed, through DependencyContainer.

    Returns:
        dict: Sweep statistics with counts and errors
    """
    from celery_app import flask_app
    from quickdrop.application.reaper import Reaper

    logger.info("Starting reaper task")
    try:
        reaper = flask_app.container.resolve(Reaper)
        return reaper.sweep()
    except Exception as e:
        error_msg = f"Reaper task failed: {e}"
        logger.error(error_msg, exc_info=True)
        return {
            "expired": 0,
            "purged": 0,
            "orphans_removed": 0,
            "errors": [error_msg],
        }
