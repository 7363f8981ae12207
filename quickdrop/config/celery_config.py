"""
Celery Configuration

Configures Celery with Flask integration, Redis broker, and the periodic
reaper schedule.
"""

import os

from celery import Celery
from kombu import Queue

REAPER_TASK_NAME = "quickdrop.tasks.reap_expired_objects"


class CeleryConfig:
    """Celery configuration settings."""

    # Broker settings
    broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    # Task settings
    task_serializer = "json"
    accept_content = ["json"]
    result_serializer = "json"
    timezone = "UTC"
    enable_utc = True

    # Worker settings
    worker_prefetch_multiplier = 1
    task_acks_late = True

    task_routes = {
        REAPER_TASK_NAME: {"queue": "reaper_queue"},
    }

    task_default_queue = "default"
    task_queues = (
        Queue("default", routing_key="default"),
        Queue("reaper_queue", routing_key="reaper"),
    )

    beat_schedule = {
        "reap-expired-objects": {
            "task": REAPER_TASK_NAME,
            "schedule": float(os.getenv("REAPER_INTERVAL_SECONDS", 60)),
        },
    }

    # A sweep that overruns its interval is cut off rather than stacking up
    task_soft_time_limit = int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", 300))
    task_time_limit = int(os.getenv("CELERY_TASK_TIME_LIMIT", 360))

    result_expires = 3600

    worker_concurrency = int(os.getenv("CELERY_WORKER_CONCURRENCY", 1))


def make_celery(app):
    """
    Create Celery instance with Flask app context.

    Args:
        app: Flask application instance

    Returns:
        Configured Celery instance
    """
    celery = Celery(
        app.import_name,
        backend=CeleryConfig.result_backend,
        broker=CeleryConfig.broker_url,
    )
    celery.config_from_object(CeleryConfig)

    class ContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery
