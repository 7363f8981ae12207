"""
Celery Application Instance

Creates the Celery app instance for use by workers and beat scheduler.
Uses the app factory so the worker shares the web process's storage and
record configuration, which must therefore live in Redis.
"""

from quickdrop.app_factory import create_app
from quickdrop.config.transfer_config import TransferConfig

config = TransferConfig()
# Sweeps come from beat; the worker must not start its own reaper thread
config.reaper_mode = "celery"
config.validate()

flask_app = create_app(config)

celery_app = flask_app.celery

# Imported by name when the worker starts, after celery_app exists
celery_app.conf.imports = ("quickdrop.tasks.reaper_task",)
