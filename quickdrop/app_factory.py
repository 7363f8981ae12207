"""
Application Factory

Creates and configures the Flask application with all dependencies.
Configuration can be passed in so tests can swap backends and disable the
background reaper.
"""

import logging
from datetime import timedelta
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from quickdrop.application.dependency_container import DependencyContainer
from quickdrop.application.event_publisher import EventPublisher
from quickdrop.application.reaper import Reaper
from quickdrop.application.transfer_service import TransferService
from quickdrop.config.transfer_config import TransferConfig
from quickdrop.domain.file_storage.object_store import IObjectStore
from quickdrop.domain.object_lifecycle.repositories import ObjectRecordRepository
from quickdrop.domain.object_lifecycle.services import LifecycleManager
from quickdrop.domain.object_lifecycle.token_generator import TokenGenerator
from quickdrop.infrastructure.qr_code_renderer import QrCodeRenderer
from quickdrop.infrastructure.storage_factory import StorageFactory

logger = logging.getLogger(__name__)


def create_app(config: Optional[TransferConfig] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Transfer configuration, read from the environment if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = TransferConfig()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes
    app.transfer_config = config

    CORS(
        app,
        resources={
            r"/*": {
                "origins": "*",
                "methods": ["GET", "POST", "OPTIONS"],
                "allow_headers": ["Content-Type"],
                "expose_headers": ["Content-Disposition", "Content-Length"],
                "max_age": 3600,
            }
        },
    )

    _initialize_infrastructure(app, config)
    _initialize_services(app, config)
    _register_blueprints(app)
    _register_health_endpoint(app)

    return app


def _initialize_infrastructure(app: Flask, config: TransferConfig) -> None:
    """
    Initialize infrastructure components (Redis, Celery).

    Args:
        app: Flask application
        config: Transfer configuration
    """
    if config.record_backend == "redis":
        from quickdrop.config.redis_config import init_redis

        init_redis()
        logger.info("Redis initialized successfully")

    app.celery = None
    if config.reaper_mode == "celery":
        from quickdrop.config.celery_config import make_celery

        app.celery = make_celery(app)
        logger.info("Celery initialized successfully")


def _initialize_services(app: Flask, config: TransferConfig) -> None:
    """
    Build the object graph and attach it to the app through DependencyContainer.

    API resources and Celery tasks resolve services with
    current_app.container.resolve(); nothing instantiates them directly.

    Args:
        app: Flask application
        config: Transfer configuration
    """
    container = DependencyContainer()

    event_publisher = EventPublisher()
    container.setup_event_handlers(event_publisher)
    container.register_singleton(EventPublisher, event_publisher)

    object_store = StorageFactory.create_object_store(config)
    record_repository = StorageFactory.create_record_repository(config)
    container.register_singleton(IObjectStore, object_store)
    container.register_singleton(ObjectRecordRepository, record_repository)

    lifecycle_manager = LifecycleManager(
        record_repository,
        object_store,
        token_generator=TokenGenerator(),
        event_publisher=event_publisher,
    )
    container.register_singleton(LifecycleManager, lifecycle_manager)

    qr_renderer = QrCodeRenderer()
    container.register_singleton(QrCodeRenderer, qr_renderer)

    transfer_service = TransferService.from_config(lifecycle_manager, qr_renderer, config)
    container.register_singleton(TransferService, transfer_service)

    reaper = Reaper(
        lifecycle_manager,
        interval_seconds=config.reaper_interval_seconds,
        orphan_grace=timedelta(seconds=config.orphan_grace_seconds),
    )
    container.register_singleton(Reaper, reaper)
    if config.reaper_mode == "thread":
        reaper.start()

    app.container = container

    logger.info(
        f"Application services initialized with DependencyContainer "
        f"({container.singleton_count} singletons), share links at {transfer_service.base_url}"
    )


def _register_blueprints(app: Flask) -> None:
    """
    Register API blueprints.

    Args:
        app: Flask application
    """
    from quickdrop.api import api_bp

    app.register_blueprint(api_bp)
    logger.debug("API registered with Swagger UI at /docs")


def _get_health_status(app: Flask) -> tuple[dict, int]:
    """
    Get health status of all system components.

    Args:
        app: Flask application instance

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    config: TransferConfig = app.transfer_config
    container: DependencyContainer = app.container

    health_status = {
        "status": "ok",
        "message": "quickdrop ready",
        "storage": "unknown",
        "records": config.record_backend,
        "reaper": config.reaper_mode,
    }

    if container.resolve(IObjectStore).health_check():
        health_status["storage"] = "available"
    else:
        health_status["storage"] = "unavailable"
        health_status["status"] = "degraded"

    if config.record_backend == "redis":
        from quickdrop.config.redis_config import redis_health_check

        if redis_health_check():
            health_status["records"] = "redis connected"
        else:
            health_status["records"] = "redis disconnected"
            health_status["status"] = "degraded"

    if config.reaper_mode == "thread":
        if container.resolve(Reaper).is_running:
            health_status["reaper"] = "running"
        else:
            health_status["reaper"] = "stopped"
            health_status["status"] = "degraded"
    elif config.reaper_mode == "celery":
        health_status["reaper"] = "celery" if app.celery is not None else "unavailable"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask) -> None:
    """
    Register health check endpoint.

    Args:
        app: Flask application
    """

    @app.route("/health", methods=["GET"])
    def health():
        """
        Health check endpoint.
        Returns overall health status of the service and its storage.
        """
        health_status, status_code = _get_health_status(app)
        return jsonify(health_status), status_code


def shutdown_app(app: Flask, timeout: Optional[float] = 30.0) -> bool:
    """
    Stop the reaper, drain in-flight operations and release storage.

    Args:
        app: Application created by create_app
        timeout: Seconds to wait for in-flight operations

    Returns:
        True if every in-flight operation finished
    """
    container: DependencyContainer = app.container

    container.resolve(Reaper).stop()
    drained = container.resolve(LifecycleManager).shutdown(timeout)
    container.resolve(IObjectStore).close()
    container.resolve(ObjectRecordRepository).close()

    if app.transfer_config.record_backend == "redis":
        from quickdrop.config.redis_config import close_redis

        close_redis()

    logger.info("QuickDrop shut down" + ("" if drained else " with operations still in flight"))
    return drained
