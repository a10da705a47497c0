import asyncio
from textwrap import dedent
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from loguru import logger

from nexus_api.db.pool import DatabasePool
from nexus_api.db.unit_of_work import UnitOfWork
from nexus_api.errors import NexusError
from nexus_api.errors import handle_broad_exceptions
from nexus_api.errors import handle_nexus_errors
from nexus_api.errors import handle_pydantic_validation_errors
from nexus_api.events.consumer import start_event_consumer
from nexus_api.events.publisher import EventPublisher
from nexus_api.events.publisher import LoggingEventPublisher
from nexus_api.events.publisher import QueueEventPublisher
from nexus_api.integrations.gemini_client import GeminiClient
from nexus_api.monitoring.logger import configure_logger
from nexus_api.monitoring.request_context import RequestContextMiddleware
from nexus_api.routes.routes_ai import ROUTER_AI
from nexus_api.routes.routes_health import ROUTER_HEALTH
from nexus_api.routes.routes_notifications import ROUTER_NOTIFICATIONS
from nexus_api.routes.routes_projects import ROUTER_PROJECTS
from nexus_api.routes.routes_proposals import ROUTER_PROPOSALS
from nexus_api.services.ai_service import AIService
from nexus_api.services.notification_service import NotificationService
from nexus_api.services.project_lifecycle import ProjectLifecycleManager
from nexus_api.services.proposal_lifecycle import ProposalLifecycleManager
from nexus_api.settings import Settings


def build_event_publisher(settings: Settings) -> EventPublisher:
    """Queue publisher when a broker is configured, logging publisher otherwise."""
    if settings.azure_queue_connection_string:
        publisher = QueueEventPublisher.from_settings(settings)
        logger.info(
            "Event publisher: Azure Storage Queue",
            project_queue=settings.project_events_queue,
            proposal_queue=settings.proposal_events_queue,
        )
        return publisher

    logger.warning("Azure queue not configured - lifecycle events will only be logged")
    return LoggingEventPublisher()


def build_ai_service(settings: Settings) -> AIService:
    client = None
    if settings.gemini_api_key:
        client = GeminiClient(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            model=settings.gemini_model,
            timeout_seconds=settings.ai_timeout_seconds,
        )
    else:
        logger.warning("GEMINI_API_KEY not set - AI endpoints will return fallback values")
    return AIService(client, timeout_seconds=settings.ai_timeout_seconds)


def wire_services(app: FastAPI, unit_of_work: Optional[UnitOfWork]) -> None:
    """Attach the lifecycle managers and notification service to ``app.state``."""
    app.state.unit_of_work = unit_of_work
    if unit_of_work is None:
        app.state.project_manager = None
        app.state.proposal_manager = None
        app.state.notification_service = None
        return

    project_manager = ProjectLifecycleManager(unit_of_work, app.state.event_publisher)
    app.state.project_manager = project_manager
    app.state.proposal_manager = ProposalLifecycleManager(
        unit_of_work,
        app.state.event_publisher,
        project_manager,
        app.state.ai_service,
    )
    app.state.notification_service = NotificationService(unit_of_work)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded from environment variables (or a .env file) via pydantic-settings.
    Without DATABASE_URL the app still starts; data endpoints answer 503.
    """
    settings = settings or Settings()

    configure_logger(
        log_level=settings.log_level,
        log_file_path=settings.log_file_path,
        service_name=settings.service_name,
    )

    logger.info(
        "Configuration loaded successfully",
        database_configured=bool(settings.database_url),
        queue_configured=bool(settings.azure_queue_connection_string),
        ai_configured=bool(settings.gemini_api_key),
        notification_consumer=settings.enable_notification_consumer,
        legacy_error_status=settings.legacy_error_status,
    )

    app = FastAPI(
        title=settings.service_name,
        version="v1",
        description=dedent(
            """
        Projects, proposals and their lifecycle for the Freelance Nexus marketplace.

        | Area | Notes |
        | --- | --- |
        | Identity | `X-User-Id`, `X-User-Email`, `X-User-Roles` headers set by the API gateway |
        | Events | `project.*` and `proposal.*` published after commit, best effort |
        | AI | Gemini backed; empty or placeholder results when unavailable |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,
            "defaultModelExpandDepth": 1,
        },
    )
    app.state.settings = settings
    app.state.event_publisher = build_event_publisher(settings)
    app.state.ai_service = build_ai_service(settings)
    app.state.db_pool = None
    app.state.consumer_task = None

    if settings.database_url:
        db_pool = DatabasePool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        app.state.db_pool = db_pool
        wire_services(app, UnitOfWork(db_pool))
    else:
        logger.warning("DATABASE_URL not set - project, proposal and notification endpoints will return 503")
        wire_services(app, None)

    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_PROJECTS, prefix="/api")
    app.include_router(ROUTER_PROPOSALS, prefix="/api")
    app.include_router(ROUTER_AI, prefix="/api")
    app.include_router(ROUTER_NOTIFICATIONS, prefix="/api")

    @app.on_event("startup")
    async def startup():
        """Initialize the database and start the notification consumer."""
        if app.state.db_pool is not None:
            await app.state.db_pool.initialize()

            if settings.enable_notification_consumer:
                if isinstance(app.state.event_publisher, QueueEventPublisher):
                    app.state.consumer_task = asyncio.create_task(
                        start_event_consumer(
                            app.state.event_publisher.queues.values(),
                            app.state.notification_service.handle_event,
                            poll_interval_seconds=settings.consumer_poll_interval_seconds,
                            visibility_timeout=settings.consumer_visibility_timeout,
                            max_dequeue_count=settings.consumer_max_dequeue_count,
                        )
                    )
                    logger.success("Notification consumer started")
                else:
                    logger.warning("Notification consumer enabled but no queue is configured")

    @app.on_event("shutdown")
    async def shutdown():
        """Stop the consumer, flush pending events and close the pool."""
        task = app.state.consumer_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            app.state.consumer_task = None

        await app.state.event_publisher.drain()

        if app.state.db_pool is not None:
            await app.state.db_pool.close()

    app.add_exception_handler(
        exc_class_or_status_code=NexusError,
        handler=handle_nexus_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=RequestValidationError,
        handler=handle_pydantic_validation_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name
