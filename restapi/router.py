"""Application configuration and router setup."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import fastapi
from fastapi import Request
from fastapi.middleware import cors
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from components.core import exceptions, init_db
from components.core.config import get_settings
from components.core.database import DatabaseManager
from components.core.log_config import configure_logging
from components.notification.channels import NotificationChannel, build_channel
from components.notification.notifier import ClientNotifier
from components.payment.events import EventBus
from components.payment.feed import ChangeFeed
from restapi.endpoints import auth, client, health_check, job, live, payment, user

logger = logging.getLogger(__name__)

TITLE = "Accounting Portal Payments"
DESCRIPTION = "Payment obligations, client settlements and admin reconciliation for an accounting firm"


def register_exception_handlers(app: fastapi.FastAPI) -> None:
    @app.exception_handler(exceptions.PortalError)
    async def portal_error_handler(request: Request, exc: exceptions.PortalError) -> JSONResponse:
        content = {"detail": exc.message, "code": exc.code}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=exceptions.DependencyError.status_code,
            content={"detail": "Storage is unavailable", "code": exceptions.DependencyError.code},
        )


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create tables on startup, let in-flight notifications finish on shutdown."""
    await app.state.db_manager.create_all()
    logger.info("Accounting portal started")
    yield
    await app.state.notifier.drain()
    logger.info("Accounting portal stopped")


def create_app(
    manager: Optional[DatabaseManager] = None,
    channel: Optional[NotificationChannel] = None,
) -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()
    settings = get_settings()

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
    )

    # Initialize database
    manager = init_db.init_db(app, manager)

    # Domain events and client notifications
    app.state.event_bus = EventBus()
    app.state.notifier = ClientNotifier(channel or build_channel(settings), manager.get_session())
    app.state.notifier.register(app.state.event_bus)
    app.state.change_feed = ChangeFeed()
    app.state.change_feed.register(app.state.event_bus)

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_check.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(job.router)
    app.include_router(client.router)
    app.include_router(payment.router)
    app.include_router(live.router)

    return app
