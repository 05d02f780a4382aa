"""Database initialization and dependency injection."""

from typing import AsyncGenerator, Optional

import fastapi
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import DatabaseManager
from components.payment.events import EventBus
# Import all models to ensure they're registered
import components.user.models
import components.job.models
import components.payment.models

# Create a single instance of DatabaseManager
db_manager = DatabaseManager()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database sessions."""
    manager = getattr(request.app.state, "db_manager", db_manager)
    async with manager.get_db() as session:
        yield session


def get_event_bus(request: Request) -> EventBus:
    """FastAPI dependency for the application's event bus."""
    return request.app.state.event_bus


def init_db(app: fastapi.FastAPI, manager: Optional[DatabaseManager] = None) -> DatabaseManager:
    """Attach the database manager to the app; tables are created in the app lifespan."""
    manager = manager or db_manager
    app.state.db_manager = manager
    return manager
