import asyncio
import os
from types import SimpleNamespace

os.environ.setdefault("DB_URL", "sqlite+aiosqlite://")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from components.core.database import DatabaseManager
from components.core.security import get_password_hash
from components.job.models import Job
from components.notification.channels import LogNotificationChannel
from components.payment.events import DomainEvent, EventBus
from components.user.models import User
import components.payment.models  # noqa: F401


@pytest.fixture
def manager(tmp_path):
    """File-backed SQLite so every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}", poolclass=NullPool)
    return DatabaseManager(engine)


class RecordingChannel(LogNotificationChannel):
    """Log channel that also keeps every message for assertions."""

    def __init__(self):
        self.sent = []

    async def send(self, recipient, subject, body):
        await super().send(recipient, subject, body)
        self.sent.append((recipient, subject, body))


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def run_db(manager):
    """Run ``scenario(session)`` against a fresh schema inside one event loop."""
    def run(scenario):
        async def runner():
            await manager.create_all()
            async with manager.get_db() as session:
                return await scenario(session)
        return asyncio.run(runner())
    return run


@pytest.fixture
def bus():
    """Event bus that also remembers everything published on it."""
    event_bus = EventBus()
    event_bus.published = []
    event_bus.subscribe(DomainEvent, event_bus.published.append)
    return event_bus


async def _seed_users(session):
    admin = User(email="admin@firm.test", password=get_password_hash("admin-pass"), full_name="Firm Admin", user_type="admin")
    client = User(email="asha@client.test", password=get_password_hash("client-pass"), full_name="Asha Kumar", user_type="client")
    other = User(email="ravi@client.test", password=get_password_hash("client-pass"), full_name="Ravi Shan", user_type="client")
    session.add_all([admin, client, other])
    await session.commit()
    return SimpleNamespace(admin=admin, client=client, other=other)


async def _add_job(session, client, title="Tax filing", amount=0):
    job = Job(title=title, client_id=client.id, type="ITR", amount=amount)
    session.add(job)
    await session.commit()
    return job


@pytest.fixture
def seed_users():
    return _seed_users


@pytest.fixture
def add_job():
    return _add_job
