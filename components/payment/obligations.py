"""Admin action that raises a new charge against a job."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.job.repository import JobRepository
from components.payment import events
from components.payment.models import PaymentRecord, PaymentStatus
from components.payment.repository import PaymentRepository, validate_amount, validate_description
from components.user.models import User
from components.user.repository import UserRepository
from components.user.utils import ensure_admin

logger = logging.getLogger(__name__)


class ObligationCreator:
    """Creates Pending payment records."""

    def __init__(self, session: AsyncSession, bus: Optional[events.EventBus] = None):
        self.session = session
        self.bus = bus or events.event_bus
        self.payments = PaymentRepository(session)
        self.jobs = JobRepository(session)
        self.users = UserRepository(session)

    async def create_obligation(
        self,
        job_id: Optional[int],
        amount,
        description: str,
        actor: User,
        client_id: Optional[int] = None,
    ) -> PaymentRecord:
        """
        Insert a Pending record with no method and no evidence.

        The job's amount due is set to the obligation amount in the same
        transaction. With ``job_id=None`` the charge stands alone and
        ``client_id`` names the client who owes it.
        """
        ensure_admin(actor)
        amount = validate_amount(amount)
        description = validate_description(description)

        if job_id is not None:
            job = await self.jobs.get_or_raise(job_id)
            client_id = job.client_id
            self.jobs.set_amount_due(job, amount)
            self.jobs.set_payment_status(job, PaymentStatus.PENDING.value)
        else:
            if client_id is None:
                raise exceptions.ValidationError("A client is required for a charge without a job")
            client = await self.users.get_by_id(client_id)
            if client is None or client.is_admin:
                raise exceptions.NotFoundError(f"Client {client_id} not found")

        record = await self.payments.create(
            {
                "job_id": job_id,
                "client_id": client_id,
                "amount": amount,
                "description": description,
                "status": PaymentStatus.PENDING,
                "payment_method": None,
                "payment_details": None,
            },
            log=events.LogEntry(
                event_type=events.OBLIGATION_CREATED,
                to_status=PaymentStatus.PENDING.value,
                actor_id=actor.id,
                data={"amount": str(amount), "description": description},
            ),
        )
        logger.info("Obligation %s created: job=%s client=%s amount=%s", record.id, job_id, client_id, amount)

        await self.bus.publish(events.ObligationCreated(
            payment_id=record.id,
            client_id=record.client_id,
            job_id=record.job_id,
            amount=Decimal(record.amount),
            actor_id=actor.id,
            occurred_at=record.created_at,
            description=record.description,
        ))
        return record
