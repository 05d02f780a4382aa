"""Admin recording of cash or in-person UPI settlements."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.core.database import utcnow
from components.job.repository import JobRepository
from components.payment import events
from components.payment.models import PaymentMethod, PaymentRecord, PaymentStatus
from components.payment.repository import PaymentRepository, validate_amount, validate_method
from components.user.models import User
from components.user.utils import ensure_admin

logger = logging.getLogger(__name__)

OFFLINE_METHODS = (PaymentMethod.CASH, PaymentMethod.UPI)


class OfflineSettlementRecorder:
    """Marks a job paid without the client report / admin confirm cycle."""

    def __init__(self, session: AsyncSession, bus: Optional[events.EventBus] = None):
        self.session = session
        self.bus = bus or events.event_bus
        self.payments = PaymentRepository(session)
        self.jobs = JobRepository(session)

    async def record_offline_payment(
        self,
        job_id: int,
        amount,
        method,
        actor: User,
    ) -> PaymentRecord:
        """
        Settle the job's current charge, or create a settled one.

        - latest record Pending: overwritten in place as Paid with the given amount
        - no record yet: a new Paid record is created
        - latest record Paid or Waiting for Confirmation: StateConflictError
        """
        ensure_admin(actor)
        method = validate_method(method, OFFLINE_METHODS)
        job = await self.jobs.get_or_raise(job_id)
        amount = validate_amount(job.amount if amount is None else amount)

        latest = await self.payments.fetch_latest_for_job(job_id)
        if latest is not None and latest.status == PaymentStatus.PAID.value:
            raise exceptions.StateConflictError(
                f"Job {job_id} is already paid",
                details={"payment_id": latest.id},
            )
        if latest is not None and latest.status != PaymentStatus.PENDING.value:
            raise exceptions.StateConflictError(
                f"Job {job_id} has a payment '{latest.status}'; confirm or reject it first",
                details={"payment_id": latest.id, "current_status": latest.status},
            )

        now = utcnow()
        from_status = latest.status if latest is not None else None
        log = events.LogEntry(
            event_type=events.OFFLINE_PAYMENT_RECORDED,
            from_status=from_status,
            to_status=PaymentStatus.PAID.value,
            actor_id=actor.id,
            data={"method": method.value, "amount": str(amount)},
        )
        title = job.title
        # Guarded flag write; a concurrent recorder that read the same history loses here
        if not await self.jobs.claim_payment_status(job_id, PaymentStatus.PAID.value):
            await self.session.rollback()
            winner = await self.payments.fetch_latest_for_job(job_id)
            logger.warning("Refused offline payment for job %s: already being settled", job_id)
            raise exceptions.StateConflictError(
                f"Job {job_id} is already paid",
                details={"payment_id": winner.id} if winner is not None else None,
            )

        if latest is None:
            record = await self.payments.create(
                {
                    "job_id": job_id,
                    "client_id": job.client_id,
                    "amount": amount,
                    "description": f"Payment for {title}",
                    "status": PaymentStatus.PAID,
                    "payment_method": method,
                    "paid_at": now,
                },
                log=log,
            )
        else:
            record = await self.payments.update(
                latest.id,
                {
                    "status": PaymentStatus.PAID,
                    "payment_method": method,
                    "paid_at": now,
                    "amount": amount,
                    "rejection_reason": None,
                },
                expected_status=PaymentStatus.PENDING,
                log=log,
            )
        logger.info("Offline %s payment of %s recorded for job %s as payment %s", method.value, amount, job_id, record.id)

        await self.bus.publish(events.OfflinePaymentRecorded(
            payment_id=record.id,
            client_id=record.client_id,
            job_id=record.job_id,
            amount=Decimal(record.amount),
            actor_id=actor.id,
            occurred_at=now,
            method=method.value,
        ))
        return record
