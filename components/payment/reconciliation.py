"""Admin confirm/reject decisions on reported settlements."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.core.database import utcnow
from components.payment import events
from components.payment.models import PaymentRecord, PaymentStatus
from components.payment.projection import StatusProjector
from components.payment.repository import PaymentRepository
from components.user.models import User
from components.user.utils import ensure_admin

logger = logging.getLogger(__name__)


class AdminReconciler:
    """
    Finalises or rolls back a payment that is Waiting for Confirmation.

    Both decisions are compare-and-swap writes guarded on that status, so
    when two admins act on the same payment only the first succeeds and the
    second gets a StateConflictError.
    """

    def __init__(self, session: AsyncSession, bus: Optional[events.EventBus] = None):
        self.session = session
        self.bus = bus or events.event_bus
        self.payments = PaymentRepository(session)
        self.projector = StatusProjector(session)

    async def confirm_payment(self, payment_id: int, actor: User) -> PaymentRecord:
        """Mark as Paid, keeping method and evidence as the record of payment."""
        ensure_admin(actor)
        record = await self.payments.update(
            payment_id,
            {
                "status": PaymentStatus.PAID,
                "paid_at": utcnow(),
            },
            expected_status=PaymentStatus.WAITING_FOR_CONFIRMATION,
            log=events.LogEntry(
                event_type=events.PAYMENT_CONFIRMED,
                from_status=PaymentStatus.WAITING_FOR_CONFIRMATION.value,
                to_status=PaymentStatus.PAID.value,
                actor_id=actor.id,
            ),
        )
        logger.info("Payment %s confirmed by admin %s", payment_id, actor.id)

        await self.projector.refresh_job_flag(record.job_id)
        await self.bus.publish(events.PaymentConfirmed(
            payment_id=record.id,
            client_id=record.client_id,
            job_id=record.job_id,
            amount=Decimal(record.amount),
            actor_id=actor.id,
            occurred_at=record.paid_at,
            method=record.payment_method,
        ))
        return record

    async def reject_payment(self, payment_id: int, reason: str, actor: User) -> PaymentRecord:
        """Return to Pending with method, evidence and settlement time cleared."""
        ensure_admin(actor)
        reason = (reason or "").strip()
        if not reason:
            raise exceptions.ValidationError("A rejection reason is required")

        record = await self.payments.update(
            payment_id,
            {
                "status": PaymentStatus.PENDING,
                "payment_method": None,
                "paid_at": None,
                "payment_details": None,
                "rejection_reason": reason,
            },
            expected_status=PaymentStatus.WAITING_FOR_CONFIRMATION,
            log=events.LogEntry(
                event_type=events.PAYMENT_REJECTED,
                from_status=PaymentStatus.WAITING_FOR_CONFIRMATION.value,
                to_status=PaymentStatus.PENDING.value,
                actor_id=actor.id,
                data={"reason": reason},
            ),
        )
        logger.info("Payment %s rejected by admin %s: %s", payment_id, actor.id, reason)

        await self.projector.refresh_job_flag(record.job_id)
        await self.bus.publish(events.PaymentRejected(
            payment_id=record.id,
            client_id=record.client_id,
            job_id=record.job_id,
            amount=Decimal(record.amount),
            actor_id=actor.id,
            occurred_at=utcnow(),
            reason=reason,
        ))
        return record
