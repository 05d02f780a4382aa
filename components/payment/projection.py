"""Read-side derivations over payment history, used by both dashboards."""

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.job.repository import JobRepository
from components.payment import events
from components.payment import schemas
from components.payment.models import OUTSTANDING_STATUSES, PaymentRecord, PaymentStatus
from components.payment.repository import PaymentRepository
from components.user.repository import UserRepository

OUTSTANDING_VALUES = {status.value for status in OUTSTANDING_STATUSES}

# (event type, status before) -> status after
TRANSITIONS = {
    (events.OBLIGATION_CREATED, None): PaymentStatus.PENDING.value,
    (events.OFFLINE_PAYMENT_RECORDED, None): PaymentStatus.PAID.value,
    (events.OFFLINE_PAYMENT_RECORDED, PaymentStatus.PENDING.value): PaymentStatus.PAID.value,
    (events.SETTLEMENT_REPORTED, PaymentStatus.PENDING.value): PaymentStatus.WAITING_FOR_CONFIRMATION.value,
    (events.PAYMENT_CONFIRMED, PaymentStatus.WAITING_FOR_CONFIRMATION.value): PaymentStatus.PAID.value,
    (events.PAYMENT_REJECTED, PaymentStatus.WAITING_FOR_CONFIRMATION.value): PaymentStatus.PENDING.value,
}


def _order_key(record: PaymentRecord):
    return (record.created_at, record.id)


def statement_rows(records: Iterable[PaymentRecord]) -> List[PaymentRecord]:
    """
    Reduce a client's payment history to the rows shown on their statement.

    One row per job: its newest record. That also hides any record a newer
    Paid record for the same job and amount supersedes, since the older
    record is never the newest. Records without a job are independent
    charges and each keeps its row.
    """
    rows = []
    seen_jobs = set()
    for record in sorted(records, key=_order_key, reverse=True):
        if record.job_id is not None:
            if record.job_id in seen_jobs:
                continue
            seen_jobs.add(record.job_id)
        rows.append(record)
    return rows


def pending_total(current_records: Iterable[PaymentRecord]) -> Decimal:
    """Sum of outstanding amounts over records that are each a job's current one."""
    return sum(
        (Decimal(record.amount) for record in current_records if record.status in OUTSTANDING_VALUES),
        Decimal("0"),
    )


def fold_events(entries: Sequence) -> Optional[str]:
    """Replay an event log to the status it implies."""
    status = None
    for entry in entries:
        key = (entry.event_type, status)
        if key not in TRANSITIONS:
            raise exceptions.StateConflictError(
                f"Event {entry.event_type} is not valid from status {status!r}"
            )
        status = TRANSITIONS[key]
        if entry.to_status != status:
            raise exceptions.StateConflictError(
                f"Event {entry.event_type} recorded status {entry.to_status!r}, expected {status!r}"
            )
    return status


class StatusProjector:
    """Derives current payment state from the full record history."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.payments = PaymentRepository(session)
        self.jobs = JobRepository(session)
        self.users = UserRepository(session)

    async def get_current_status(self, job_id: int) -> str:
        """Status of the job's latest record; a job with no records is Pending."""
        await self.jobs.get_or_raise(job_id)
        latest = await self.payments.fetch_latest_for_job(job_id)
        if latest is None:
            return PaymentStatus.PENDING.value
        return latest.status

    async def _current_records(self, client_id: int) -> List[PaymentRecord]:
        records = await self.payments.fetch(client_id=client_id)
        job_ids = {record.job_id for record in records if record.job_id is not None}
        latest = await self.payments.fetch_latest_per_job(job_ids)
        return list(latest.values()) + [record for record in records if record.job_id is None]

    async def get_client_pending_total(self, client_id: int) -> Decimal:
        if await self.users.get_by_id(client_id) is None:
            raise exceptions.NotFoundError(f"Client {client_id} not found")
        return pending_total(await self._current_records(client_id))

    async def client_statement(self, client_id: int) -> List[PaymentRecord]:
        return statement_rows(await self.payments.fetch(client_id=client_id))

    async def list_waiting_for_confirmation(self) -> List[schemas.WaitingPayment]:
        """Every payment awaiting an admin decision, most recently reported first."""
        records = await self.payments.fetch(status=PaymentStatus.WAITING_FOR_CONFIRMATION)
        records.sort(key=lambda record: (record.paid_at is not None, record.paid_at, record.id), reverse=True)
        clients = await self.users.get_by_ids(record.client_id for record in records)

        waiting = []
        for record in records:
            client = clients.get(record.client_id)
            summary = schemas.ClientSummary(
                full_name=client.full_name if client else "Unknown",
                email=client.email if client else "Unknown",
            )
            fields = schemas.PaymentRecord.model_validate(record).model_dump()
            waiting.append(schemas.WaitingPayment(**fields, client=summary))
        return waiting

    async def refresh_job_flag(self, job_id: Optional[int]) -> None:
        """Write the projected status into the job's coarse payment-status flag."""
        if job_id is None:
            return
        job = await self.jobs.get_by_id(job_id)
        if job is None:
            return
        status = await self.get_current_status(job_id)
        if job.payment_status != status:
            self.jobs.set_payment_status(job, status)
            await self.session.commit()
