"""Repository for payment records and their event log."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.payment.events import LogEntry
from components.payment.models import PaymentEvent, PaymentMethod, PaymentRecord, PaymentStatus

logger = logging.getLogger(__name__)

STATUS_VALUES = {status.value for status in PaymentStatus}
METHOD_VALUES = {method.value for method in PaymentMethod}
MAX_AMOUNT = Decimal("100000000")


def _value(member):
    """Plain string for an enum member, passthrough otherwise."""
    return member.value if hasattr(member, "value") else member


def validate_amount(amount) -> Decimal:
    """Coerce to Decimal and require a positive value."""
    if isinstance(amount, bool) or amount is None:
        raise exceptions.ValidationError("Amount is required")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise exceptions.ValidationError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise exceptions.ValidationError("Amount must be greater than zero")
    # Numeric(10, 2) storage
    if value >= MAX_AMOUNT:
        raise exceptions.ValidationError(f"Amount must be below {MAX_AMOUNT}")
    if value != value.quantize(Decimal("0.01")):
        raise exceptions.ValidationError("Amount supports at most two decimal places")
    return value


def validate_method(method, allowed: Iterable[PaymentMethod]) -> PaymentMethod:
    """Case-insensitive lookup of ``method`` among ``allowed`` methods."""
    code = str(method or "").strip().upper()
    for member in allowed:
        if member.value.upper() == code:
            return member
    names = ", ".join(member.value for member in allowed)
    raise exceptions.ValidationError(f"Payment method must be one of: {names}")


def validate_description(description) -> str:
    if description is None or not str(description).strip():
        raise exceptions.ValidationError("Description is required")
    return str(description).strip()


class PaymentRepository:
    """Repository for payment operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    def _validate(self, fields: dict, creating: bool = False) -> dict:
        """Check field-level rules and normalise enum members to strings."""
        clean = dict(fields)
        if creating or "amount" in clean:
            clean["amount"] = validate_amount(clean.get("amount"))
        if creating or "description" in clean:
            clean["description"] = validate_description(clean.get("description"))
        if creating and clean.get("client_id") is None:
            raise exceptions.ValidationError("Client is required")
        if creating or "status" in clean:
            status = _value(clean.get("status", PaymentStatus.PENDING))
            if status not in STATUS_VALUES:
                raise exceptions.ValidationError(f"Invalid payment status: {status!r}")
            clean["status"] = status
        if clean.get("payment_method") is not None:
            method = _value(clean["payment_method"])
            if method not in METHOD_VALUES:
                raise exceptions.ValidationError(f"Invalid payment method: {method!r}")
            clean["payment_method"] = method
        return clean

    def _stage_log(self, payment_id: int, log: LogEntry) -> None:
        self.session.add(PaymentEvent(
            payment_id=payment_id,
            event_type=log.event_type,
            actor_id=log.actor_id,
            from_status=_value(log.from_status),
            to_status=_value(log.to_status),
            data=log.data,
        ))

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Payment store commit failed")
            raise exceptions.DependencyError("Payment store is unavailable") from exc

    async def create(self, fields: dict, log: Optional[LogEntry] = None) -> PaymentRecord:
        """Insert a new payment record, staging its first event-log row."""
        clean = self._validate(fields, creating=True)
        record = PaymentRecord(**clean)
        try:
            self.session.add(record)
            await self.session.flush()
            if log is not None:
                self._stage_log(record.id, log)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Payment insert failed")
            raise exceptions.DependencyError("Payment store is unavailable") from exc
        await self._commit()
        return await self.get_or_raise(record.id)

    async def update(
        self,
        payment_id: int,
        fields: dict,
        expected_status: Optional[PaymentStatus] = None,
        log: Optional[LogEntry] = None,
    ) -> PaymentRecord:
        """
        Update a payment record in place.

        With ``expected_status`` the write is a compare-and-swap: it only
        applies while the stored status still equals ``expected_status``.
        When no row is affected the record is either missing
        (NotFoundError) or in another status (StateConflictError), and
        nothing staged on the session is kept.
        """
        clean = self._validate(fields)
        stmt = update(PaymentRecord).where(PaymentRecord.id == payment_id)
        if expected_status is not None:
            stmt = stmt.where(PaymentRecord.status == _value(expected_status))
        stmt = stmt.values(**clean).execution_options(synchronize_session=False)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Payment update failed for %s", payment_id)
            raise exceptions.DependencyError("Payment store is unavailable") from exc

        if result.rowcount == 0:
            await self.session.rollback()
            current = await self.get_by_id(payment_id)
            if current is None:
                raise exceptions.NotFoundError(f"Payment {payment_id} not found")
            logger.warning(
                "Refused transition on payment %s: expected %r, found %r",
                payment_id, _value(expected_status), current.status,
            )
            raise exceptions.StateConflictError(
                f"Payment {payment_id} is '{current.status}', expected '{_value(expected_status)}'",
                details={"current_status": current.status},
            )

        if log is not None:
            self._stage_log(payment_id, log)
        await self._commit()
        return await self.get_or_raise(payment_id)

    async def get_by_id(self, payment_id: int) -> Optional[PaymentRecord]:
        """Get payment by ID, always reloading from the database."""
        result = await self.session.execute(
            select(PaymentRecord)
            .where(PaymentRecord.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, payment_id: int) -> PaymentRecord:
        record = await self.get_by_id(payment_id)
        if record is None:
            raise exceptions.NotFoundError(f"Payment {payment_id} not found")
        return record

    async def fetch(
        self,
        client_id: Optional[int] = None,
        job_id: Optional[int] = None,
        status: Optional[PaymentStatus] = None,
    ) -> List[PaymentRecord]:
        """Fetch payment records, newest first."""
        query = select(PaymentRecord).execution_options(populate_existing=True)
        if client_id is not None:
            query = query.where(PaymentRecord.client_id == client_id)
        if job_id is not None:
            query = query.where(PaymentRecord.job_id == job_id)
        if status is not None:
            query = query.where(PaymentRecord.status == _value(status))
        query = query.order_by(PaymentRecord.created_at.desc(), PaymentRecord.id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def fetch_latest_per_job(self, job_ids: Iterable[int]) -> Dict[int, PaymentRecord]:
        """Map each job ID to its most recently created payment record."""
        ids = {job_id for job_id in job_ids if job_id is not None}
        if not ids:
            return {}

        ranked = (
            select(
                PaymentRecord.id.label("id"),
                func.row_number().over(
                    partition_by=PaymentRecord.job_id,
                    order_by=(PaymentRecord.created_at.desc(), PaymentRecord.id.desc()),
                ).label("position"),
            )
            .where(PaymentRecord.job_id.in_(ids))
            .subquery()
        )
        result = await self.session.execute(
            select(PaymentRecord)
            .join(ranked, ranked.c.id == PaymentRecord.id)
            .where(ranked.c.position == 1)
            .execution_options(populate_existing=True)
        )
        return {record.job_id: record for record in result.scalars().all()}

    async def fetch_latest_for_job(self, job_id: int) -> Optional[PaymentRecord]:
        latest = await self.fetch_latest_per_job([job_id])
        return latest.get(job_id)

    async def get_events(self, payment_id: int) -> List[PaymentEvent]:
        """Event log for one payment in the order it was written."""
        result = await self.session.execute(
            select(PaymentEvent)
            .where(PaymentEvent.payment_id == payment_id)
            .order_by(PaymentEvent.id)
        )
        return list(result.scalars().all())
