"""Repository for job operations."""

from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from components.core import exceptions
from components.job.models import Job
from components.job.schemas import JobCreate


class JobRepository:
    """Repository for job operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, job: JobCreate) -> Job:
        """Create a new job."""
        db_job = Job(
            title=job.title,
            client_id=job.client_id,
            type=job.type,
            status=job.status,
            amount=job.amount,
        )
        self.session.add(db_job)
        await self.session.commit()
        await self.session.refresh(db_job)
        return db_job

    async def get_by_id(self, job_id: int) -> Optional[Job]:
        """Get job by ID."""
        result = await self.session.execute(
            select(Job).where(Job.id == job_id)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, job_id: int) -> Job:
        job = await self.get_by_id(job_id)
        if job is None:
            raise exceptions.NotFoundError(f"Job {job_id} not found")
        return job

    async def get_all(self, client_id: Optional[int] = None) -> List[Job]:
        """Get jobs, newest first, optionally for one client."""
        query = select(Job).order_by(Job.created_at.desc(), Job.id.desc())
        if client_id is not None:
            query = query.where(Job.client_id == client_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def claim_payment_status(self, job_id: int, status: str) -> bool:
        """
        Set the payment-status flag unless it already holds ``status``.

        Staged on the session like the setters below. Returns False when
        the flag already held ``status``, i.e. another writer got there first.
        """
        try:
            result = await self.session.execute(
                update(Job)
                .where(Job.id == job_id, Job.payment_status != status)
                .values(payment_status=status)
            )
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise exceptions.DependencyError("Job store is unavailable") from exc
        return result.rowcount == 1

    def set_amount_due(self, job: Job, amount: Decimal) -> None:
        """Stage a new amount due; the caller commits."""
        job.amount = amount

    def set_payment_status(self, job: Job, status: str) -> None:
        """Stage the coarse payment-status flag; the caller commits."""
        job.payment_status = status
