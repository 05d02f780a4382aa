"""Job endpoints for the API."""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.job import schemas
from components.job.repository import JobRepository
from components.payment.projection import StatusProjector
from components.user.models import User
from components.user.repository import UserRepository
from components.user.utils import can_view_client
from restapi.endpoints.auth import get_current_user, require_admin

router = APIRouter(
    prefix="/jobs",
    tags=["jobs"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.Job)
async def create_job(
    job: schemas.JobCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create a job for a client."""
    client = await UserRepository(db).get_by_id(job.client_id)
    if client is None or client.is_admin:
        raise HTTPException(status_code=404, detail="Client not found")
    return await JobRepository(db).create(job)


@router.get("/", response_model=List[schemas.Job])
async def read_jobs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Admins get every job, clients get their own."""
    repo = JobRepository(db)
    if current_user.is_admin:
        return await repo.get_all()
    return await repo.get_all(client_id=current_user.id)


@router.get("/{job_id}/payment-status", response_model=schemas.JobPaymentStatus)
async def read_job_payment_status(
    job_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Current payment status of a job.

    Derived from the most recently created payment record for the job.
    A job without payment records is Pending.
    """
    job = await JobRepository(db).get_by_id(job_id)
    if job is None or not can_view_client(current_user, job.client_id):
        raise HTTPException(status_code=404, detail="Job not found")
    status = await StatusProjector(db).get_current_status(job_id)
    return schemas.JobPaymentStatus(job_id=job_id, status=status)
