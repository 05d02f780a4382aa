"""Pydantic schemas for job data validation."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field


class JobBase(BaseModel):
    """Base job schema."""
    title: str = Field(..., min_length=1, max_length=255)
    client_id: int
    type: Optional[str] = None
    status: Literal["In Progress", "Completed"] = "In Progress"


class JobCreate(JobBase):
    """Schema for job creation."""
    amount: Decimal = Decimal("0")


class Job(JobBase):
    """Schema for job response."""
    id: int
    amount: Decimal
    payment_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class JobPaymentStatus(BaseModel):
    """Current payment status of a job, derived from its payment history."""
    job_id: int
    status: str
