"""Pydantic schemas for payment data validation."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PaymentRecord(BaseModel):
    """Schema for payment record response."""
    id: int
    job_id: Optional[int] = None
    client_id: int
    amount: Decimal
    description: str
    status: str
    payment_method: Optional[str] = None
    payment_details: Optional[Dict[str, Any]] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ObligationCreate(BaseModel):
    """Schema for raising a new charge against a job."""
    job_id: Optional[int] = None
    client_id: Optional[int] = Field(None, description="Required only for charges not tied to a job")
    amount: Decimal
    description: str


class SettlementReport(BaseModel):
    """
    Schema for a client's self-reported settlement.

    Evidence for UPI and QR: upi_id, name.
    Evidence for BANK: account_number, name.
    """
    method: str = Field(..., description="UPI, BANK or QR")
    evidence: Dict[str, Any] = Field(default_factory=dict)


class PaymentRejection(BaseModel):
    """Schema for an admin rejection."""
    reason: str


class OfflinePaymentCreate(BaseModel):
    """Schema for recording a cash or in-person UPI settlement."""
    job_id: int
    method: str = Field("CASH", description="CASH or UPI")
    amount: Optional[Decimal] = Field(None, description="Defaults to the job's amount due")


class ClientSummary(BaseModel):
    full_name: str
    email: str


class WaitingPayment(PaymentRecord):
    """Payment awaiting admin confirmation, with the reporting client."""
    client: Optional[ClientSummary] = None


class PendingTotal(BaseModel):
    client_id: int
    pending_total: Decimal


class PaymentEvent(BaseModel):
    """Schema for one event-log entry."""
    id: int
    payment_id: int
    event_type: str
    actor_id: Optional[int] = None
    from_status: Optional[str] = None
    to_status: str
    data: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentHistory(BaseModel):
    payment: PaymentRecord
    events: List[PaymentEvent]
    replayed_status: Optional[str] = None


class InvoiceData(BaseModel):
    """Data needed to render an invoice for a settled payment."""
    invoice_number: str
    payment_id: int
    payment_date: datetime
    amount: Decimal
    description: str
    payment_method: Optional[str] = None
    client_name: str
    client_email: str
    issuer: str
