"""Payment models for the database."""

import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Numeric, JSON, Index
from sqlalchemy.orm import relationship

from components.core.database import Base, utcnow


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    WAITING_FOR_CONFIRMATION = "Waiting for Confirmation"
    PAID = "Paid"
    # Valid literal, never written: a rejection returns the record to PENDING
    REJECTED = "Rejected"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    UPI = "UPI"
    BANK = "BANK"
    QR = "QR"
    DIRECT = "Direct"


OUTSTANDING_STATUSES = (PaymentStatus.PENDING, PaymentStatus.WAITING_FOR_CONFIRMATION)


class PaymentRecord(Base):
    """A payment obligation and the current state of its settlement."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(16), nullable=True)
    payment_details = Column(JSON(none_as_null=True), nullable=True)  # Self-reported evidence
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    job = relationship("Job", back_populates="payments")
    client = relationship("User")
    events = relationship("PaymentEvent", back_populates="payment", order_by="PaymentEvent.id")

    __table_args__ = (
        Index("ix_payments_job_created", "job_id", "created_at"),
        Index("ix_payments_client_status", "client_id", "status"),
    )


class PaymentEvent(Base):
    """Immutable log entry, one per engine action on a payment."""
    __tablename__ = "payment_events"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    payment = relationship("PaymentRecord", back_populates="events")
