"""Job model for the database."""


from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from components.core.database import Base, utcnow


class Job(Base):
    """Job model representing a piece of work done for a client."""
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False, default="In Progress")
    amount = Column(Numeric(10, 2), nullable=False, default=0)  # Amount due
    payment_status = Column(String(32), nullable=False, default="Pending")  # Coarse flag for filtering
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    client = relationship("User", back_populates="jobs", foreign_keys=[client_id])
    payments = relationship("PaymentRecord", back_populates="job")
