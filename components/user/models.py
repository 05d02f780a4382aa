"""User model for the database."""


from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from components.core.database import Base, utcnow

USER_TYPE_ADMIN = "admin"
USER_TYPE_CLIENT = "client"


class User(Base):
    """User model representing an admin or a client of the firm."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False)  # Hashed password
    full_name = Column(String(255), nullable=False, default="")
    mobile = Column(String(32), nullable=True)
    user_type = Column(String(16), nullable=False, default=USER_TYPE_CLIENT)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    jobs = relationship("Job", back_populates="client", foreign_keys="Job.client_id")

    @property
    def is_admin(self) -> bool:
        return self.user_type == USER_TYPE_ADMIN
