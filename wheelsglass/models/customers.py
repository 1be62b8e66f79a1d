"""Customer model — one row per person or account that has asked for work."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, Text

from ..database import UTCDateTime
from .base import Base


class Customer(Base):
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # Matched case-insensitively; stored as given
    email = Column(String(255), nullable=False, index=True)
    secondary_email = Column(String(255))
    # Matched on digits only
    phone = Column(String(50))
    alternate_phone = Column(String(50))

    address = Column(String(500))
    postal_code = Column(String(20))
    city = Column(String(100))
    state = Column(String(50))

    sms_opt_in = Column(Boolean, default=False)
    email_opt_in = Column(Boolean, default=True)
    preferred_contact_method = Column(String(20), default="email")  # email | phone | sms
    tags = Column(JSON, default=list)
    notes = Column(Text)

    account_type = Column(String(20), default="individual")  # individual | business | fleet
    referred_by = Column(String(255))
    company = Column(String(255))
    status = Column(String(20), default="active")

    total_jobs = Column(Integer, default=0)
    total_spent = Column(Integer, default=0)  # cents
    last_job_date = Column(UTCDateTime)

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_customers_phone", "phone"),
        Index("ix_customers_created", "created_at"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
