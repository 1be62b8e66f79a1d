"""Jobs (work orders created from quotes) and appointments."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Job(Base):
    __tablename__ = "jobs"
    id = Column(Integer, primary_key=True)
    # Unique: a quote converts into at most one job
    quote_submission_id = Column(
        Integer,
        ForeignKey("quote_submissions.id", ondelete="SET NULL"),
        unique=True,
    )
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"))

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50))

    vehicle_year = Column(Integer)
    vehicle_make = Column(String(100))
    vehicle_model = Column(String(100))
    vehicle_vin = Column(Text)
    damage_description = Column(Text)

    # pending | scheduled | in_progress | completed | cancelled
    status = Column(String(20), nullable=False, default="pending")
    form_data = Column(JSON, default=dict)
    status_history = Column(JSON, default=list)  # [{status, timestamp, triggered_by}]

    final_price = Column(Integer)  # cents
    payment_status = Column(String(20), default="pending")  # pending | paid | failed
    source_type = Column(String(20), default="quote")
    timestamp = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    quote = relationship("QuoteSubmission", foreign_keys=[quote_submission_id])
    customer = relationship("Customer", foreign_keys=[customer_id])

    __table_args__ = (
        Index("ix_jobs_status", "status"),
        Index("ix_jobs_customer", "customer_id"),
    )

    @property
    def job_number(self) -> str:
        return f"JOB-{self.id:05d}"


class Appointment(Base):
    __tablename__ = "appointments"
    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"))
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"))

    customer_name = Column(String(255))
    customer_email = Column(String(255))
    customer_phone = Column(String(50))

    requested_date = Column(String(20))
    requested_time = Column(String(20))
    service_address = Column(String(500))
    status = Column(String(20), default="scheduled")
    technician_id = Column(Integer)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_appointments_customer", "customer_id"),)
