"""Quote submissions — raw requests from the public quote form."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class QuoteSubmission(Base):
    __tablename__ = "quote_submissions"
    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"))

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    mobile_phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    zip_code = Column(String(20), nullable=False)

    service_type = Column(String(100), nullable=False)
    division = Column(String(10), nullable=False, default="glass")  # glass | wheels
    privacy_tinted = Column(Text)

    year = Column(Integer)
    make = Column(String(100))
    model = Column(String(100))
    # Stored as typed, even when it fails the VIN format check
    vin = Column(Text)
    license_plate = Column(String(20))
    notes = Column(Text)

    selected_windows = Column(JSON, default=list)
    selected_wheels = Column(JSON, default=list)
    uploaded_files = Column(JSON, default=list)

    # submitted | processed | quoted | converted | archived
    status = Column(String(20), nullable=False, default="submitted")
    timestamp = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    processed_at = Column(UTCDateTime)

    customer = relationship("Customer", foreign_keys=[customer_id])

    __table_args__ = (
        Index("ix_quotes_status", "status"),
        Index("ix_quotes_timestamp", "timestamp"),
        Index("ix_quotes_customer", "customer_id"),
    )
