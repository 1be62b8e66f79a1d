"""VIN decode cache."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, String

from ..database import UTCDateTime
from .base import Base


class VehicleLookup(Base):
    __tablename__ = "vehicle_lookups"
    id = Column(Integer, primary_key=True)
    vin = Column(String(17), unique=True, nullable=False)
    year = Column(Integer)
    make = Column(String(100))
    model = Column(String(100))
    body_type = Column(String(100))
    engine = Column(String(255))
    trim = Column(String(100))
    lookup_source = Column(String(20))  # omega_edi | nhtsa | manual
    is_valid = Column(Boolean, default=False)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    last_used = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
