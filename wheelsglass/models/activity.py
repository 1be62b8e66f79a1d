"""Activity log — append-only audit feed for the admin console."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, String, Text

from ..database import UTCDateTime
from .base import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    id = Column(Integer, primary_key=True)
    type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    details = Column(JSON)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"))
    timestamp = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_activity_type", "type"),
        Index("ix_activity_timestamp", "timestamp"),
    )
