"""Auth models — admin console users."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, String

from ..database import UTCDateTime
from .base import Base


class AdminUser(Base):
    __tablename__ = "admin_users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    role = Column(String(20), default="admin")  # admin | agent
    is_active = Column(Boolean, default=True)
    last_login_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
