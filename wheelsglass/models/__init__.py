"""Database models — re-exports all models.

Import from here:  from wheelsglass.models import Customer, QuoteSubmission, ...
Or from submodules: from wheelsglass.models.jobs import Job
"""

from .base import Base  # noqa: F401

# Auth
from .auth import AdminUser  # noqa: F401

# Customers
from .customers import Customer  # noqa: F401

# Quotes
from .quotes import QuoteSubmission  # noqa: F401

# Jobs (the "transactions" table) & Appointments
from .jobs import Appointment, Job  # noqa: F401

# VIN decode cache
from .vehicles import VehicleLookup  # noqa: F401

# Activity feed
from .activity import ActivityLog  # noqa: F401
