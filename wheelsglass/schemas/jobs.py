"""schemas/jobs.py — Job status transitions."""

from typing import Literal

from pydantic import BaseModel

JOB_STATUSES = ("pending", "scheduled", "in_progress", "completed", "cancelled")


class JobStatusUpdate(BaseModel):
    status: Literal["pending", "scheduled", "in_progress", "completed", "cancelled"]
    note: str | None = None
