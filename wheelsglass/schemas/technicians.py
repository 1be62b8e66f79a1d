"""schemas/technicians.py — Technician status updates."""

from typing import Literal

from pydantic import BaseModel


class TechnicianStatusUpdate(BaseModel):
    status: Literal["available", "busy", "offline"]
