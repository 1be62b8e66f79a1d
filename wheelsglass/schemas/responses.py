"""
schemas/responses.py — Shared response models for OpenAPI documentation

Used as response_model= on the router decorators whose payloads are
stable enough to document. Extra keys are allowed through.

Called by: routers/*.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PaginatedResponse(BaseModel):
    total: int = 0
    limit: int = 50
    offset: int = 0


class OkResponse(BaseModel):
    success: bool = True
    message: str | None = None


class VehicleInfo(BaseModel):
    year: int
    make: str
    model: str


class QuoteSubmitResponse(BaseModel):
    success: bool = True
    submissionId: int
    customerId: int
    message: str = "Quote request submitted successfully"
    vinDecoded: bool = False
    vehicleInfo: VehicleInfo | None = None


class TechnicianSummary(BaseModel):
    id: int
    name: str
    phone: str


class ConvertToJobResponse(BaseModel):
    success: bool = True
    message: str
    jobId: int
    quoteId: int
    assignedTechnician: TechnicianSummary | None = None


class QuoteListResponse(PaginatedResponse):
    submissions: list[dict] = Field(default_factory=list)


class QuoteStatsResponse(BaseModel):
    total: int = 0
    submitted: int = 0
    processed: int = 0
    quoted: int = 0
    converted: int = 0
    archived: int = 0
    last24Hours: int = 0
    last7Days: int = 0


class DataEnvelope(BaseModel, extra="allow"):
    success: bool = True
    data: dict | list | None = None
