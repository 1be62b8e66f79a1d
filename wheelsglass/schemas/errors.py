"""
schemas/errors.py — Structured error response model

Shared by the HTTPException, CRMError and RequestValidationError handlers
in main.py.
"""

from pydantic import BaseModel


class FieldError(BaseModel):
    field: str
    message: str
    type: str = ""


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    request_id: str = ""
    details: list | None = None
