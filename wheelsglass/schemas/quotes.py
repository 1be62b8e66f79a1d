"""
schemas/quotes.py — Pydantic models for the public quote form and admin edits

Business Rules:
- Contact fields, location, zipCode and serviceType are required and non-blank
- division is glass | wheels (default glass)
- glass needs at least one selected window; wheels at least one wheel position
- Blank selection entries are dropped; the other division's list is stored empty
- Text fields are capped at their column widths; VIN and privacyTinted are not
- uploadedFiles: at most 5, each on the MIME allow-list and at most 10 MB
- VIN is stripped and upper-cased; format is checked later, not here

Called by: routers/quotes.py, services/quote_service.py
Depends on: pydantic, utils/file_validation.py
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..config import settings
from ..utils.file_validation import validate_declared_file

QUOTE_STATUSES = ("submitted", "processed", "quoted", "converted", "archived")


class UploadedFileMeta(BaseModel):
    name: str
    size: int = Field(ge=0)
    type: str


class QuoteSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    mobile_phone: str = Field(alias="mobilePhone", min_length=1, max_length=50)
    email: EmailStr
    location: str = Field(min_length=1, max_length=255)
    zip_code: str = Field(alias="zipCode", min_length=1, max_length=20)
    service_type: str = Field(alias="serviceType", min_length=1, max_length=100)
    division: Literal["glass", "wheels"] = "glass"

    privacy_tinted: str | None = Field(default=None, alias="privacyTinted")
    year: int | None = None
    make: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    vin: str | None = None
    license_plate: str | None = Field(default=None, alias="licensePlate", max_length=20)
    notes: str | None = None

    selected_windows: list[str] = Field(default_factory=list, alias="selectedWindows")
    selected_wheels: list[str] = Field(default_factory=list, alias="selectedWheels")
    uploaded_files: list[UploadedFileMeta] = Field(default_factory=list, alias="uploadedFiles")

    @field_validator("year", mode="before")
    @classmethod
    def blank_year_is_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
        return v

    @field_validator("privacy_tinted", mode="before")
    @classmethod
    def tinted_to_str(cls, v):
        if isinstance(v, bool):
            return "yes" if v else "no"
        return v

    @field_validator("make", "model", "license_plate", "notes", "privacy_tinted")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("vin")
    @classmethod
    def normalize_vin(cls, v: str | None) -> str | None:
        if not v:
            return None
        return v.upper()

    @field_validator("uploaded_files")
    @classmethod
    def check_uploaded_files(cls, v: list[UploadedFileMeta]) -> list[UploadedFileMeta]:
        if len(v) > settings.max_upload_files:
            raise ValueError(f"At most {settings.max_upload_files} files may be uploaded")
        for meta in v:
            err = validate_declared_file(meta.model_dump())
            if err:
                raise ValueError(err)
        return v

    @model_validator(mode="after")
    def selection_matches_division(self):
        if self.division == "glass":
            self.selected_windows = [w.strip() for w in self.selected_windows if w.strip()]
            if not self.selected_windows:
                raise ValueError("Please select at least one window")
            self.selected_wheels = []
        else:
            self.selected_wheels = [w.strip() for w in self.selected_wheels if w.strip()]
            if not self.selected_wheels:
                raise ValueError("Please select at least one wheel")
            self.selected_windows = []
        return self


class QuoteStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def status_valid(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in QUOTE_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(QUOTE_STATUSES)}")
        return v
