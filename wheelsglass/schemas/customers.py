"""
schemas/customers.py — Pydantic models for customer CRUD

Field names follow the admin console (camelCase); populate_by_name lets
services and tests use the snake_case attribute names too.

Called by: routers/customers.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

ContactMethod = Literal["email", "phone", "sms"]
AccountType = Literal["individual", "business", "fleet"]


class _CustomerFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    secondary_email: EmailStr | None = Field(default=None, alias="secondaryEmail")
    alternate_phone: str | None = Field(default=None, alias="alternatePhone", max_length=50)
    address: str | None = Field(default=None, max_length=500)
    postal_code: str | None = Field(default=None, alias="postalCode", max_length=20)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    sms_opt_in: bool | None = Field(default=None, alias="smsOptIn")
    email_opt_in: bool | None = Field(default=None, alias="emailOptIn")
    preferred_contact_method: ContactMethod | None = Field(default=None, alias="preferredContactMethod")
    tags: list[str] | None = None
    notes: str | None = None
    account_type: AccountType | None = Field(default=None, alias="accountType")
    referred_by: str | None = Field(default=None, alias="referredBy", max_length=255)
    company: str | None = Field(default=None, max_length=255)


class CustomerCreate(_CustomerFields):
    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    email: EmailStr = Field(alias="primaryEmail")
    phone: str = Field(alias="primaryPhone", min_length=1, max_length=50)


class CustomerUpdate(_CustomerFields):
    first_name: str | None = Field(default=None, alias="firstName", max_length=100)
    last_name: str | None = Field(default=None, alias="lastName", max_length=100)
    email: EmailStr | None = Field(default=None, alias="primaryEmail")
    phone: str | None = Field(default=None, alias="primaryPhone", max_length=50)
    status: str | None = Field(default=None, max_length=20)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def not_blank_if_given(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("must not be blank")
        return v
