from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ContactCreate(BaseModel):
    device_token: str = Field(..., min_length=1, max_length=512)
    domain: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)


class ContactFilters(BaseModel):
    domain: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    modified_from: datetime | None = Field(default=None)
    modified_to: datetime | None = Field(default=None)


class ContactRead(BaseModel):
    device_token: str
    domain: str
    email: str | None
    modified_at: datetime
