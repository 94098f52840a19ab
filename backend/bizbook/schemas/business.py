"""Business setup, profile and opening hours schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from bizbook.core.sanitize import sanitize_text
from bizbook.models.business import BusinessType
from bizbook.models.validators import clock_time


class BusinessCreate(BaseModel):
    """Business setup form."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = None
    business_type: BusinessType = BusinessType.OTHER
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Business name is required")
        return v

    @field_validator("description", "address", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class BusinessUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = Field(None, max_length=500)
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("description", "address", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class BusinessResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    email: str
    phone: str
    address: Optional[str] = None
    business_type: BusinessType
    timezone: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BusinessHoursEntry(BaseModel):
    """Opening hours of one weekday, 0 = Sunday."""

    day_of_week: int = Field(..., ge=0, le=6)
    open_time: str = "09:00"
    close_time: str = "17:00"
    is_closed: bool = False

    model_config = {"from_attributes": True}

    @field_validator("open_time", "close_time")
    @classmethod
    def _hhmm(cls, v: str, info) -> str:
        return clock_time(info.field_name, v)

    @model_validator(mode="after")
    def _open_before_close(self) -> "BusinessHoursEntry":
        # "HH:MM" strings order lexicographically
        if not self.is_closed and self.open_time >= self.close_time:
            raise ValueError("Opening time must be before closing time")
        return self


class BusinessHoursUpdate(BaseModel):
    """All seven days at once."""

    hours: List[BusinessHoursEntry]

    @field_validator("hours")
    @classmethod
    def _one_per_day(cls, v: List[BusinessHoursEntry]) -> List[BusinessHoursEntry]:
        days = sorted(entry.day_of_week for entry in v)
        if days != list(range(7)):
            raise ValueError("Provide exactly one entry for each day of the week (0-6)")
        return v
