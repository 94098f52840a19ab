"""Staff, invite, schedule and time off schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from bizbook.core.sanitize import sanitize_text
from bizbook.db.base import to_naive_utc
from bizbook.models.staff import TimeOffStatus
from bizbook.models.validators import clock_time


class StaffUpdate(BaseModel):
    """Update staff schema; names are written through to the linked user."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = None
    photo: Optional[str] = Field(None, max_length=500)
    service_ids: Optional[List[int]] = None
    is_active: Optional[bool] = None

    @field_validator("bio", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("service_ids")
    @classmethod
    def _dedupe(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        return list(dict.fromkeys(v))


class InviteCreate(BaseModel):
    email: EmailStr


class InviteResponse(BaseModel):
    id: int
    email: str
    token: str
    invite_link: str
    used: bool
    used_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime


class ScheduleEntry(BaseModel):
    """Working hours of one weekday, 0 = Sunday."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = "09:00"
    end_time: str = "17:00"
    is_available: bool = True

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str, info) -> str:
        return clock_time(info.field_name, v)

    @model_validator(mode="after")
    def _start_before_end(self) -> "ScheduleEntry":
        if self.is_available and self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class ScheduleUpdate(BaseModel):
    """Weekly schedule; days left out are removed."""

    days: List[ScheduleEntry]

    @field_validator("days")
    @classmethod
    def _unique_days(cls, v: List[ScheduleEntry]) -> List[ScheduleEntry]:
        days = [entry.day_of_week for entry in v]
        if len(days) != len(set(days)):
            raise ValueError("Each day of the week may appear only once")
        return v


class TimeOffCreate(BaseModel):
    """Time off request. Owners may file one for any staff member via staff_id."""

    staff_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("reason", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeOffCreate":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class TimeOffStatusUpdate(BaseModel):
    status: TimeOffStatus


class TimeOffResponse(BaseModel):
    id: int
    staff_id: int
    staff_name: Optional[str] = None
    start_date: datetime
    end_date: datetime
    reason: Optional[str] = None
    status: TimeOffStatus
    created_at: datetime

    model_config = {"from_attributes": True}
