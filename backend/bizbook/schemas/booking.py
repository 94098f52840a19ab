"""Booking and payment schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from bizbook.core.sanitize import sanitize_text
from bizbook.db.base import to_naive_utc
from bizbook.models.booking import BookingStatus, PaymentStatus


class BookingCreate(BaseModel):
    """Create booking schema. end_time defaults to start_time + service duration."""

    customer_id: int
    service_id: int
    staff_id: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None

    @field_validator("notes", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class BookingUpdate(BaseModel):
    """Update booking schema."""

    customer_id: Optional[int] = None
    service_id: Optional[int] = None
    staff_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None

    @field_validator("notes", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentBookingSummary(BaseModel):
    id: int
    start_time: datetime
    status: BookingStatus


class PaymentCustomerSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str


class PaymentServiceSummary(BaseModel):
    id: int
    name: str


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    amount: float
    status: PaymentStatus
    refunded_amount: float = Field(0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    booking: PaymentBookingSummary
    customer: PaymentCustomerSummary
    service: PaymentServiceSummary


class PaymentPage(BaseModel):
    items: List[PaymentResponse]
    total: int
    skip: int
    limit: int
    has_more: bool
