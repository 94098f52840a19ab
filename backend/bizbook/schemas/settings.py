"""Booking settings and notification preference schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class BookingSettingsUpdate(BaseModel):
    min_lead_time_hours: Optional[int] = Field(None, ge=0)
    max_lead_time_days: Optional[int] = Field(None, ge=0)
    cancellation_hours: Optional[int] = Field(None, ge=0)
    buffer_time_minutes: Optional[int] = Field(None, ge=0)
    deposit_percentage: Optional[int] = Field(None, ge=0, le=100)
    require_payment: Optional[bool] = None


class NotificationPreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    booking_reminders: Optional[bool] = None
    payment_confirmations: Optional[bool] = None


class BookingSettingsResponse(BaseModel):
    business_id: int
    min_lead_time_hours: int = 2
    max_lead_time_days: int = 90
    cancellation_hours: int = 24
    buffer_time_minutes: int = 0
    deposit_percentage: int = 0
    require_payment: bool = False
    email_notifications: bool = True
    booking_reminders: bool = True
    payment_confirmations: bool = True

    model_config = {"from_attributes": True}
