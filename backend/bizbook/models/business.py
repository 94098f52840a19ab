"""Business, opening hours and booking settings models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from bizbook.db.base import Base, TimestampMixin
from bizbook.models.validators import clock_time, day_of_week, non_negative, percentage


class BusinessType(str, Enum):
    """Kinds of business the console supports."""
    RESTAURANT = "restaurant"
    GYM = "gym"
    SALON = "salon"
    SPA = "spa"
    CLINIC = "clinic"
    OTHER = "other"


class Business(Base, TimestampMixin):
    """A tenant. Every other row is scoped to exactly one business."""

    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_type: Mapped[str] = mapped_column(String(20), default=BusinessType.OTHER.value, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)


class BusinessHours(Base):
    """Opening hours for one weekday (0 = Sunday)."""

    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_business_hours_day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), index=True, nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    open_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    close_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @validates('day_of_week')
    def _validate_day(self, key, value):
        return day_of_week(key, value)

    @validates('open_time', 'close_time')
    def _validate_clock(self, key, value):
        return clock_time(key, value)


class BookingSettings(Base, TimestampMixin):
    """Per-business booking rules and notification preferences."""

    __tablename__ = "booking_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    business_id: Mapped[int] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    min_lead_time_hours: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    max_lead_time_days: Mapped[int] = mapped_column(Integer, default=90, nullable=False)
    cancellation_hours: Mapped[int] = mapped_column(Integer, default=24, nullable=False)
    buffer_time_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deposit_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    require_payment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Notification preferences
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    booking_reminders: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    payment_confirmations: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @validates('min_lead_time_hours', 'max_lead_time_days', 'cancellation_hours', 'buffer_time_minutes')
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @validates('deposit_percentage')
    def _validate_percentage(self, key, value):
        return percentage(key, value)
