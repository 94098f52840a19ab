"""SQLAlchemy models."""

from bizbook.models.user import User
from bizbook.models.business import Business, BusinessHours, BookingSettings, BusinessType
from bizbook.models.service import Service
from bizbook.models.staff import Staff, StaffSchedule, TimeOff, TimeOffStatus, StaffInvite
from bizbook.models.customer import Customer
from bizbook.models.booking import Booking, BookingStatus, Payment, PaymentStatus
from bizbook.models.audit import AuditLogEntry

__all__ = [
    "User",
    "Business",
    "BusinessHours",
    "BookingSettings",
    "BusinessType",
    "Service",
    "Staff",
    "StaffSchedule",
    "TimeOff",
    "TimeOffStatus",
    "StaffInvite",
    "Customer",
    "Booking",
    "BookingStatus",
    "Payment",
    "PaymentStatus",
    "AuditLogEntry",
]
