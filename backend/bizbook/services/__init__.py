# Services module

from bizbook.services.analytics_service import AnalyticsService
from bizbook.services.booking_service import BookingService
from bizbook.services.business_service import BusinessService
from bizbook.services.payment_service import PaymentService
from bizbook.services.staff_service import StaffService

__all__ = [
    "AnalyticsService",
    "BookingService",
    "BusinessService",
    "PaymentService",
    "StaffService",
]
