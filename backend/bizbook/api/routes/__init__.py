"""API routes."""

from fastapi import APIRouter

from bizbook.api.routes import (
    analytics,
    audit_logs,
    auth,
    bookings,
    businesses,
    customers,
    payments,
    public,
    services,
    settings,
    staff,
    time_offs,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(businesses.router, prefix="/businesses", tags=["businesses"])
api_router.include_router(services.router, prefix="/services", tags=["services"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(time_offs.router, prefix="/time-offs", tags=["staff"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])
