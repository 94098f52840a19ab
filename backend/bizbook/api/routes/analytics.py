"""Dashboard and analytics routes."""

from fastapi import APIRouter, Query

from bizbook.core.rbac import BusinessMember
from bizbook.db.session import DbSession
from bizbook.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/dashboard")
def get_dashboard(db: DbSession, current_user: BusinessMember):
    """Current month's booking counts and revenue, customer count and latest bookings."""
    return AnalyticsService(db, current_user).dashboard()


@router.get("/summary")
def get_summary(
    db: DbSession,
    current_user: BusinessMember,
    months: int = Query(6, ge=1, le=24),
):
    """Monthly bookings/revenue for the last N months and all-time totals."""
    return AnalyticsService(db, current_user).summary(months)
