"""Dashboard and analytics figures for the caller's business.

Revenue is always the sum of *paid* payments of the bookings in a window;
bookings are assigned to a month by their start time (UTC).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from bizbook.core.policies import scoped, using_clause
from bizbook.core.rbac import Principal
from bizbook.db.base import utcnow
from bizbook.models.booking import Booking, BookingStatus, Payment, PaymentStatus
from bizbook.models.customer import Customer

RECENT_BOOKINGS = 5


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


class AnalyticsService:
    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    def _bookings(self, start: Optional[datetime] = None, end: Optional[datetime] = None):
        query = scoped(self.db, Booking, self.principal)
        if start is not None:
            query = query.filter(Booking.start_time >= start)
        if end is not None:
            query = query.filter(Booking.start_time < end)
        return query

    def _revenue(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> float:
        query = (
            self.db.query(func.coalesce(func.sum(Payment.amount), 0))
            .join(Booking, Payment.booking_id == Booking.id)
            .filter(
                using_clause(Payment, self.principal),
                using_clause(Booking, self.principal),
                Payment.status == PaymentStatus.PAID.value,
            )
        )
        if start is not None:
            query = query.filter(Booking.start_time >= start)
        if end is not None:
            query = query.filter(Booking.start_time < end)
        return _money(query.scalar())

    def _customer_count(self) -> int:
        return scoped(self.db, Customer, self.principal).count()

    def dashboard(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Figures for the current calendar month plus the latest bookings."""
        start = month_start(now or utcnow())
        end = start + relativedelta(months=1)

        counts = dict(
            self._bookings(start, end)
            .with_entities(Booking.status, func.count(Booking.id))
            .group_by(Booking.status)
            .all()
        )
        recent = (
            scoped(self.db, Booking, self.principal)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(RECENT_BOOKINGS)
            .all()
        )
        return {
            "month": start.strftime("%Y-%m"),
            "total_bookings": sum(counts.values()),
            "confirmed_bookings": counts.get(BookingStatus.CONFIRMED.value, 0),
            "pending_bookings": counts.get(BookingStatus.PENDING.value, 0),
            "completed_bookings": counts.get(BookingStatus.COMPLETED.value, 0),
            "total_revenue": self._revenue(start, end),
            "total_customers": self._customer_count(),
            "recent_bookings": [
                {
                    "id": b.id,
                    "customer_name": b.customer.full_name,
                    "service_name": b.service.name,
                    "start_time": b.start_time.isoformat(),
                    "status": b.status,
                }
                for b in recent
            ],
        }

    def summary(self, months: int = 6, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Month-by-month bookings and revenue, oldest first, plus all-time totals."""
        current = month_start(now or utcnow())
        monthly: List[Dict[str, Any]] = []
        for offset in range(months - 1, -1, -1):
            start = current - relativedelta(months=offset)
            end = start + relativedelta(months=1)
            monthly.append({
                "month": start.strftime("%Y-%m"),
                "label": start.strftime("%b"),
                "bookings": self._bookings(start, end).count(),
                "revenue": self._revenue(start, end),
            })

        total_bookings = self._bookings().count()
        total_revenue = self._revenue()
        average = round(total_revenue / total_bookings, 2) if total_bookings else 0.0
        return {
            "monthly": monthly,
            "total_revenue": total_revenue,
            "average_booking_value": average,
            "total_bookings": total_bookings,
            "total_customers": self._customer_count(),
        }
