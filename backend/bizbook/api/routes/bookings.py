"""Booking routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, status

from bizbook.core.rbac import BusinessMember
from bizbook.db.session import DbSession
from bizbook.models.booking import BookingStatus
from bizbook.schemas.booking import BookingCreate, BookingStatusUpdate, BookingUpdate
from bizbook.schemas.pagination import LimitParam, SkipParam
from bizbook.services.booking_service import BookingService, booking_to_dict

router = APIRouter()


@router.get("/")
def list_bookings(
    db: DbSession,
    current_user: BusinessMember,
    search: Optional[str] = None,
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = SkipParam,
    limit: int = LimitParam,
):
    """Bookings, newest start first, with customer/service/staff and payment status."""
    return BookingService(db, current_user).list_bookings(
        search=search,
        booking_status=booking_status,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )


@router.get("/{booking_id}")
def get_booking(booking_id: int, db: DbSession, current_user: BusinessMember):
    return booking_to_dict(BookingService(db, current_user).get_booking(booking_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_booking(data: BookingCreate, db: DbSession, current_user: BusinessMember):
    """Create a booking; priced services also get a pending payment."""
    return booking_to_dict(BookingService(db, current_user).create_booking(data))


@router.put("/{booking_id}")
def update_booking(booking_id: int, data: BookingUpdate, db: DbSession, current_user: BusinessMember):
    return booking_to_dict(BookingService(db, current_user).update_booking(booking_id, data))


@router.patch("/{booking_id}/status")
def set_booking_status(booking_id: int, data: BookingStatusUpdate, db: DbSession, current_user: BusinessMember):
    return booking_to_dict(BookingService(db, current_user).set_status(booking_id, data.status))


@router.delete("/{booking_id}")
def delete_booking(booking_id: int, db: DbSession, current_user: BusinessMember):
    BookingService(db, current_user).delete_booking(booking_id)
    return {"message": "Booking deleted"}
