"""Booking lifecycle.

Creating a booking is a single unit of work: the booking row, the customer's
last_visit and, for priced services, a pending payment are flushed in one
transaction and committed together. Any failure rolls all of it back.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rbac import Principal
from bizbook.models.booking import Booking, BookingStatus, Payment, PaymentStatus
from bizbook.models.customer import Customer
from bizbook.models.service import Service
from bizbook.models.staff import Staff
from bizbook.schemas.booking import BookingCreate, BookingUpdate
from bizbook.schemas.pagination import page
from bizbook.services.audit_service import log_action, log_status_change
from bizbook.services.payment_service import refresh_customer_aggregates

logger = logging.getLogger(__name__)


def booking_to_dict(booking: Booking) -> Dict[str, Any]:
    """Booking with customer, service and staff summaries and the payment status."""
    customer = booking.customer
    service = booking.service
    staff = booking.staff
    payment = booking.payment
    return {
        "id": booking.id,
        "business_id": booking.business_id,
        "customer_id": booking.customer_id,
        "service_id": booking.service_id,
        "staff_id": booking.staff_id,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": booking.status,
        "notes": booking.notes,
        "created_at": booking.created_at.isoformat() if booking.created_at else None,
        "customer": {
            "id": customer.id,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email,
            "phone": customer.phone,
        },
        "service": {
            "id": service.id,
            "name": service.name,
            "duration": service.duration,
            "price": float(service.price),
        },
        "staff": {
            "id": staff.id,
            "first_name": staff.user.first_name,
            "last_name": staff.user.last_name,
        } if staff else None,
        "payment": {
            "id": payment.id,
            "amount": float(payment.amount),
            "status": payment.status,
        } if payment else None,
        "payment_status": payment.status if payment else None,
    }


class BookingService:
    """Create, change and remove bookings of the caller's business."""

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    # ===== QUERIES =====

    def list_bookings(
        self,
        search: Optional[str] = None,
        booking_status: Optional[BookingStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Bookings newest start first, optionally filtered."""
        query = scoped(self.db, Booking, self.principal)
        if search:
            pattern = f"%{search}%"
            query = (
                query.join(Customer, Booking.customer_id == Customer.id)
                .join(Service, Booking.service_id == Service.id)
                .filter(
                    or_(
                        Customer.first_name.ilike(pattern),
                        Customer.last_name.ilike(pattern),
                        Customer.email.ilike(pattern),
                        Service.name.ilike(pattern),
                    )
                )
            )
        if booking_status:
            query = query.filter(Booking.status == booking_status.value)
        if date_from:
            query = query.filter(Booking.start_time >= datetime.combine(date_from, time.min))
        if date_to:
            query = query.filter(Booking.start_time < datetime.combine(date_to + timedelta(days=1), time.min))
        query = query.order_by(Booking.start_time.desc(), Booking.id.desc())
        return page(query, skip, limit, booking_to_dict)

    def get_booking(self, booking_id: int, action: Action = Action.SELECT) -> Booking:
        booking = get_visible(self.db, Booking, booking_id, self.principal, action)
        if booking is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
        return booking

    # ===== REFERENCES =====

    def _same_business(self, row, detail: str):
        if row is None or row.business_id != self.principal.business_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        return row

    def _resolve_refs(
        self,
        customer_id: int,
        service_id: int,
        staff_id: Optional[int],
    ) -> Tuple[Customer, Service, Optional[Staff]]:
        """Customer, service and staff must be visible and belong to the caller's business."""
        customer = self._same_business(
            get_visible(self.db, Customer, customer_id, self.principal), "Invalid customer"
        )
        service = self._same_business(
            get_visible(self.db, Service, service_id, self.principal), "Invalid service"
        )
        staff = None
        if staff_id is not None:
            staff = self._same_business(
                get_visible(self.db, Staff, staff_id, self.principal), "Invalid staff member"
            )
        return customer, service, staff

    # ===== COMMANDS =====

    def create_booking(self, data: BookingCreate) -> Booking:
        """Booking + customer.last_visit + pending payment, committed together."""
        customer, service, staff = self._resolve_refs(data.customer_id, data.service_id, data.staff_id)

        end_time = data.end_time or data.start_time + timedelta(minutes=service.duration)
        if end_time <= data.start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="End time must be after start time",
            )

        booking = Booking(
            business_id=self.principal.business_id,
            customer_id=customer.id,
            service_id=service.id,
            staff_id=staff.id if staff else None,
            start_time=data.start_time,
            end_time=end_time,
            status=data.status.value,
            notes=data.notes,
        )
        try:
            enforce_check(self.db, booking, self.principal, Action.INSERT)

            customer.last_visit = booking.start_time

            if service.price > 0:
                payment = Payment(
                    booking_id=booking.id,
                    amount=Decimal(service.price),
                    status=PaymentStatus.PENDING.value,
                    refunded_amount=Decimal("0"),
                )
                enforce_check(self.db, payment, self.principal, Action.INSERT)

            log_action(self.db, self.principal, "create", "booking", booking.id,
                       details={"service": service.name, "start_time": booking.start_time.isoformat()})
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to create booking: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to save booking")

        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} created for customer {customer.id} ({service.name})")
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Booking:
        booking = self.get_booking(booking_id, Action.UPDATE)
        update_data = data.model_dump(exclude_unset=True)

        previous_customer = booking.customer
        customer, service, staff = self._resolve_refs(
            update_data.get("customer_id", booking.customer_id),
            update_data.get("service_id", booking.service_id),
            update_data["staff_id"] if "staff_id" in update_data else booking.staff_id,
        )

        start_time = update_data.get("start_time") or booking.start_time
        end_time = update_data.get("end_time") or booking.end_time
        if "start_time" in update_data and "end_time" not in update_data:
            # keep the appointment length when only the start moves
            end_time = start_time + (booking.end_time - booking.start_time)
        if end_time <= start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="End time must be after start time",
            )

        booking.customer_id = customer.id
        booking.service_id = service.id
        booking.staff_id = staff.id if staff else None
        booking.start_time = start_time
        booking.end_time = end_time
        if update_data.get("status") is not None:
            booking.status = update_data["status"].value
        if "notes" in update_data:
            booking.notes = update_data["notes"]

        try:
            enforce_check(self.db, booking, self.principal, Action.UPDATE)
            self.db.expire(booking, ["customer", "service", "staff"])
            if previous_customer.id != customer.id:
                refresh_customer_aggregates(self.db, previous_customer)
            if previous_customer.id != customer.id or "start_time" in update_data:
                refresh_customer_aggregates(self.db, customer)
            log_action(self.db, self.principal, "update", "booking", booking.id,
                       details={"fields": sorted(update_data)})
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to update booking {booking_id}: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to save booking")

        self.db.refresh(booking)
        return booking

    def set_status(self, booking_id: int, new_status: BookingStatus) -> Booking:
        """Any status may follow any other."""
        booking = self.get_booking(booking_id, Action.UPDATE)
        old_status = booking.status
        booking.status = new_status.value
        enforce_check(self.db, booking, self.principal, Action.UPDATE)
        log_status_change(self.db, self.principal, "booking", booking.id, old_status, booking.status)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} {old_status} -> {booking.status}")
        return booking

    def delete_booking(self, booking_id: int) -> None:
        """Delete the booking and its payment, then refresh the customer's aggregates."""
        booking = self.get_booking(booking_id, Action.DELETE)
        customer = booking.customer

        self.db.delete(booking)
        refresh_customer_aggregates(self.db, customer)
        log_action(self.db, self.principal, "delete", "booking", booking_id,
                   details={"customer_id": customer.id})
        self.db.commit()
        logger.info(f"Booking {booking_id} deleted")
