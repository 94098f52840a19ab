"""Payment records and the customer spend aggregates derived from them.

Payments are demo records: there is no gateway. Marking a payment refunded
records the full amount as refunded; every status change recomputes the
owning customer's total_spent from their paid payments.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rbac import Principal
from bizbook.models.booking import Booking, Payment, PaymentStatus
from bizbook.models.customer import Customer
from bizbook.models.service import Service
from bizbook.schemas.pagination import page
from bizbook.services.audit_service import log_status_change

logger = logging.getLogger(__name__)


def customer_total_spent(db: Session, customer_id: int) -> Decimal:
    """Sum of the amounts of the customer's paid payments."""
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .join(Booking, Payment.booking_id == Booking.id)
        .filter(
            Booking.customer_id == customer_id,
            Payment.status == PaymentStatus.PAID.value,
        )
        .scalar()
    )
    return Decimal(str(total or 0)).quantize(Decimal("0.01"))


def refresh_customer_aggregates(db: Session, customer: Customer) -> Customer:
    """Recompute total_spent and last_visit from the customer's remaining bookings."""
    db.flush()
    customer.total_spent = customer_total_spent(db, customer.id)
    customer.last_visit = (
        db.query(func.max(Booking.start_time))
        .filter(Booking.customer_id == customer.id)
        .scalar()
    )
    return customer


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    booking = payment.booking
    customer = booking.customer
    return {
        "id": payment.id,
        "booking_id": payment.booking_id,
        "amount": float(payment.amount),
        "status": payment.status,
        "refunded_amount": float(payment.refunded_amount or 0),
        "created_at": payment.created_at.isoformat() if payment.created_at else None,
        "updated_at": payment.updated_at.isoformat() if payment.updated_at else None,
        "booking": {
            "id": booking.id,
            "start_time": booking.start_time.isoformat(),
            "status": booking.status,
        },
        "customer": {
            "id": customer.id,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email,
        },
        "service": {
            "id": booking.service.id,
            "name": booking.service.name,
        },
    }


class PaymentService:
    """Query and update payments of the caller's business."""

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    def list_payments(
        self,
        search: Optional[str] = None,
        payment_status: Optional[PaymentStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Dict[str, Any]:
        query = (
            scoped(self.db, Payment, self.principal)
            .join(Booking, Payment.booking_id == Booking.id)
            .join(Customer, Booking.customer_id == Customer.id)
            .join(Service, Booking.service_id == Service.id)
        )
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Customer.first_name.ilike(pattern),
                    Customer.last_name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Service.name.ilike(pattern),
                )
            )
        if payment_status:
            query = query.filter(Payment.status == payment_status.value)
        query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
        return page(query, skip, limit, payment_to_dict)

    def get_payment(self, payment_id: int, action: Action = Action.SELECT) -> Payment:
        payment = get_visible(self.db, Payment, payment_id, self.principal, action)
        if payment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
        return payment

    def set_status(self, payment_id: int, new_status: PaymentStatus) -> Payment:
        """Change the status; refunded records the full amount as refunded."""
        payment = self.get_payment(payment_id, Action.UPDATE)
        old_status = payment.status

        payment.status = new_status.value
        if new_status == PaymentStatus.REFUNDED:
            payment.refunded_amount = payment.amount
        else:
            payment.refunded_amount = Decimal("0")
        enforce_check(self.db, payment, self.principal, Action.UPDATE)

        customer = payment.booking.customer
        customer.total_spent = customer_total_spent(self.db, customer.id)
        log_status_change(self.db, self.principal, "payment", payment.id, old_status, payment.status)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment {payment.id} {old_status} -> {payment.status}")
        return payment
