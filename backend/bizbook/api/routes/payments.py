"""Payment routes. Demo records only; no gateway is involved."""

from typing import Optional

from fastapi import APIRouter, Query

from bizbook.core.rbac import BusinessMember
from bizbook.db.session import DbSession
from bizbook.models.booking import PaymentStatus
from bizbook.schemas.booking import PaymentPage, PaymentResponse, PaymentStatusUpdate
from bizbook.schemas.pagination import LimitParam, SkipParam
from bizbook.services.payment_service import PaymentService, payment_to_dict

router = APIRouter()


@router.get("/", response_model=PaymentPage)
def list_payments(
    db: DbSession,
    current_user: BusinessMember,
    search: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    skip: int = SkipParam,
    limit: int = LimitParam,
):
    """Payments with booking, customer and service details."""
    return PaymentService(db, current_user).list_payments(search, payment_status, skip, limit)


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, db: DbSession, current_user: BusinessMember):
    return payment_to_dict(PaymentService(db, current_user).get_payment(payment_id))


@router.patch("/{payment_id}/status", response_model=PaymentResponse)
def set_payment_status(payment_id: int, data: PaymentStatusUpdate, db: DbSession, current_user: BusinessMember):
    """Mark a payment paid, refunded or failed; the customer's total spent follows."""
    return payment_to_dict(PaymentService(db, current_user).set_status(payment_id, data.status))
