"""Business setup, profile and opening hours."""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rbac import ANONYMOUS, Principal
from bizbook.core.sanitize import slugify
from bizbook.models.business import BookingSettings, Business, BusinessHours
from bizbook.models.service import Service
from bizbook.models.staff import Staff
from bizbook.models.user import User
from bizbook.schemas.business import BusinessCreate, BusinessHoursEntry, BusinessUpdate
from bizbook.services.audit_service import log_action

logger = logging.getLogger(__name__)

SLUG_TAKEN = "This business name is already taken. Please choose a different name."

# Weekdays are 0 = Sunday .. 6 = Saturday; weekends start closed
DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "17:00"
CLOSED_BY_DEFAULT = {0, 6}


def default_hours(business_id: int) -> List[BusinessHours]:
    return [
        BusinessHours(
            business_id=business_id,
            day_of_week=day,
            open_time=DEFAULT_OPEN,
            close_time=DEFAULT_CLOSE,
            is_closed=day in CLOSED_BY_DEFAULT,
        )
        for day in range(7)
    ]


def hours_to_dict(hours: BusinessHours) -> Dict[str, Any]:
    return {
        "day_of_week": hours.day_of_week,
        "open_time": hours.open_time,
        "close_time": hours.close_time,
        "is_closed": hours.is_closed,
    }


class BusinessService:
    """Operations on the caller's own business."""

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    def create_business(self, data: BusinessCreate) -> Business:
        """Create the business, link its owner and seed default settings and hours."""
        if not self.principal.is_owner:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only business owners can set up a business",
            )
        if self.principal.business_id is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You have already set up a business",
            )

        slug = slugify(data.slug or data.name)
        if not slug:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Business name must contain letters or numbers",
            )
        if self.db.query(Business.id).filter(Business.slug == slug).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)

        business = Business(
            name=data.name,
            slug=slug,
            email=data.email,
            phone=data.phone,
            address=data.address,
            business_type=data.business_type.value,
            description=data.description,
        )
        try:
            enforce_check(self.db, business, self.principal, Action.INSERT)

            user = get_visible(self.db, User, self.principal.user_id, self.principal, Action.UPDATE)
            user.business_id = business.id
            enforce_check(self.db, user, self.principal, Action.UPDATE)

            # From here on the caller is the owner of the new business
            owner = replace(self.principal, business_id=business.id)
            enforce_check(self.db, BookingSettings(business_id=business.id), owner, Action.INSERT)
            for hours in default_hours(business.id):
                enforce_check(self.db, hours, owner, Action.INSERT)

            log_action(self.db, owner, "create", "business", business.id, details={"slug": slug})
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SLUG_TAKEN)

        self.db.refresh(business)
        logger.info(f"Business {business.id} ({slug}) created by user {self.principal.user_id}")
        return business

    def get_my_business(self, action: Action = Action.SELECT) -> Business:
        business = None
        if self.principal.business_id is not None:
            business = get_visible(self.db, Business, self.principal.business_id, self.principal, action)
        if business is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")
        return business

    def update_my_business(self, data: BusinessUpdate) -> Business:
        business = self.get_my_business(Action.UPDATE)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "email", "phone", "timezone"):
                continue
            setattr(business, field, value)
        enforce_check(self.db, business, self.principal, Action.UPDATE)
        log_action(self.db, self.principal, "update", "business", business.id)
        self.db.commit()
        self.db.refresh(business)
        return business

    # ===== HOURS =====

    def list_hours(self, business_id: int, principal: Optional[Principal] = None) -> List[BusinessHours]:
        return (
            scoped(self.db, BusinessHours, principal or self.principal)
            .filter(BusinessHours.business_id == business_id)
            .order_by(BusinessHours.day_of_week)
            .all()
        )

    def replace_hours(self, entries: List[BusinessHoursEntry]) -> List[BusinessHours]:
        """Overwrite all seven days of the caller's business hours."""
        business_id = self.principal.business_id
        existing = {
            h.day_of_week: h
            for h in scoped(self.db, BusinessHours, self.principal, Action.UPDATE)
            .filter(BusinessHours.business_id == business_id)
            .all()
        }
        for entry in entries:
            row = existing.get(entry.day_of_week)
            action = Action.UPDATE
            if row is None:
                row = BusinessHours(business_id=business_id, day_of_week=entry.day_of_week)
                action = Action.INSERT
            row.open_time = entry.open_time
            row.close_time = entry.close_time
            row.is_closed = entry.is_closed
            enforce_check(self.db, row, self.principal, action)
        log_action(self.db, self.principal, "update", "business_hours", business_id)
        self.db.commit()
        return self.list_hours(business_id)

    # ===== PUBLIC =====

    def public_profile(self, slug: str) -> Dict[str, Any]:
        """What an anonymous visitor sees of a business, resolved through anonymous policies."""
        business = (
            scoped(self.db, Business, ANONYMOUS)
            .filter(Business.slug == slug)
            .first()
        )
        if business is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Business not found")

        services = (
            scoped(self.db, Service, ANONYMOUS)
            .filter(Service.business_id == business.id)
            .order_by(Service.name)
            .all()
        )
        staff = (
            scoped(self.db, Staff, ANONYMOUS)
            .filter(Staff.business_id == business.id)
            .all()
        )
        settings = (
            scoped(self.db, BookingSettings, ANONYMOUS)
            .filter(BookingSettings.business_id == business.id)
            .first()
        )
        return {
            "business": {
                "id": business.id,
                "name": business.name,
                "slug": business.slug,
                "description": business.description,
                "logo": business.logo,
                "email": business.email,
                "phone": business.phone,
                "address": business.address,
                "business_type": business.business_type,
                "timezone": business.timezone,
            },
            "services": [
                {
                    "id": s.id,
                    "name": s.name,
                    "description": s.description,
                    "duration": s.duration,
                    "price": float(s.price),
                    "category": s.category,
                }
                for s in services
            ],
            "staff": [
                {
                    "id": m.id,
                    "first_name": m.user.first_name,
                    "last_name": m.user.last_name,
                    "bio": m.bio,
                    "photo": m.photo,
                    "service_ids": m.service_ids or [],
                }
                for m in staff
            ],
            "hours": [hours_to_dict(h) for h in self.list_hours(business.id, ANONYMOUS)],
            "booking_settings": {
                "min_lead_time_hours": settings.min_lead_time_hours,
                "max_lead_time_days": settings.max_lead_time_days,
                "cancellation_hours": settings.cancellation_hours,
                "buffer_time_minutes": settings.buffer_time_minutes,
                "deposit_percentage": settings.deposit_percentage,
                "require_payment": settings.require_payment,
            } if settings else None,
        }
