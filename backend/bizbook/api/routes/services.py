"""Service catalogue routes."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel, Field, field_validator

from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rate_limit import limiter
from bizbook.core.rbac import BusinessMember, BusinessOwner
from bizbook.core.sanitize import sanitize_text
from bizbook.db.session import DbSession
from bizbook.models.booking import Booking
from bizbook.models.service import Service
from bizbook.schemas.pagination import LimitParam, SkipParam, page
from bizbook.services.audit_service import log_action

router = APIRouter()


# ============== Pydantic Schemas ==============

def _check_price(v):
    if v is not None and v < 0:
        raise ValueError("Price cannot be negative")
    return v


def _check_duration(v):
    if v is not None and v <= 0:
        raise ValueError("Duration must be greater than 0")
    return v


class ServiceCreate(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    duration: int
    price: Decimal = Field(..., decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Service name is required")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("price")
    @classmethod
    def _price(cls, v):
        return _check_price(v)

    @field_validator("duration")
    @classmethod
    def _duration(cls, v):
        return _check_duration(v)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[Decimal] = Field(None, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None

    @field_validator("description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("price")
    @classmethod
    def _price(cls, v):
        return _check_price(v)

    @field_validator("duration")
    @classmethod
    def _duration(cls, v):
        return _check_duration(v)


# ============== Helper Functions ==============

def _service_to_dict(service: Service) -> dict:
    return {
        "id": service.id,
        "business_id": service.business_id,
        "name": service.name,
        "description": service.description,
        "duration": service.duration,
        "price": float(service.price),
        "category": service.category,
        "is_active": service.is_active,
        "created_at": service.created_at.isoformat() if service.created_at else None,
    }


def _get_service(db, current_user, service_id: int, action: Action = Action.SELECT) -> Service:
    service = get_visible(db, Service, service_id, current_user, action)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


# ============== Service CRUD ==============

@router.get("/")
@limiter.limit("60/minute")
def list_services(
    request: Request,
    db: DbSession,
    current_user: BusinessMember,
    search: Optional[str] = None,
    category: Optional[str] = None,
    active_only: bool = False,
    skip: int = SkipParam,
    limit: int = LimitParam,
):
    """List services of the business, optionally searched by name."""
    query = scoped(db, Service, current_user)
    if search:
        query = query.filter(Service.name.ilike(f"%{search}%"))
    if category:
        query = query.filter(Service.category == category)
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    return page(query.order_by(Service.name, Service.id), skip, limit, _service_to_dict)


@router.get("/{service_id}")
@limiter.limit("60/minute")
def get_service(request: Request, db: DbSession, current_user: BusinessMember, service_id: int):
    return _service_to_dict(_get_service(db, current_user, service_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_service(request: Request, db: DbSession, current_user: BusinessOwner, data: ServiceCreate):
    """Create a new service."""
    service = Service(business_id=current_user.business_id, **data.model_dump())
    enforce_check(db, service, current_user, Action.INSERT)
    log_action(db, current_user, "create", "service", service.id, details={"name": service.name})
    db.commit()
    db.refresh(service)
    return _service_to_dict(service)


@router.put("/{service_id}")
@limiter.limit("30/minute")
def update_service(request: Request, db: DbSession, current_user: BusinessOwner, service_id: int, data: ServiceUpdate):
    """Update a service."""
    service = _get_service(db, current_user, service_id, Action.UPDATE)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "duration", "price", "is_active"):
            continue
        setattr(service, field, value)
    enforce_check(db, service, current_user, Action.UPDATE)
    log_action(db, current_user, "update", "service", service.id)
    db.commit()
    db.refresh(service)
    return _service_to_dict(service)


@router.post("/{service_id}/toggle")
@limiter.limit("30/minute")
def toggle_service(request: Request, db: DbSession, current_user: BusinessOwner, service_id: int):
    """Activate or deactivate a service."""
    service = _get_service(db, current_user, service_id, Action.UPDATE)
    service.is_active = not service.is_active
    enforce_check(db, service, current_user, Action.UPDATE)
    log_action(db, current_user, "update", "service", service.id, details={"is_active": service.is_active})
    db.commit()
    db.refresh(service)
    return _service_to_dict(service)


@router.delete("/{service_id}")
@limiter.limit("30/minute")
def delete_service(request: Request, db: DbSession, current_user: BusinessOwner, service_id: int):
    """Delete a service that has no bookings."""
    service = _get_service(db, current_user, service_id, Action.DELETE)
    if db.query(Booking.id).filter(Booking.service_id == service.id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This service has bookings and cannot be deleted. Deactivate it instead.",
        )
    db.delete(service)
    log_action(db, current_user, "delete", "service", service_id)
    db.commit()
    return {"message": "Service deleted"}
