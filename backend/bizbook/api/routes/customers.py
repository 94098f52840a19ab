"""Customer management routes - CRM functionality."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rate_limit import limiter
from bizbook.core.rbac import BusinessMember
from bizbook.core.sanitize import normalize_tags, sanitize_text
from bizbook.db.session import DbSession
from bizbook.models.customer import Customer
from bizbook.schemas.pagination import LimitParam, SkipParam, page
from bizbook.services.audit_service import log_action

router = APIRouter()

DUPLICATE_EMAIL = "A customer with this email already exists"


# ============== Pydantic Schemas ==============
# total_spent and last_visit are maintained by bookings and payments only

class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    tags: List[str] = []

    @field_validator("notes", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return normalize_tags(v)


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("tags")
    @classmethod
    def _tags(cls, v):
        return normalize_tags(v) if v is not None else None


# ============== Helper Functions ==============

def _customer_to_dict(customer: Customer) -> dict:
    """Convert Customer to response dict."""
    return {
        "id": customer.id,
        "business_id": customer.business_id,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "email": customer.email,
        "phone": customer.phone,
        "notes": customer.notes,
        "tags": customer.tags or [],
        "total_spent": float(customer.total_spent or 0),
        "last_visit": customer.last_visit.isoformat() if customer.last_visit else None,
        "created_at": customer.created_at.isoformat() if customer.created_at else None,
    }


def _get_customer(db, current_user, customer_id: int, action: Action = Action.SELECT) -> Customer:
    customer = get_visible(db, Customer, customer_id, current_user, action)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _ids_with_tag(query, tag: str) -> List[int]:
    """Ids of the customers in the query whose tag list contains the tag exactly."""
    rows = query.with_entities(Customer.id, Customer.tags).all()
    return [row.id for row in rows if tag in (row.tags or [])]


def _email_taken(db, business_id: int, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Customer.id).filter(Customer.business_id == business_id, Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


# ============== Customer CRUD ==============

@router.get("/")
@limiter.limit("60/minute")
def list_customers(
    request: Request,
    db: DbSession,
    current_user: BusinessMember,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    skip: int = SkipParam,
    limit: int = LimitParam,
):
    """List customers with optional search and tag filter."""
    query = scoped(db, Customer, current_user)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Customer.first_name.ilike(search_term),
                Customer.last_name.ilike(search_term),
                Customer.email.ilike(search_term),
            )
        )

    if tag:
        query = query.filter(Customer.id.in_(_ids_with_tag(query, tag.strip())))

    query = query.order_by(Customer.last_name, Customer.first_name, Customer.id)
    return page(query, skip, limit, _customer_to_dict)


@router.get("/{customer_id}")
@limiter.limit("60/minute")
def get_customer(request: Request, db: DbSession, current_user: BusinessMember, customer_id: int):
    """Get a specific customer."""
    return _customer_to_dict(_get_customer(db, current_user, customer_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_customer(request: Request, db: DbSession, current_user: BusinessMember, data: CustomerCreate):
    """Create a new customer."""
    email = data.email.lower()
    if _email_taken(db, current_user.business_id, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)

    customer = Customer(
        business_id=current_user.business_id,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        email=email,
        phone=data.phone,
        notes=data.notes,
        tags=data.tags,
    )
    try:
        enforce_check(db, customer, current_user, Action.INSERT)
        log_action(db, current_user, "create", "customer", customer.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)
    db.refresh(customer)
    return _customer_to_dict(customer)


@router.put("/{customer_id}")
@limiter.limit("30/minute")
def update_customer(request: Request, db: DbSession, current_user: BusinessMember, customer_id: int, data: CustomerUpdate):
    """Update a customer."""
    customer = _get_customer(db, current_user, customer_id, Action.UPDATE)

    if data.email is not None:
        email = data.email.lower()
        if _email_taken(db, customer.business_id, email, exclude_id=customer.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)
        customer.email = email
    if data.first_name is not None:
        customer.first_name = data.first_name.strip()
    if data.last_name is not None:
        customer.last_name = data.last_name.strip()
    if "phone" in data.model_fields_set:
        customer.phone = data.phone
    if "notes" in data.model_fields_set:
        customer.notes = data.notes
    if data.tags is not None:
        customer.tags = data.tags

    try:
        enforce_check(db, customer, current_user, Action.UPDATE)
        log_action(db, current_user, "update", "customer", customer.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)
    db.refresh(customer)
    return _customer_to_dict(customer)


@router.delete("/{customer_id}")
@limiter.limit("30/minute")
def delete_customer(request: Request, db: DbSession, current_user: BusinessMember, customer_id: int):
    """Delete a customer together with their bookings and payments."""
    customer = _get_customer(db, current_user, customer_id, Action.DELETE)
    db.delete(customer)
    log_action(db, current_user, "delete", "customer", customer_id)
    db.commit()
    return {"message": "Customer deleted"}
