"""Business setup, profile and opening hours routes."""

from typing import List

from fastapi import APIRouter, status

from bizbook.core.rbac import BusinessMember, BusinessOwner, RequireOwner
from bizbook.db.session import DbSession
from bizbook.schemas.business import (
    BusinessCreate,
    BusinessHoursEntry,
    BusinessHoursUpdate,
    BusinessResponse,
    BusinessUpdate,
)
from bizbook.services.business_service import BusinessService

router = APIRouter()


@router.post("/", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
def create_business(data: BusinessCreate, db: DbSession, current_user: RequireOwner):
    """Set up the owner's business with default booking settings and hours."""
    return BusinessService(db, current_user).create_business(data)


@router.get("/me", response_model=BusinessResponse)
def get_my_business(db: DbSession, current_user: BusinessMember):
    return BusinessService(db, current_user).get_my_business()


@router.put("/me", response_model=BusinessResponse)
def update_my_business(data: BusinessUpdate, db: DbSession, current_user: BusinessOwner):
    return BusinessService(db, current_user).update_my_business(data)


@router.get("/me/hours", response_model=List[BusinessHoursEntry])
def get_business_hours(db: DbSession, current_user: BusinessMember):
    service = BusinessService(db, current_user)
    return service.list_hours(current_user.business_id)


@router.put("/me/hours", response_model=List[BusinessHoursEntry])
def replace_business_hours(data: BusinessHoursUpdate, db: DbSession, current_user: BusinessOwner):
    """Replace the opening hours of all seven days."""
    return BusinessService(db, current_user).replace_hours(data.hours)
