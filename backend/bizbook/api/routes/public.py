"""Public (anonymous) business pages."""

from fastapi import APIRouter

from bizbook.db.session import DbSession
from bizbook.services.business_service import BusinessService
from bizbook.core.rbac import ANONYMOUS

router = APIRouter()


@router.get("/businesses/{slug}")
def get_public_business(slug: str, db: DbSession):
    """Business profile with active services, active staff, hours and booking rules."""
    return BusinessService(db, ANONYMOUS).public_profile(slug)
