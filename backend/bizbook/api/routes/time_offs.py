"""Time off request routes."""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from bizbook.core.rbac import BusinessMember, BusinessOwner
from bizbook.db.session import DbSession
from bizbook.models.staff import TimeOffStatus
from bizbook.schemas.staff import TimeOffCreate, TimeOffResponse, TimeOffStatusUpdate
from bizbook.services.staff_service import StaffService

router = APIRouter()


@router.get("/", response_model=List[TimeOffResponse])
def list_time_offs(
    db: DbSession,
    current_user: BusinessMember,
    staff_id: Optional[int] = None,
    time_off_status: Optional[TimeOffStatus] = Query(None, alias="status"),
):
    service = StaffService(db, current_user)
    return [service.time_off_to_dict(t) for t in service.list_time_offs(staff_id, time_off_status)]


@router.post("/", response_model=TimeOffResponse, status_code=status.HTTP_201_CREATED)
def request_time_off(data: TimeOffCreate, db: DbSession, current_user: BusinessMember):
    """Staff request time off for themselves; owners may file for any staff member."""
    service = StaffService(db, current_user)
    return service.time_off_to_dict(service.request_time_off(data))


@router.patch("/{time_off_id}/status", response_model=TimeOffResponse)
def set_time_off_status(time_off_id: int, data: TimeOffStatusUpdate, db: DbSession, current_user: BusinessOwner):
    """Approve or reject a request."""
    service = StaffService(db, current_user)
    return service.time_off_to_dict(service.set_time_off_status(time_off_id, data.status))


@router.delete("/{time_off_id}")
def delete_time_off(time_off_id: int, db: DbSession, current_user: BusinessOwner):
    StaffService(db, current_user).delete_time_off(time_off_id)
    return {"message": "Time off request deleted"}
