"""Staff management routes: team, invites and weekly schedules."""

from typing import List, Optional

from fastapi import APIRouter, status

from bizbook.core.rbac import BusinessMember, BusinessOwner
from bizbook.db.session import DbSession
from bizbook.schemas.staff import InviteCreate, InviteResponse, ScheduleEntry, ScheduleUpdate, StaffUpdate
from bizbook.services.staff_service import StaffService, invite_to_dict

router = APIRouter()


# ===== Invites =====

@router.get("/invites", response_model=List[InviteResponse])
def list_invites(db: DbSession, current_user: BusinessOwner, include_used: bool = False):
    """Pending invites (add include_used=true for the full history)."""
    service = StaffService(db, current_user)
    return [invite_to_dict(i) for i in service.list_invites(include_used)]


@router.post("/invites", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
def create_invite(data: InviteCreate, db: DbSession, current_user: BusinessOwner):
    """Generate a 7-day invite link for a new staff member."""
    return invite_to_dict(StaffService(db, current_user).create_invite(data))


@router.delete("/invites/{invite_id}")
def revoke_invite(invite_id: int, db: DbSession, current_user: BusinessOwner):
    StaffService(db, current_user).revoke_invite(invite_id)
    return {"message": "Invite revoked"}


# ===== Staff =====

@router.get("/")
def list_staff(db: DbSession, current_user: BusinessMember, search: Optional[str] = None):
    """Staff of the business with their account details and assigned services."""
    return StaffService(db, current_user).list_staff(search)


@router.get("/{staff_id}")
def get_staff(staff_id: int, db: DbSession, current_user: BusinessMember):
    service = StaffService(db, current_user)
    return service.staff_to_dict(service.get_staff(staff_id))


@router.put("/{staff_id}")
def update_staff(staff_id: int, data: StaffUpdate, db: DbSession, current_user: BusinessMember):
    """Owners edit anyone; staff members edit their own profile."""
    service = StaffService(db, current_user)
    return service.staff_to_dict(service.update_staff(staff_id, data))


@router.post("/{staff_id}/toggle")
def toggle_staff(staff_id: int, db: DbSession, current_user: BusinessOwner):
    service = StaffService(db, current_user)
    return service.staff_to_dict(service.toggle_staff(staff_id))


@router.delete("/{staff_id}")
def delete_staff(staff_id: int, db: DbSession, current_user: BusinessOwner):
    StaffService(db, current_user).delete_staff(staff_id)
    return {"message": "Staff member removed"}


# ===== Schedules =====

@router.get("/{staff_id}/schedule", response_model=List[ScheduleEntry])
def get_schedule(staff_id: int, db: DbSession, current_user: BusinessMember):
    return StaffService(db, current_user).get_schedule(staff_id)


@router.put("/{staff_id}/schedule", response_model=List[ScheduleEntry])
def replace_schedule(staff_id: int, data: ScheduleUpdate, db: DbSession, current_user: BusinessMember):
    """Replace the weekly schedule (owner, or the staff member themself)."""
    return StaffService(db, current_user).replace_schedule(staff_id, data.days)
