"""Staff members, invites, weekly schedules and time off."""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from bizbook.core.config import settings
from bizbook.core.policies import Action, enforce_check, get_visible, scoped
from bizbook.core.rbac import Principal, UserRole
from bizbook.core.security import generate_invite_token
from bizbook.db.base import utcnow
from bizbook.models.business import Business
from bizbook.models.service import Service
from bizbook.models.staff import Staff, StaffInvite, StaffSchedule, TimeOff, TimeOffStatus
from bizbook.models.user import User
from bizbook.schemas.staff import InviteCreate, ScheduleEntry, StaffUpdate, TimeOffCreate
from bizbook.services.audit_service import log_action, log_status_change

logger = logging.getLogger(__name__)

INVALID_INVITE = "Invalid or expired invite link"


def invite_link(token: str) -> str:
    return f"{settings.frontend_base_url}/register?token={token}"


def invite_to_dict(invite: StaffInvite) -> Dict[str, Any]:
    return {
        "id": invite.id,
        "email": invite.email,
        "token": invite.token,
        "invite_link": invite_link(invite.token),
        "used": invite.used,
        "used_at": invite.used_at,
        "expires_at": invite.expires_at,
        "created_at": invite.created_at,
    }


def find_usable_invite(db: Session, token: str) -> StaffInvite:
    """Invite for a registration token; unknown, used and expired tokens all look the same."""
    invite = db.query(StaffInvite).filter(StaffInvite.token == token).first()
    if invite is None or not invite.is_usable(utcnow()):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVALID_INVITE)
    return invite


def redeem_invite(db: Session, token: str, user: User) -> Staff:
    """Make a freshly registered user staff of the inviting business.

    Runs inside the registration transaction; the caller commits.
    """
    invite = find_usable_invite(db, token)
    user.role = UserRole.STAFF
    user.business_id = invite.business_id
    db.flush()

    staff = Staff(business_id=invite.business_id, user_id=user.id, service_ids=[], is_active=True)
    db.add(staff)

    invite.used = True
    invite.used_at = utcnow()
    db.flush()
    logger.info(f"Invite {invite.id} redeemed by user {user.id} for business {invite.business_id}")
    return staff


class StaffService:
    """Team management inside the caller's business."""

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    # ===== STAFF =====

    def _services_by_id(self, service_ids: List[int]) -> List[Dict[str, Any]]:
        if not service_ids:
            return []
        rows = (
            scoped(self.db, Service, self.principal)
            .filter(Service.id.in_(service_ids))
            .order_by(Service.name)
            .all()
        )
        return [{"id": s.id, "name": s.name} for s in rows]

    def staff_to_dict(self, member: Staff) -> Dict[str, Any]:
        user = member.user
        return {
            "id": member.id,
            "business_id": member.business_id,
            "user_id": member.user_id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "bio": member.bio,
            "photo": member.photo,
            "service_ids": member.service_ids or [],
            "services": self._services_by_id(member.service_ids or []),
            "is_active": member.is_active,
            "created_at": member.created_at,
        }

    def list_staff(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        query = scoped(self.db, Staff, self.principal).join(User, Staff.user_id == User.id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        members = query.order_by(Staff.created_at.desc(), Staff.id.desc()).all()
        return [self.staff_to_dict(m) for m in members]

    def get_staff(self, staff_id: int, action: Action = Action.SELECT) -> Staff:
        member = get_visible(self.db, Staff, staff_id, self.principal, action)
        if member is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
        return member

    def _check_service_ids(self, service_ids: List[int]) -> None:
        if not service_ids:
            return
        found = (
            self.db.query(Service.id)
            .filter(Service.id.in_(service_ids), Service.business_id == self.principal.business_id)
            .count()
        )
        if found != len(set(service_ids)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Assigned services must belong to your business",
            )

    def update_staff(self, staff_id: int, data: StaffUpdate) -> Staff:
        """Update the profile; first/last name are written through to the linked user."""
        member = self.get_staff(staff_id, Action.UPDATE)
        update_data = data.model_dump(exclude_unset=True)

        if "service_ids" in update_data:
            service_ids = update_data["service_ids"] or []
            self._check_service_ids(service_ids)
            member.service_ids = service_ids
        for field in ("bio", "photo"):
            if field in update_data:
                setattr(member, field, update_data[field])
        if update_data.get("is_active") is not None:
            member.is_active = update_data["is_active"]
        enforce_check(self.db, member, self.principal, Action.UPDATE)

        # The staff row was authorized above; the linked account follows it
        user = member.user
        for field in ("first_name", "last_name"):
            if update_data.get(field):
                setattr(user, field, update_data[field].strip())

        log_action(self.db, self.principal, "update", "staff", member.id,
                   details={"fields": sorted(update_data)})
        self.db.commit()
        self.db.refresh(member)
        return member

    def toggle_staff(self, staff_id: int) -> Staff:
        member = self.get_staff(staff_id, Action.UPDATE)
        member.is_active = not member.is_active
        enforce_check(self.db, member, self.principal, Action.UPDATE)
        log_action(self.db, self.principal, "update", "staff", member.id,
                   details={"is_active": member.is_active})
        self.db.commit()
        self.db.refresh(member)
        return member

    def delete_staff(self, staff_id: int) -> None:
        """Remove the staff profile; the account loses access to the business."""
        member = self.get_staff(staff_id, Action.DELETE)
        user = member.user
        user_id = member.user_id
        self.db.delete(member)
        self.db.flush()
        if user is not None and user.business_id == self.principal.business_id:
            user.business_id = None
        log_action(self.db, self.principal, "delete", "staff", staff_id,
                   details={"user_id": user_id})
        self.db.commit()
        logger.info(f"Staff {staff_id} removed from business {self.principal.business_id}")

    # ===== INVITES =====

    def list_invites(self, include_used: bool = False) -> List[StaffInvite]:
        query = (
            scoped(self.db, StaffInvite, self.principal)
            .filter(StaffInvite.business_id == self.principal.business_id)
        )
        if not include_used:
            query = query.filter(StaffInvite.used.is_(False), StaffInvite.expires_at > utcnow())
        return query.order_by(StaffInvite.created_at.desc(), StaffInvite.id.desc()).all()

    def create_invite(self, data: InviteCreate) -> StaffInvite:
        email = data.email.lower()
        if self.db.query(User.id).filter(User.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists",
            )
        invite = StaffInvite(
            business_id=self.principal.business_id,
            email=email,
            token=generate_invite_token(),
            invited_by=self.principal.user_id,
            used=False,
            expires_at=utcnow() + timedelta(days=settings.invite_expiry_days),
        )
        enforce_check(self.db, invite, self.principal, Action.INSERT)
        log_action(self.db, self.principal, "create", "staff_invite", invite.id, details={"email": email})
        self.db.commit()
        self.db.refresh(invite)
        logger.info(f"Invite {invite.id} created for {email} (business {invite.business_id})")
        return invite

    def revoke_invite(self, invite_id: int) -> None:
        invite = get_visible(self.db, StaffInvite, invite_id, self.principal, Action.DELETE)
        if invite is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
        self.db.delete(invite)
        log_action(self.db, self.principal, "delete", "staff_invite", invite_id)
        self.db.commit()

    # ===== SCHEDULES =====

    def get_schedule(self, staff_id: int) -> List[StaffSchedule]:
        member = self.get_staff(staff_id)
        return (
            scoped(self.db, StaffSchedule, self.principal)
            .filter(StaffSchedule.staff_id == member.id)
            .order_by(StaffSchedule.day_of_week)
            .all()
        )

    def replace_schedule(self, staff_id: int, days: List[ScheduleEntry]) -> List[StaffSchedule]:
        """Overwrite the weekly schedule. Owners edit anyone's, staff only their own."""
        member = self.get_staff(staff_id)
        if not self.principal.is_owner and member.user_id != self.principal.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit your own schedule",
            )

        existing = {
            row.day_of_week: row
            for row in scoped(self.db, StaffSchedule, self.principal, Action.UPDATE)
            .filter(StaffSchedule.staff_id == member.id)
            .all()
        }
        wanted = {entry.day_of_week: entry for entry in days}

        for day, row in existing.items():
            if day not in wanted:
                self.db.delete(row)
        self.db.flush()

        for day, entry in wanted.items():
            row = existing.get(day)
            action = Action.UPDATE
            if row is None:
                row = StaffSchedule(staff_id=member.id, day_of_week=day)
                action = Action.INSERT
            row.start_time = entry.start_time
            row.end_time = entry.end_time
            row.is_available = entry.is_available
            enforce_check(self.db, row, self.principal, action)

        log_action(self.db, self.principal, "update", "staff_schedule", member.id,
                   details={"days": sorted(wanted)})
        self.db.commit()
        return self.get_schedule(member.id)

    # ===== TIME OFF =====

    def time_off_to_dict(self, time_off: TimeOff) -> Dict[str, Any]:
        user = time_off.staff.user
        return {
            "id": time_off.id,
            "staff_id": time_off.staff_id,
            "staff_name": user.full_name,
            "start_date": time_off.start_date,
            "end_date": time_off.end_date,
            "reason": time_off.reason,
            "status": time_off.status,
            "created_at": time_off.created_at,
        }

    def list_time_offs(
        self,
        staff_id: Optional[int] = None,
        time_off_status: Optional[TimeOffStatus] = None,
    ) -> List[TimeOff]:
        query = scoped(self.db, TimeOff, self.principal)
        if staff_id is not None:
            query = query.filter(TimeOff.staff_id == staff_id)
        if time_off_status:
            query = query.filter(TimeOff.status == time_off_status.value)
        return query.order_by(TimeOff.start_date.desc(), TimeOff.id.desc()).all()

    def _own_staff_row(self) -> Optional[Staff]:
        return (
            scoped(self.db, Staff, self.principal)
            .filter(Staff.user_id == self.principal.user_id)
            .first()
        )

    def request_time_off(self, data: TimeOffCreate) -> TimeOff:
        """Staff file for themselves; owners may file for any staff member."""
        if data.staff_id is not None:
            member = self.get_staff(data.staff_id)
        else:
            member = self._own_staff_row()
            if member is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Choose the staff member this time off is for",
                )

        time_off = TimeOff(
            staff_id=member.id,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
            status=TimeOffStatus.PENDING.value,
        )
        enforce_check(self.db, time_off, self.principal, Action.INSERT)
        log_action(self.db, self.principal, "create", "time_off", time_off.id,
                   details={"staff_id": member.id})
        self.db.commit()
        self.db.refresh(time_off)
        return time_off

    def get_time_off(self, time_off_id: int, action: Action = Action.SELECT) -> TimeOff:
        time_off = get_visible(self.db, TimeOff, time_off_id, self.principal, action)
        if time_off is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time off request not found")
        return time_off

    def set_time_off_status(self, time_off_id: int, new_status: TimeOffStatus) -> TimeOff:
        time_off = self.get_time_off(time_off_id, Action.UPDATE)
        old_status = time_off.status
        time_off.status = new_status.value
        enforce_check(self.db, time_off, self.principal, Action.UPDATE)
        log_status_change(self.db, self.principal, "time_off", time_off.id, old_status, time_off.status)
        self.db.commit()
        self.db.refresh(time_off)
        return time_off

    def delete_time_off(self, time_off_id: int) -> None:
        time_off = self.get_time_off(time_off_id, Action.DELETE)
        self.db.delete(time_off)
        log_action(self.db, self.principal, "delete", "time_off", time_off_id)
        self.db.commit()


def invite_business(db: Session, invite: StaffInvite) -> Business:
    return db.query(Business).filter(Business.id == invite.business_id).first()
