"""Booking settings and notification preference routes."""

from fastapi import APIRouter

from bizbook.core.policies import Action, enforce_check, scoped
from bizbook.core.rbac import BusinessMember, BusinessOwner
from bizbook.db.session import DbSession
from bizbook.models.business import BookingSettings
from bizbook.schemas.settings import (
    BookingSettingsResponse,
    BookingSettingsUpdate,
    NotificationPreferencesUpdate,
)
from bizbook.services.audit_service import log_action

router = APIRouter()


def _settings_row(db, current_user, action: Action = Action.SELECT):
    return (
        scoped(db, BookingSettings, current_user, action)
        .filter(BookingSettings.business_id == current_user.business_id)
        .first()
    )


def _upsert(db, current_user, values: dict, entity: str) -> BookingSettings:
    row = _settings_row(db, current_user, Action.UPDATE)
    action = Action.UPDATE
    if row is None:
        row = BookingSettings(business_id=current_user.business_id)
        action = Action.INSERT
    for field, value in values.items():
        if value is not None:
            setattr(row, field, value)
    enforce_check(db, row, current_user, action)
    log_action(db, current_user, "update", entity, row.id, details=values)
    db.commit()
    db.refresh(row)
    return row


@router.get("/booking", response_model=BookingSettingsResponse)
def get_booking_settings(db: DbSession, current_user: BusinessMember):
    """Booking settings, or the defaults when none were saved."""
    row = _settings_row(db, current_user)
    if row is None:
        return BookingSettingsResponse(business_id=current_user.business_id)
    return row


@router.put("/booking", response_model=BookingSettingsResponse)
def update_booking_settings(data: BookingSettingsUpdate, db: DbSession, current_user: BusinessOwner):
    return _upsert(db, current_user, data.model_dump(exclude_unset=True), "booking_settings")


@router.put("/notifications", response_model=BookingSettingsResponse)
def update_notification_preferences(
    data: NotificationPreferencesUpdate, db: DbSession, current_user: BusinessOwner
):
    return _upsert(db, current_user, data.model_dump(exclude_unset=True), "notification_preferences")
