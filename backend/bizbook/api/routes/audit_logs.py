"""Audit logs API routes."""

from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Query, Request

from bizbook.core.policies import scoped
from bizbook.core.rate_limit import limiter
from bizbook.core.rbac import BusinessOwner
from bizbook.db.session import DbSession
from bizbook.models.audit import AuditLogEntry
from bizbook.schemas.pagination import page

router = APIRouter()


def _entry_to_dict(entry: AuditLogEntry) -> dict:
    details = entry.details or {}
    return {
        "id": entry.id,
        "timestamp": entry.created_at.isoformat() + "Z" if entry.created_at else "",
        "user_id": entry.user_id,
        "user_email": entry.user_email or "",
        "action": entry.action,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "old_value": details.get("old_value") if isinstance(details, dict) else None,
        "new_value": details.get("new_value") if isinstance(details, dict) else None,
        "details": details,
    }


@router.get("/")
@limiter.limit("60/minute")
def get_audit_logs(
    request: Request,
    db: DbSession,
    current_user: BusinessOwner,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Audit trail of the owner's business, newest first."""
    query = scoped(db, AuditLogEntry, current_user)

    if action:
        query = query.filter(AuditLogEntry.action == action)
    if entity_type:
        query = query.filter(AuditLogEntry.entity_type == entity_type)
    if user_id:
        query = query.filter(AuditLogEntry.user_id == user_id)
    if start_date:
        query = query.filter(AuditLogEntry.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.filter(AuditLogEntry.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

    query = query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
    return page(query, skip, limit, _entry_to_dict)
