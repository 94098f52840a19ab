"""Audit logging service.

Writes audit log entries for state-changing operations. Entries are added to
the caller's session, so they commit or roll back together with the change
they describe.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from bizbook.core.rbac import Principal
from bizbook.models.audit import AuditLogEntry

logger = logging.getLogger("audit")


def log_action(
    db: Session,
    principal: Principal,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
    business_id: Optional[int] = None,
) -> AuditLogEntry:
    """Write an audit log entry.

    Args:
        db: The request's session; the entry is flushed, not committed.
        principal: The user performing the action.
        action: The action performed (create, update, delete, status_change, etc.)
        entity_type: Type of entity affected (booking, payment, staff, etc.)
        entity_id: ID of the affected entity
        details: Additional details (old/new status, description, etc.)
        business_id: Business the entry belongs to, defaults to the principal's.
    """
    entry = AuditLogEntry(
        business_id=business_id if business_id is not None else principal.business_id,
        user_id=principal.user_id,
        user_email=principal.email,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(entry)
    db.flush()
    logger.info(
        f"{action} {entity_type}#{entity_id} by {principal.email or 'anonymous'} "
        f"(business={entry.business_id})"
    )
    return entry


def log_login(db: Session, principal: Principal, ip_address: str) -> AuditLogEntry:
    """Log a successful login."""
    return log_action(
        db,
        principal,
        action="login",
        entity_type="session",
        entity_id=principal.user_id,
        details={"ip_address": ip_address},
    )


def log_status_change(
    db: Session,
    principal: Principal,
    entity_type: str,
    entity_id: int,
    old_status: str,
    new_status: str,
) -> AuditLogEntry:
    """Log a status transition with its old and new values."""
    return log_action(
        db,
        principal,
        action="status_change",
        entity_type=entity_type,
        entity_id=entity_id,
        details={"old_value": old_status, "new_value": new_status},
    )
