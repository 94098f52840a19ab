"""
Row-Level Security Policies

Declarative, per-table authorization evaluated inside the database query.

Each policy names the actions it covers, the audience it applies to, a USING
expression (which existing rows are visible or affected) and an optional
WITH CHECK expression (which new row versions are acceptable; defaults to
USING). Expressions are built from the request's Principal and compiled by
SQLAlchemy into the WHERE clause, so they behave like PostgreSQL RLS:

- no applicable policy: nothing visible, writes denied
- several applicable policies: OR-combined (permissive)
- rows filtered out by USING look exactly like missing rows
- a write whose new row fails WITH CHECK is rolled back (PolicyViolation)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Type, TypeVar

from sqlalchemy import ColumnElement, false, or_, select, true
from sqlalchemy.orm import Query, Session

from bizbook.core.rbac import Principal
from bizbook.db.base import Base
from bizbook.models import (
    AuditLogEntry,
    Booking,
    BookingSettings,
    Business,
    BusinessHours,
    Customer,
    Payment,
    Service,
    Staff,
    StaffInvite,
    StaffSchedule,
    TimeOff,
    User,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
Expression = Callable[[Principal], ColumnElement[bool]]


class Action(str, Enum):
    """Statement kinds a policy can cover."""
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


ALL_ACTIONS: FrozenSet[Action] = frozenset(Action)


class Audience(str, Enum):
    """Which callers a policy applies to."""
    ANON = "anon"
    AUTHENTICATED = "authenticated"
    PUBLIC = "public"  # both


class PolicyViolation(Exception):
    """A write produced a row the caller is not allowed to hold."""

    def __init__(self, table: str, action: Action):
        self.table = table
        self.action = action
        super().__init__(f"new row violates row-level security policy for table \"{table}\" ({action.value})")


@dataclass(frozen=True)
class Policy:
    name: str
    table: str
    actions: FrozenSet[Action]
    audience: Audience
    using: Expression
    check: Optional[Expression] = None

    def applies_to(self, action: Action, principal: Principal) -> bool:
        if action not in self.actions:
            return False
        if self.audience == Audience.PUBLIC:
            return True
        if self.audience == Audience.AUTHENTICATED:
            return principal.is_authenticated
        return not principal.is_authenticated


# ---------------------------------------------------------------------------
# Expression helpers
# ---------------------------------------------------------------------------


def _always(principal: Principal) -> ColumnElement[bool]:
    return true()


def member_of(column) -> Expression:
    """Row belongs to the caller's business."""

    def expression(principal: Principal) -> ColumnElement[bool]:
        if principal.business_id is None:
            return false()
        return column == principal.business_id

    return expression


def owner_of(column) -> Expression:
    """Caller is the owner of the row's business."""

    def expression(principal: Principal) -> ColumnElement[bool]:
        if not principal.is_owner or principal.business_id is None:
            return false()
        return column == principal.business_id

    return expression


def _staff_ids_of_business(principal: Principal, owner_only: bool):
    if principal.business_id is None or (owner_only and not principal.is_owner):
        return None
    return select(Staff.id).where(Staff.business_id == principal.business_id)


def _staff_member_of(column, owner_only: bool = False) -> Expression:
    """Row hangs off a staff member of the caller's business."""

    def expression(principal: Principal) -> ColumnElement[bool]:
        staff_ids = _staff_ids_of_business(principal, owner_only)
        if staff_ids is None:
            return false()
        return column.in_(staff_ids)

    return expression


def _own_staff_row(column) -> Expression:
    """Row hangs off the caller's own staff profile."""

    def expression(principal: Principal) -> ColumnElement[bool]:
        if not principal.is_authenticated:
            return false()
        return column.in_(select(Staff.id).where(Staff.user_id == principal.user_id))

    return expression


def _any_of(*expressions: Expression) -> Expression:
    def expression(principal: Principal) -> ColumnElement[bool]:
        return or_(*[e(principal) for e in expressions])

    return expression


def _self(column) -> Expression:
    def expression(principal: Principal) -> ColumnElement[bool]:
        if not principal.is_authenticated:
            return false()
        return column == principal.user_id

    return expression


def _owner_without_business(principal: Principal) -> ColumnElement[bool]:
    return true() if principal.is_owner and principal.business_id is None else false()


def _booking_member(principal: Principal) -> ColumnElement[bool]:
    if principal.business_id is None:
        return false()
    return Payment.booking_id.in_(
        select(Booking.id).where(Booking.business_id == principal.business_id)
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

POLICIES: Dict[str, List[Policy]] = {}


def register(
    model: Type[Base],
    name: str,
    actions,
    audience: Audience,
    using: Expression,
    check: Optional[Expression] = None,
) -> Policy:
    """Add a policy to a table's set."""
    if isinstance(actions, Action):
        actions = frozenset({actions})
    table = model.__tablename__
    policy = Policy(name, table, frozenset(actions), audience, using, check)
    POLICIES.setdefault(table, []).append(policy)
    return policy


AUTH = Audience.AUTHENTICATED
ANON = Audience.ANON
PUBLIC = Audience.PUBLIC

# users
register(User, "Users can view own profile", Action.SELECT, AUTH, _self(User.id))
register(User, "Users can update own profile", Action.UPDATE, AUTH, _self(User.id))
register(User, "Users can insert own profile", Action.INSERT, AUTH, _self(User.id))
register(User, "Owners can view business users", Action.SELECT, AUTH, owner_of(User.business_id))

# businesses
register(Business, "Members can view own business", Action.SELECT, AUTH, member_of(Business.id))
register(Business, "Owners can update own business", Action.UPDATE, AUTH, owner_of(Business.id))
register(Business, "Public can view businesses", Action.SELECT, ANON, _always)
register(Business, "Owners can create a business", Action.INSERT, AUTH, _owner_without_business)

# services
register(Service, "Members can view services", Action.SELECT, AUTH, member_of(Service.business_id))
register(Service, "Public can view active services", Action.SELECT, ANON,
         lambda p: Service.is_active.is_(True))
register(Service, "Owners manage services", ALL_ACTIONS, AUTH, owner_of(Service.business_id))

# business_hours
register(BusinessHours, "Everyone can view business hours", Action.SELECT, PUBLIC, _always)
register(BusinessHours, "Owners manage business hours", ALL_ACTIONS, AUTH,
         owner_of(BusinessHours.business_id))

# staff
register(Staff, "Members can view staff", Action.SELECT, AUTH, member_of(Staff.business_id))
register(Staff, "Public can view active staff", Action.SELECT, ANON, lambda p: Staff.is_active.is_(True))
register(Staff, "Owners manage staff", ALL_ACTIONS, AUTH, owner_of(Staff.business_id))
register(Staff, "Staff can update own profile", Action.UPDATE, AUTH, _self(Staff.user_id))

# staff_schedules
register(StaffSchedule, "Members can view schedules", Action.SELECT, AUTH,
         _staff_member_of(StaffSchedule.staff_id))
register(StaffSchedule, "Public can view available schedules", Action.SELECT, ANON,
         lambda p: StaffSchedule.is_available.is_(True))
register(StaffSchedule, "Owners and staff manage schedules", ALL_ACTIONS, AUTH,
         _any_of(_staff_member_of(StaffSchedule.staff_id, owner_only=True),
                 _own_staff_row(StaffSchedule.staff_id)))

# time_offs
register(TimeOff, "Members can view time offs", Action.SELECT, AUTH, _staff_member_of(TimeOff.staff_id))
register(TimeOff, "Staff can request time off", Action.INSERT, AUTH, _own_staff_row(TimeOff.staff_id))
register(TimeOff, "Owners manage time offs", ALL_ACTIONS, AUTH,
         _staff_member_of(TimeOff.staff_id, owner_only=True))

# customers
register(Customer, "Members manage customers", ALL_ACTIONS, AUTH, member_of(Customer.business_id))

# bookings
register(Booking, "Members manage bookings", ALL_ACTIONS, AUTH, member_of(Booking.business_id))
register(Booking, "Public can create bookings", Action.INSERT, ANON, _always, check=_always)

# payments
register(Payment, "Members manage payments", ALL_ACTIONS, AUTH, _booking_member)

# booking_settings
register(BookingSettings, "Members can view booking settings", Action.SELECT, AUTH,
         member_of(BookingSettings.business_id))
register(BookingSettings, "Public can view booking settings", Action.SELECT, ANON, _always)
register(BookingSettings, "Owners manage booking settings", ALL_ACTIONS, AUTH,
         owner_of(BookingSettings.business_id))

# staff_invites
register(StaffInvite, "Owners manage invites", ALL_ACTIONS, AUTH, owner_of(StaffInvite.business_id))
register(StaffInvite, "Anyone can read invite by token", Action.SELECT, PUBLIC, _always)

# audit_log_entries
register(AuditLogEntry, "Owners can view audit log", Action.SELECT, AUTH,
         owner_of(AuditLogEntry.business_id))


# ---------------------------------------------------------------------------
# Enforcement
# ---------------------------------------------------------------------------


def _applicable(model: Type[Base], action: Action, principal: Principal) -> List[Policy]:
    return [p for p in POLICIES.get(model.__tablename__, []) if p.applies_to(action, principal)]


def using_clause(model: Type[Base], principal: Principal, action: Action = Action.SELECT) -> ColumnElement[bool]:
    """OR of the USING expressions of every applicable policy (false when none)."""
    policies = _applicable(model, action, principal)
    if not policies:
        return false()
    return or_(*[p.using(principal) for p in policies])


def check_clause(model: Type[Base], principal: Principal, action: Action) -> ColumnElement[bool]:
    """OR of the WITH CHECK expressions (USING where a policy has none)."""
    policies = _applicable(model, action, principal)
    if not policies:
        return false()
    return or_(*[(p.check or p.using)(principal) for p in policies])


def scoped(db: Session, model: Type[ModelT], principal: Principal,
           action: Action = Action.SELECT) -> Query:
    """Query over the rows of ``model`` the principal may see (or affect, for update/delete)."""
    return db.query(model).filter(using_clause(model, principal, action))


def get_visible(db: Session, model: Type[ModelT], ident: int, principal: Principal,
                action: Action = Action.SELECT) -> Optional[ModelT]:
    """Fetch one row by primary key through the USING filter; None when filtered out."""
    return scoped(db, model, principal, action).filter(model.id == ident).first()


def enforce_check(db: Session, row: Base, principal: Principal, action: Action) -> None:
    """Flush the pending write and verify the new row against WITH CHECK.

    On failure the transaction is rolled back and PolicyViolation raised.
    """
    model = type(row)
    if row not in db:
        db.add(row)
    db.flush()
    allowed = (
        db.query(model.id)
        .filter(model.id == row.id, check_clause(model, principal, action))
        .first()
    )
    if allowed is None:
        db.rollback()
        logger.warning(
            f"Policy violation: {action.value} on {model.__tablename__} "
            f"by user={principal.user_id} business={principal.business_id}"
        )
        raise PolicyViolation(model.__tablename__, action)


def policy_names(model: Type[Base]) -> List[str]:
    return [p.name for p in POLICIES.get(model.__tablename__, [])]
