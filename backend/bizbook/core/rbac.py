"""Role-Based Access Control (RBAC) utilities.

Every request resolves a ``Principal`` from the users table, so role and
business membership always reflect the current database state rather than
what was true when the token was issued.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from bizbook.core.security import decode_access_token
from bizbook.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    OWNER = "owner"
    STAFF = "staff"
    CUSTOMER = "customer"


@dataclass(frozen=True)
class Principal:
    """The caller of a request.

    Attributes:
        user_id: The user's database ID, None for anonymous callers.
        email: The user's email address.
        role: The user's role (owner/staff/customer).
        business_id: The business the user belongs to, if any.
    """

    user_id: Optional[int] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    business_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    @property
    def id(self) -> Optional[int]:
        return self.user_id


ANONYMOUS = Principal()


def _token_from_request(request: Request) -> Optional[str]:
    """Bearer header first, then the access_token cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def _load_principal(db, payload: dict) -> Optional[Principal]:
    from bizbook.models.user import User

    user_id = payload.get("sub")
    if user_id is None:
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        return None
    return Principal(
        user_id=user.id,
        email=user.email,
        role=user.role,
        business_id=user.business_id,
    )


async def get_current_user(request: Request, db: DbSession) -> Principal:
    """Get the current authenticated user from the JWT token."""
    token = _token_from_request(request)
    payload = decode_access_token(token) if token else None

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = _load_principal(db, payload)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_role(role: UserRole):
    """Dependency to require an exact role."""

    async def role_checker(
        current_user: Annotated[Principal, Depends(get_current_user)]
    ) -> Principal:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {role.value}",
            )
        return current_user

    return role_checker


async def require_business(
    current_user: Annotated[Principal, Depends(get_current_user)]
) -> Principal:
    """Dependency for routes that operate inside the caller's business."""
    if current_user.business_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Complete your business setup first",
        )
    return current_user


async def require_business_owner(
    current_user: Annotated[Principal, Depends(require_business)]
) -> Principal:
    if not current_user.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the business owner can do this",
        )
    return current_user


# Common role dependencies
CurrentUser = Annotated[Principal, Depends(get_current_user)]
RequireOwner = Annotated[Principal, Depends(require_role(UserRole.OWNER))]
BusinessMember = Annotated[Principal, Depends(require_business)]
BusinessOwner = Annotated[Principal, Depends(require_business_owner)]
