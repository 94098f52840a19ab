"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError

from bizbook.core.rate_limit import limiter
from bizbook.core.rbac import CurrentUser, Principal, UserRole
from bizbook.core.security import (
    blacklist_token,
    create_access_token,
    get_password_hash,
    verify_password,
)
from bizbook.db.session import DbSession
from bizbook.models.user import User
from bizbook.schemas.auth import (
    ChangePasswordRequest,
    InviteInfo,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    Token,
    UserResponse,
)
from bizbook.services.audit_service import log_login
from bizbook.services.staff_service import find_usable_invite, invite_business, redeem_invite

logger = logging.getLogger("auth")

router = APIRouter()

EMAIL_TAKEN = "An account with this email already exists"


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return ""


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(request: Request, data: RegisterRequest, db: DbSession):
    """Create an account.

    Without an invite the account is a business owner who still has to set up
    a business. With an invite token it joins the inviting business as staff.
    """
    client_ip = _client_ip(request)
    email = data.email.lower()

    if db.query(User.id).filter(User.email == email).first():
        logger.warning(f"Registration with existing email {email} from IP: {client_ip}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN)

    user = User(
        email=email,
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=UserRole.OWNER,
        is_active=True,
    )
    try:
        db.add(user)
        db.flush()
        if data.invite_token:
            redeem_invite(db, data.invite_token, user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_TAKEN)
    except HTTPException:
        db.rollback()
        raise

    db.refresh(user)
    logger.info(f"New user registered: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    return user


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate user and return JWT token."""
    client_ip = _client_ip(request)
    user = db.query(User).filter(User.email == login_request.email.lower()).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {user.email} (ID: {user.id}) from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    principal = Principal(user_id=user.id, email=user.email, role=user.role, business_id=user.business_id)
    if user.business_id is not None:
        log_login(db, principal, client_ip)
        db.commit()

    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: CurrentUser, db: DbSession):
    """Get current user info."""
    return db.query(User).filter(User.id == current_user.user_id).first()


@router.patch("/me", response_model=UserResponse)
def update_me(data: ProfileUpdate, current_user: CurrentUser, db: DbSession):
    """Update first/last name of the current user."""
    user = db.query(User).filter(User.id == current_user.user_id).first()
    for field, value in data.model_dump(exclude_unset=True).items():
        if value:
            setattr(user, field, value.strip())
    db.commit()
    db.refresh(user)
    return user


@router.post("/logout")
def logout(request: Request, current_user: CurrentUser):
    """Invalidate the current JWT token (logout).

    Adds the token JTI to the blacklist so the token can no longer be used
    for authentication.
    """
    token = _bearer_token(request)
    if token:
        blacklist_token(token)
    logger.info(f"User logged out: {current_user.email} (ID: {current_user.user_id})")
    return {"message": "Logged out successfully"}


@router.post("/change-password")
def change_password(
    request: Request,
    data: ChangePasswordRequest,
    current_user: CurrentUser,
    db: DbSession,
):
    """Change password for the current user."""
    user = db.query(User).filter(User.id == current_user.user_id).first()

    if not verify_password(data.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.password_hash = get_password_hash(data.new_password)
    db.commit()

    # Blacklist current token to force re-login
    token = _bearer_token(request)
    if token:
        blacklist_token(token)

    logger.info(f"Password changed for user: {user.email} (ID: {user.id})")
    return {"message": "Password changed. Please log in again."}


@router.get("/invites/{token}", response_model=InviteInfo)
def validate_invite(token: str, db: DbSession):
    """Resolve an invite link before registration (public)."""
    invite = find_usable_invite(db, token)
    business = invite_business(db, invite)
    return InviteInfo(
        email=invite.email,
        business_id=business.id,
        business_name=business.name,
        expires_at=invite.expires_at,
    )
