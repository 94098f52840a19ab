"""Pytest configuration and fixtures."""

import os

# Point the application engine at an in-memory database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bizbook.core.rbac import UserRole
from bizbook.core.security import create_access_token, get_password_hash
from bizbook.db.base import Base, utcnow
from bizbook.db.session import enable_sqlite_foreign_keys, get_db
from bizbook.main import app
# Import all models to ensure they're registered with Base.metadata
from bizbook.models import *
from bizbook.services.business_service import default_hours

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

PASSWORD = "testpass123"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from bizbook.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============== Helpers ==============

def make_user(db: Session, email: str, role: UserRole = UserRole.OWNER, business_id=None,
              first_name: str = "Test", last_name: str = "User", is_active: bool = True) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role,
        business_id=business_id,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_business(db: Session, owner: User, name: str, slug: str) -> Business:
    """Business with default settings and hours, linked to its owner."""
    business = Business(
        name=name,
        slug=slug,
        email=f"hello@{slug}.com",
        phone="+1 555 0100",
        business_type=BusinessType.SALON.value,
    )
    db.add(business)
    db.flush()
    owner.business_id = business.id
    db.add(BookingSettings(business_id=business.id))
    db.add_all(default_hours(business.id))
    db.commit()
    db.refresh(business)
    return business


def make_service(db: Session, business: Business, name: str = "Haircut",
                 price: str = "40.00", duration: int = 45, is_active: bool = True) -> Service:
    service = Service(
        business_id=business.id,
        name=name,
        duration=duration,
        price=Decimal(price),
        is_active=is_active,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_customer(db: Session, business: Business, email: str = "jane@example.com",
                  first_name: str = "Jane", last_name: str = "Doe") -> Customer:
    customer = Customer(
        business_id=business.id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        tags=[],
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def make_staff(db: Session, business: Business, email: str = "staff@example.com",
               first_name: str = "Sam", last_name: str = "Stylist") -> Staff:
    user = make_user(db, email, role=UserRole.STAFF, business_id=business.id,
                     first_name=first_name, last_name=last_name)
    member = Staff(business_id=business.id, user_id=user.id, service_ids=[], is_active=True)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def token_for(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


# ============== Fixtures ==============

@pytest.fixture
def owner(db_session: Session) -> User:
    """A business owner; the business fixture links them to a business."""
    return make_user(db_session, "owner@example.com", first_name="Olivia", last_name="Owner")


@pytest.fixture
def business(db_session: Session, owner: User) -> Business:
    return make_business(db_session, owner, "Glow Salon", "glow-salon")


@pytest.fixture
def owner_headers(owner: User, business: Business) -> dict:
    return headers_for(owner)


@pytest.fixture
def service(db_session: Session, business: Business) -> Service:
    return make_service(db_session, business)


@pytest.fixture
def free_service(db_session: Session, business: Business) -> Service:
    return make_service(db_session, business, name="Consultation", price="0.00", duration=15)


@pytest.fixture
def customer(db_session: Session, business: Business) -> Customer:
    return make_customer(db_session, business)


@pytest.fixture
def staff_member(db_session: Session, business: Business) -> Staff:
    return make_staff(db_session, business)


@pytest.fixture
def staff_headers(staff_member: Staff) -> dict:
    return headers_for(staff_member.user)


@pytest.fixture
def other_owner(db_session: Session) -> User:
    return make_user(db_session, "rival@example.com", first_name="Rita", last_name="Rival")


@pytest.fixture
def other_business(db_session: Session, other_owner: User) -> Business:
    return make_business(db_session, other_owner, "Iron Gym", "iron-gym")


@pytest.fixture
def other_headers(other_owner: User, other_business: Business) -> dict:
    return headers_for(other_owner)


@pytest.fixture
def booking_start() -> datetime:
    return (utcnow() + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)
