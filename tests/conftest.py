"""Shared test fixtures for the ClinicBook API and booking engine."""

import os

# Must be set before clinicbook.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

from datetime import date, datetime, timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clinicbook.database import Base, get_db
from clinicbook.main import app
from clinicbook.models import Patient, Service, Staff, StaffAvailabilityExclusion, User
from clinicbook.security_utils import create_access_token, hash_password_bcrypt

WEEKDAYS_9_TO_5 = {
    day: [{"start": "09:00", "end": "17:00"}] for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}

# Fixed "now" for engine tests; 2030-01-07 is a Monday
FIXED_NOW = datetime(2030, 1, 1, 8, 0)
MONDAY = date(2030, 1, 7)


def at(day: date, hhmm: str) -> datetime:
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)


def upcoming_monday() -> date:
    """A Monday at least a week after the real current date (API tests use the wall clock)"""
    today = date.today()
    return today + timedelta(days=7 + (7 - today.weekday()))


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.pop(get_db, None)


# ----------------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------------


def create_user(db: Session, role: str = "doctor", email: str = None, password: str = "secret-pass-1") -> User:
    email = email or f"{role}{db.query(User).count() + 1}@example.com"
    user = User(
        username=email.split("@")[0],
        email=email,
        password=hash_password_bcrypt(password),
        role=role,
        first_name=role.capitalize(),
        last_name="User",
        subscription_status="inactive",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def create_staff(db: Session, availability=None, owner: User = None, **overrides) -> Staff:
    count = db.query(Staff).count() + 1
    staff = Staff(
        user_id=owner.id if owner else None,
        first_name=overrides.pop("first_name", "Staff"),
        last_name=overrides.pop("last_name", str(count)),
        email=overrides.pop("email", f"staff{count}@clinic.test"),
        role=overrides.pop("role", "doctor"),
        availability=WEEKDAYS_9_TO_5 if availability is None else availability,
        **overrides,
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


def create_patient(db: Session, **overrides) -> Patient:
    count = db.query(Patient).count() + 1
    patient = Patient(
        first_name=overrides.pop("first_name", "Patient"),
        last_name=overrides.pop("last_name", str(count)),
        email=overrides.pop("email", f"patient{count}@mail.test"),
        **overrides,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def create_service(db: Session, duration: int = 30, capacity: int = 1, **overrides) -> Service:
    service = Service(
        name=overrides.pop("name", f"Consultation {duration}m x{capacity}"),
        duration=duration,
        capacity=capacity,
        **overrides,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def create_exclusion(db: Session, staff: Staff, start: datetime, end: datetime, reason: str = "Leave"):
    exclusion = StaffAvailabilityExclusion(staff_id=staff.id, start_time=start, end_time=end, reason=reason)
    db.add(exclusion)
    db.commit()
    db.refresh(exclusion)
    return exclusion


@pytest.fixture
def doctor(db_session: Session) -> User:
    return create_user(db_session, role="doctor", email="doctor@example.com")


@pytest.fixture
def admin(db_session: Session) -> User:
    return create_user(db_session, role="admin", email="admin@example.com")
