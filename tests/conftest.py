"""
Pytest configuration and fixtures for testing all services.
"""

import os
import sys

# must be set before shared modules read their configuration
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("STRICT_ADMIN_UPDATES", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.database import Base
from shared.models import User, Room, RoomType, UserRole
from shared.auth import get_password_hash, create_access_token
from shared.bookings import BookingManager


# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def override_get_db(db):
    """Override the get_db dependency."""
    def _override_get_db():
        try:
            yield db
        finally:
            pass
    return _override_get_db


def make_user(db, username, role=UserRole.STUDENT, email=None, password="password123"):
    user = User(
        username=username,
        email=email or f"{username}@ostfalia.de",
        password_hash=get_password_hash(password),
        role=role,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_room(db, name, building="Main Campus", capacity=30, room_type=RoomType.LECTURE,
              has_computers=False, has_projector=False, floor=1):
    room = Room(
        name=name,
        building=building,
        floor=floor,
        capacity=capacity,
        type=room_type,
        has_computers=has_computers,
        has_projector=has_projector,
        description=f"{name} description"
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def headers_for(user):
    token = create_access_token(data={"sub": user.username, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test student."""
    return make_user(db, "student")


@pytest.fixture(scope="function")
def other_user(db):
    """Create a second student."""
    return make_user(db, "otherstudent")


@pytest.fixture(scope="function")
def test_teacher(db):
    return make_user(db, "teacher", role=UserRole.TEACHER)


@pytest.fixture(scope="function")
def test_admin(db):
    """Create a test admin user."""
    return make_user(db, "admin", role=UserRole.ADMIN)


@pytest.fixture(scope="function")
def test_room(db):
    """Create a test room."""
    return make_room(db, "Lecture Hall A101", capacity=120, has_projector=True)


@pytest.fixture(scope="function")
def second_room(db):
    return make_room(db, "Computer Lab C103", building="Tech Building",
                     room_type=RoomType.LAB, has_computers=True, has_projector=True)


@pytest.fixture(scope="function")
def auth_headers_user(test_user):
    """Get authentication headers for test user."""
    return headers_for(test_user)


@pytest.fixture(scope="function")
def auth_headers_other(other_user):
    return headers_for(other_user)


@pytest.fixture(scope="function")
def auth_headers_admin(test_admin):
    """Get authentication headers for admin user."""
    return headers_for(test_admin)


@pytest.fixture(scope="function")
def manager(db):
    """Booking manager over the test session, permissive admin updates."""
    return BookingManager.for_session(db, strict_admin_updates=False)


@pytest.fixture(scope="function")
def create_user(db):
    """Factory creating extra users in the test database."""
    def _create_user(username, role=UserRole.STUDENT, email=None, password="password123"):
        return make_user(db, username, role=role, email=email, password=password)
    return _create_user


@pytest.fixture(scope="function")
def create_room(db):
    """Factory creating extra rooms in the test database."""
    def _create_room(name, **kwargs):
        return make_room(db, name, **kwargs)
    return _create_room


@pytest.fixture(scope="function")
def auth_headers_for():
    """Build authentication headers for any user."""
    return headers_for
