"""
Shared database models for all services.

This module contains the SQLAlchemy models used across the UniRaum
services. Records reference each other by plain indexed ids, without
cascading foreign keys: a booking or damage report may outlive the
room or user it points at, and readers must cope with that.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Enum as SQLEnum
from datetime import datetime
import enum
from shared.database import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class RoomType(str, enum.Enum):
    """Room type enumeration."""
    LECTURE = "lecture"
    LAB = "lab"
    MEETING = "meeting"


class BookingStatus(str, enum.Enum):
    """
    Booking status enumeration.

    Only confirmed bookings constrain new bookings and room availability.
    """
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class DamageReportStatus(str, enum.Enum):
    """Damage report status enumeration."""
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class User(Base):
    """
    User model representing students, teachers and administrators.

    Attributes:
        id (int): Primary key
        username (str): Unique username
        email (str): Unique institution email address
        password_hash (str): Hashed password
        role (UserRole): student, teacher or admin
        profile_picture (str): Optional image stored as a data URL
        is_active (bool): Account active status
        created_at (datetime): Account creation timestamp
        updated_at (datetime): Last update timestamp
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    profile_picture = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Room(Base):
    """
    Room model representing bookable university rooms.

    Attributes:
        id (int): Primary key
        name (str): Room name
        building (str): Building the room is in
        floor (int): Floor number
        capacity (int): Maximum capacity
        type (RoomType): lecture, lab or meeting
        has_computers (bool): Whether the room has computers
        has_projector (bool): Whether the room has a projector
        description (str): Free text description
        last_user_id (int): User of the most recently created booking
        last_used_at (datetime): End time of the most recently created booking
        created_at (datetime): Creation timestamp
        updated_at (datetime): Last update timestamp
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    building = Column(String(255), nullable=False, index=True)
    floor = Column(Integer, nullable=False, default=0)
    capacity = Column(Integer, nullable=False)
    type = Column(SQLEnum(RoomType), nullable=False, default=RoomType.MEETING)
    has_computers = Column(Boolean, default=False, nullable=False)
    has_projector = Column(Boolean, default=False, nullable=False)
    description = Column(Text, nullable=True)
    last_user_id = Column(Integer, nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Booking(Base):
    """
    Booking model representing room reservations.

    Attributes:
        id (int): Primary key
        room_id (int): Id of the booked room
        user_id (int): Id of the user holding the booking
        start_time (datetime): Inclusive start of the reservation
        end_time (datetime): Exclusive end of the reservation
        purpose (str): Booking purpose
        status (str): confirmed or cancelled
        responsibility_accepted (bool): User accepted responsibility for the room
        created_at (datetime): Booking creation timestamp
        updated_at (datetime): Last update timestamp
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)
    purpose = Column(Text, nullable=True)
    status = Column(String(20), default=BookingStatus.CONFIRMED.value, nullable=False, index=True)
    responsibility_accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DamageReport(Base):
    """
    Damage report filed by a user against a room.

    Attributes:
        id (int): Primary key
        room_id (int): Id of the damaged room
        user_id (int): Id of the reporting user
        description (str): What is damaged
        image_url (str): Optional picture of the damage
        status (DamageReportStatus): pending, resolved or rejected
        created_at (datetime): Report creation timestamp
        updated_at (datetime): Last update timestamp
    """
    __tablename__ = "damage_reports"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    description = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    status = Column(SQLEnum(DamageReportStatus), default=DamageReportStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
