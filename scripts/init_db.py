"""
Database initialization script.

This script creates the initial data for UniRaum when the database
holds no users yet:
- Admin, teacher and student accounts
- The campus rooms

Run with: python scripts/init_db.py
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.exc import SQLAlchemyError

from shared.database import SessionLocal, init_db
from shared.models import User, Room, RoomType, UserRole
from shared.auth import get_password_hash, ALLOWED_EMAIL_DOMAIN

USERS = [
    ("admin", "admin123", UserRole.ADMIN),
    ("teacher", "teacher123", UserRole.TEACHER),
    ("student", "student123", UserRole.STUDENT),
]

# name, building, floor, capacity, type, computers, projector, description
ROOMS = [
    ("Lecture Hall A101", "Main Campus", 1, 120, RoomType.LECTURE, False, True,
     "Large lecture hall with stadium seating and acoustic design"),
    ("Seminar Room B202", "Main Campus", 2, 40, RoomType.LECTURE, False, True,
     "Medium-sized seminar room with modular tables"),
    ("Computer Lab C103", "Tech Building", 1, 30, RoomType.LAB, True, True,
     "Computer lab with high-performance workstations for programming courses"),
    ("Electronics Lab D105", "Engineering Building", 1, 24, RoomType.LAB, True, True,
     "Specialized lab for electronics experiments with test equipment"),
    ("Physics Lab P201", "Science Building", 2, 28, RoomType.LAB, True, True,
     "Physics laboratory with experiment stations and safety equipment"),
    ("Conference Room E301", "Administration Building", 3, 20, RoomType.MEETING, True, True,
     "Conference room with video conferencing equipment and whiteboard wall"),
    ("Workshop F102", "Technical Arts Building", 1, 25, RoomType.LAB, False, True,
     "Technical workshop with tools and equipment for practical projects"),
    ("Study Space G201", "Library Building", 2, 30, RoomType.MEETING, False, False,
     "Quiet study area with individual desks and good lighting"),
    ("Media Room H104", "Media Center", 1, 15, RoomType.LAB, True, True,
     "Media production room with audio/video editing workstations"),
    ("Language Lab L205", "Humanities Building", 2, 24, RoomType.LAB, True, True,
     "Language learning lab with audio equipment and language software"),
    ("Design Studio D301", "Arts Building", 3, 22, RoomType.LAB, True, True,
     "Creative design studio with drawing tables and design software"),
    ("Chemistry Lab C201", "Science Building", 2, 24, RoomType.LAB, True, True,
     "Chemistry laboratory with fume hoods and safety stations"),
    ("Group Room M101", "Student Center", 1, 10, RoomType.MEETING, False, True,
     "Small meeting room for student group work and discussions"),
    ("Auditorium A001", "Central Building", 0, 300, RoomType.LECTURE, True, True,
     "Large auditorium for major lectures and university events"),
    ("Robotics Lab R103", "Engineering Building", 1, 20, RoomType.LAB, True, True,
     "Specialized lab for robotics programming and hardware testing"),
]


def create_users(db):
    """Create the default accounts."""
    for username, password, role in USERS:
        db.add(User(
            username=username,
            email=f"{username}@{ALLOWED_EMAIL_DOMAIN}",
            password_hash=get_password_hash(password),
            role=role,
            is_active=True
        ))
    db.commit()
    print(f"Created {len(USERS)} users")


def create_rooms(db):
    """Create the campus rooms."""
    for name, building, floor, capacity, room_type, computers, projector, description in ROOMS:
        db.add(Room(
            name=name,
            building=building,
            floor=floor,
            capacity=capacity,
            type=room_type,
            has_computers=computers,
            has_projector=projector,
            description=description
        ))
    db.commit()
    print(f"Created {len(ROOMS)} rooms")


def main():
    """Initialize database with the initial data."""
    print("Initializing database...")

    init_db()
    print("Database tables created")

    db = SessionLocal()

    try:
        if db.query(User).first() is not None:
            print("Initial data already exists")
            return

        create_users(db)
        create_rooms(db)

        print("\n" + "=" * 60)
        print("Database initialization complete!")
        print("=" * 60)
        print("\nAccounts:")
        print("-" * 60)
        for username, password, role in USERS:
            print(f"{role.value.capitalize():<10} username: {username:<10} password: {password}")
        print("-" * 60)
        print("\nIMPORTANT: Change these passwords in production!")

    except SQLAlchemyError as e:
        print(f"\n Error: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
