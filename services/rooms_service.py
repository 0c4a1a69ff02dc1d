"""
Rooms Service

This service manages rooms and answers availability searches.

Endpoints:
    - GET /rooms: Get all rooms
    - GET /rooms/available: Rooms free for a whole time window
    - GET /rooms/{room_id}: Get specific room details
    - GET /rooms/{room_id}/bookings: Confirmed bookings of a room
    - POST /rooms: Add a new room (admin only)
    - PUT /rooms/{room_id}: Update room details (admin only)
    - DELETE /rooms/{room_id}: Delete a room without bookings (admin only)
"""

from fastapi import FastAPI, Depends, Query, status
from pydantic import Field
from typing import Optional, List
from sqlalchemy.orm import Session
from datetime import datetime
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.auth import sanitize_input
from shared.availability import RoomFilter
from shared.bookings import BookingManager
from shared.caching import CacheManager, invalidate_cache_pattern
from shared.database import get_db, init_db
from shared.dependencies import get_booking_manager, require_admin
from shared.errors import NotFoundError, ValidationError, setup_error_handlers
from shared.intervals import Interval
from shared.models import Room, RoomType, User
from shared.monitoring import MetricsCollector, setup_metrics, track_availability_query
from shared.repositories import BookingRepository
from shared.schemas import CamelModel

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Rooms Service", version="1.0.0")
setup_error_handlers(app)
setup_metrics(app, "rooms")


class RoomCreate(CamelModel):
    """Room creation request model."""
    name: str = Field(..., min_length=1, max_length=255)
    building: str = Field(..., min_length=1, max_length=255)
    floor: int = 0
    capacity: int = Field(..., gt=0)
    type: RoomType = RoomType.MEETING
    has_computers: bool = False
    has_projector: bool = False
    description: Optional[str] = None


class RoomUpdate(CamelModel):
    """Room update request model; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    building: Optional[str] = Field(None, min_length=1, max_length=255)
    floor: Optional[int] = None
    capacity: Optional[int] = Field(None, gt=0)
    type: Optional[RoomType] = None
    has_computers: Optional[bool] = None
    has_projector: Optional[bool] = None
    description: Optional[str] = None


class RoomResponse(CamelModel):
    """Room response model."""
    id: int
    name: str
    building: str
    floor: int
    capacity: int
    type: RoomType
    has_computers: bool
    has_projector: bool
    description: Optional[str]
    last_user_id: Optional[int] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class RoomBookingResponse(CamelModel):
    """A confirmed booking as shown on the room calendar."""
    id: int
    start_time: datetime
    end_time: datetime
    purpose: Optional[str] = ""
    status: str


def _serialize(room: Room) -> dict:
    return RoomResponse.model_validate(room).model_dump()


def _get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if room is None:
        raise NotFoundError("Room not found!")
    return room


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()


@app.get("/rooms", response_model=List[RoomResponse])
def get_rooms(db: Session = Depends(get_db)):
    """Get all rooms."""
    with CacheManager("room") as cache:
        rooms = cache.get(scope="all")
        if rooms is None:
            rooms = [_serialize(room) for room in db.query(Room).order_by(Room.id).all()]
            cache.set(rooms, scope="all")
    return rooms


@app.get("/rooms/available", response_model=List[RoomResponse])
def get_available_rooms(
    start_time: Optional[str] = Query(None, alias="startTime"),
    end_time: Optional[str] = Query(None, alias="endTime"),
    capacity: Optional[int] = Query(None, description="Minimum capacity"),
    room_type: Optional[RoomType] = Query(None, alias="type"),
    building: Optional[str] = Query(None),
    has_computers: Optional[bool] = Query(None, alias="hasComputers"),
    has_projector: Optional[bool] = Query(None, alias="hasProjector"),
    manager: BookingManager = Depends(get_booking_manager)
):
    """
    Get rooms that are free for the whole requested window.

    A room is free when none of its confirmed bookings overlaps
    [startTime, endTime). Equipment flags only narrow the result when
    true.

    Raises:
        ValidationError: Missing, malformed or empty time window (400)
    """
    if not start_time or not end_time:
        raise ValidationError("Start time and end time must be specified!")
    window = Interval.parse(start_time, end_time)

    room_filter = RoomFilter(
        min_capacity=capacity,
        room_type=room_type,
        building=building,
        has_computers=has_computers,
        has_projector=has_projector,
    )
    with MetricsCollector("availability"):
        rooms = manager.available_rooms(window, room_filter)

    track_availability_query(len(rooms))
    logger.info(f"Returning {len(rooms)} available rooms for {window.start} - {window.end}")
    return rooms


@app.get("/rooms/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Get specific room details.

    Raises:
        NotFoundError: If room not found (404)
    """
    with CacheManager("room") as cache:
        room = cache.get(room_id=room_id)
        if room is None:
            room = _serialize(_get_room_or_404(db, room_id))
            cache.set(room, room_id=room_id)
    return room


@app.get("/rooms/{room_id}/bookings", response_model=List[RoomBookingResponse])
def get_room_bookings(
    room_id: int,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    manager: BookingManager = Depends(get_booking_manager)
):
    """
    Get the confirmed bookings of a room.

    The window only applies when both startDate and endDate are given;
    then bookings overlapping [startDate, endDate) are returned.
    """
    window = None
    if start_date and end_date:
        window = Interval.parse(start_date, end_date)
    return manager.list_room_bookings(room_id, window)


@app.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    room_data: RoomCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Add a new room (admin only)."""
    new_room = Room(
        name=sanitize_input(room_data.name),
        building=sanitize_input(room_data.building),
        floor=room_data.floor,
        capacity=room_data.capacity,
        type=room_data.type,
        has_computers=room_data.has_computers,
        has_projector=room_data.has_projector,
        description=sanitize_input(room_data.description) if room_data.description else None,
    )

    db.add(new_room)
    db.commit()
    db.refresh(new_room)

    invalidate_cache_pattern("room")
    logger.info(f"Room {new_room.id} ({new_room.name}) created by {current_user.username}")
    return new_room


@app.put("/rooms/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    room_data: RoomUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Update room details (admin only).

    Raises:
        NotFoundError: If room not found (404)
    """
    room = _get_room_or_404(db, room_id)

    for field, value in room_data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field in ("name", "building", "description"):
            value = sanitize_input(value)
        setattr(room, field, value)

    room.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(room)

    invalidate_cache_pattern("room")
    return room


@app.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Delete a room (admin only).

    A room that has ever been booked cannot be deleted, whatever the
    status of its bookings.

    Raises:
        NotFoundError: If room not found (404)
        ValidationError: If the room has bookings (400)
    """
    room = _get_room_or_404(db, room_id)

    if BookingRepository(db).room_has_bookings(room_id):
        raise ValidationError("Cannot delete room with existing bookings!")

    db.delete(room)
    db.commit()

    invalidate_cache_pattern("room")
    logger.info(f"Room {room_id} deleted by {current_user.username}")
    return None


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "rooms"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8002)
