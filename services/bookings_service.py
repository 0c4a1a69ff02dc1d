"""
Bookings Service

This service manages room bookings.

Endpoints:
    - POST /bookings: Book a room for the current user
    - GET /bookings/user: Current user's bookings with room details
    - PUT /bookings/{booking_id}/cancel: Cancel a booking (owner or admin)
    - GET /admin/bookings: All bookings, newest first (admin only)
    - GET /admin/bookings/{booking_id}: One booking (admin only)
    - PUT /admin/bookings/{booking_id}: Edit a booking (admin only)
    - DELETE /admin/bookings/{booking_id}: Delete a booking (admin only)
"""

from fastapi import FastAPI, Depends, Request, status
from typing import Optional, List
from datetime import datetime
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.bookings import BookingManager
from shared.caching import invalidate_cache_pattern
from shared.database import init_db
from shared.dependencies import get_booking_manager, get_current_user, require_admin
from shared.errors import UniRaumError, setup_error_handlers
from shared.models import BookingStatus, User
from shared.monitoring import (
    setup_metrics,
    track_booking_cancelled,
    track_booking_created,
    track_booking_deleted,
    track_booking_rejected,
    update_active_bookings,
)
from shared.rate_limiting import rate_limit_decorator, setup_rate_limiting
from shared.schemas import CamelModel
from shared.auth import sanitize_input

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bookings Service", version="1.0.0")
setup_error_handlers(app)
setup_rate_limiting(app)
setup_metrics(app, "bookings")


class BookingCreate(CamelModel):
    """
    Booking creation request model.

    Times are ISO-8601 strings; missing or malformed values are
    rejected by the booking rules with a 400.
    """
    room_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = None
    responsibility_accepted: bool = False


class BookingUpdate(CamelModel):
    """Administrative booking update request model."""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = None
    status: Optional[BookingStatus] = None


class BookingResponse(CamelModel):
    """Booking response model."""
    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    purpose: Optional[str]
    status: str
    responsibility_accepted: bool
    created_at: datetime
    updated_at: datetime


class UserBookingResponse(CamelModel):
    """Booking enriched with the room's display fields."""
    id: int
    room_id: int
    room_name: str
    building: str
    floor: Optional[int]
    purpose: str
    status: str
    start_time: datetime
    end_time: datetime
    created_at: datetime


class AdminBookingResponse(UserBookingResponse):
    """Booking enriched with room display fields and the owner's name."""
    user_id: int
    username: str
    updated_at: datetime


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()


@app.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_decorator("write")
def create_booking(
    request: Request,
    booking_data: BookingCreate,
    current_user: User = Depends(get_current_user),
    manager: BookingManager = Depends(get_booking_manager)
):
    """
    Book a room for the current user.

    Raises:
        ValidationError: Missing fields, responsibility not accepted,
            invalid interval (400)
        NotFoundError: Room does not exist (404)
        ConflictError: User already has a booking in that period (409)
    """
    purpose = sanitize_input(booking_data.purpose) if booking_data.purpose else None
    try:
        booking = manager.create_booking(
            user_id=current_user.id,
            room_id=booking_data.room_id,
            start_time=booking_data.start_time,
            end_time=booking_data.end_time,
            purpose=purpose,
            responsibility_accepted=booking_data.responsibility_accepted,
        )
    except UniRaumError as e:
        track_booking_rejected(e.kind)
        raise

    track_booking_created()
    update_active_bookings(manager.bookings.count_confirmed())
    invalidate_cache_pattern("room")
    return booking


@app.get("/bookings/user", response_model=List[UserBookingResponse])
def get_user_bookings(
    current_user: User = Depends(get_current_user),
    manager: BookingManager = Depends(get_booking_manager)
):
    """Get all bookings of the current user, whatever their status."""
    bookings = manager.list_user_bookings(current_user.id)
    logger.info(f"Returning {len(bookings)} bookings for user {current_user.username}")
    return bookings


@app.put("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    manager: BookingManager = Depends(get_booking_manager)
):
    """
    Cancel a booking.

    Raises:
        NotFoundError: Booking does not exist (404)
        ForbiddenError: Current user is neither owner nor admin (403)
    """
    booking = manager.cancel_booking(booking_id, current_user.id)
    track_booking_cancelled()
    update_active_bookings(manager.bookings.count_confirmed())
    return booking


@app.get("/admin/bookings", response_model=List[AdminBookingResponse])
def get_all_bookings(
    current_user: User = Depends(require_admin),
    manager: BookingManager = Depends(get_booking_manager)
):
    """Get all bookings, newest first (admin only)."""
    return manager.list_all_bookings()


@app.get("/admin/bookings/{booking_id}", response_model=AdminBookingResponse)
def get_booking(
    booking_id: int,
    current_user: User = Depends(require_admin),
    manager: BookingManager = Depends(get_booking_manager)
):
    """Get one booking with room and user details (admin only)."""
    return manager.get_booking(booking_id)


@app.put("/admin/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    current_user: User = Depends(require_admin),
    manager: BookingManager = Depends(get_booking_manager)
):
    """
    Edit a booking's times, purpose or status (admin only).

    The edit is applied as given; see BookingManager.update_booking.
    """
    changes = booking_data.model_dump(exclude_unset=True)
    if changes.get("purpose"):
        changes["purpose"] = sanitize_input(changes["purpose"])
    booking = manager.update_booking(booking_id, changes)
    update_active_bookings(manager.bookings.count_confirmed())
    return booking


@app.delete("/admin/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: int,
    current_user: User = Depends(require_admin),
    manager: BookingManager = Depends(get_booking_manager)
):
    """Permanently delete a booking (admin only)."""
    manager.delete_booking(booking_id)
    track_booking_deleted()
    update_active_bookings(manager.bookings.count_confirmed())
    return None


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "bookings"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8003)
