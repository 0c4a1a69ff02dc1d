"""
Booking lifecycle.

BookingManager enforces the booking rules on top of the repositories:
a responsibility acknowledgement and a valid half-open interval are
required, and a user may hold at most one confirmed booking at any
instant, across all rooms.

The conflict check and the insert are two separate statements. Two
concurrent requests of the same user can both pass the check before
either commits; nothing here serialises them.

Administrative updates are applied as given and are not re-validated
unless STRICT_ADMIN_UPDATES is enabled.
"""

import logging
import os
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.availability import RoomFilter, booking_intervals, check_user_conflict, find_available_rooms
from shared.enrichment import enrich_bookings
from shared.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from shared.intervals import Interval, parse_timestamp
from shared.models import Booking, BookingStatus, UserRole
from shared.repositories import BookingRepository, RoomRepository, UserRepository

logger = logging.getLogger(__name__)

STRICT_ADMIN_UPDATES = os.getenv("STRICT_ADMIN_UPDATES", "false").lower() == "true"

ADMIN_UPDATABLE_FIELDS = ("start_time", "end_time", "purpose", "status")


class BookingManager:
    """
    Orchestrates creation, cancellation and administration of bookings.

    Args:
        bookings: Booking repository
        rooms: Room repository
        users: User repository
        strict_admin_updates: Re-validate admin edits; defaults to the
            STRICT_ADMIN_UPDATES environment setting
    """

    def __init__(
        self,
        bookings: BookingRepository,
        rooms: RoomRepository,
        users: UserRepository,
        strict_admin_updates: Optional[bool] = None,
    ):
        self.bookings = bookings
        self.rooms = rooms
        self.users = users
        if strict_admin_updates is None:
            strict_admin_updates = STRICT_ADMIN_UPDATES
        self.strict_admin_updates = strict_admin_updates

    @classmethod
    def for_session(cls, db: Session, **kwargs) -> "BookingManager":
        return cls(BookingRepository(db), RoomRepository(db), UserRepository(db), **kwargs)

    def create_booking(
        self,
        user_id: int,
        room_id: Optional[int],
        start_time,
        end_time,
        purpose: Optional[str] = None,
        responsibility_accepted: bool = False,
    ) -> Booking:
        """
        Create a confirmed booking for user_id.

        Raises:
            ValidationError: Missing room or times, responsibility not
                accepted, or an invalid interval
            NotFoundError: If the room does not exist
            ConflictError: If the user already has a confirmed booking
                overlapping the interval
        """
        if room_id is None or start_time is None or end_time is None:
            raise ValidationError("Room ID, start time and end time must be specified!")
        if not responsibility_accepted:
            raise ValidationError("You must accept responsibility for the room condition!")

        interval = Interval(parse_timestamp(start_time, "start time"), parse_timestamp(end_time, "end time"))

        if self.rooms.get(room_id) is None:
            raise NotFoundError("Room not found!")

        existing = [iv for _, iv in booking_intervals(self.bookings.find_confirmed_by_user(user_id))]
        if check_user_conflict(existing, interval):
            raise ConflictError(
                "You already have a booking during this time period. "
                "You cannot book multiple rooms at the same time."
            )

        booking = self.bookings.insert(Booking(
            room_id=room_id,
            user_id=user_id,
            start_time=interval.start,
            end_time=interval.end,
            purpose=purpose,
            status=BookingStatus.CONFIRMED.value,
            responsibility_accepted=True,
        ))
        logger.info(f"User {user_id} booked room {room_id} from {interval.start} to {interval.end}")

        self._stamp_room(room_id, user_id, interval)
        return booking

    def _stamp_room(self, room_id: int, user_id: int, interval: Interval):
        # best effort: the booking is already committed
        try:
            if not self.rooms.touch_last_used(room_id, user_id, interval.end):
                logger.warning(f"Room {room_id} disappeared before its last-used info could be updated")
        except SQLAlchemyError as e:
            self.rooms.db.rollback()
            logger.warning(f"Could not update last-used info of room {room_id}: {e}")

    def cancel_booking(self, booking_id: int, requester_id: int) -> Booking:
        """
        Cancel a booking on behalf of its owner or an admin.

        Cancelling an already cancelled booking succeeds.

        Raises:
            NotFoundError: If the booking does not exist
            ForbiddenError: If the requester is neither owner nor admin
        """
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found!")

        if booking.user_id != requester_id:
            requester = self.users.get(requester_id)
            if requester is None or requester.role != UserRole.ADMIN:
                raise ForbiddenError("You don't have permission to cancel this booking!")

        booking = self.bookings.update_status(booking, BookingStatus.CANCELLED)
        logger.info(f"Booking {booking_id} cancelled by user {requester_id}")
        return booking

    def list_user_bookings(self, user_id: int) -> List[dict]:
        """All bookings of a user, any status, with room display fields."""
        return enrich_bookings(self.bookings.find_by_user(user_id), self.rooms)

    def list_all_bookings(self) -> List[dict]:
        """All bookings, newest first, with room display fields and username."""
        return enrich_bookings(self.bookings.list_all(), self.rooms, self.users)

    def get_booking(self, booking_id: int) -> dict:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found!")
        return enrich_bookings([booking], self.rooms, self.users)[0]

    def update_booking(self, booking_id: int, patch: dict) -> Booking:
        """
        Apply an administrative partial update.

        Only start_time, end_time, purpose and status are considered;
        None and empty values are ignored. Unless strict admin updates are
        enabled, the resulting interval and conflict-freedom are not
        checked, and a cancelled booking can be set back to confirmed.

        Raises:
            NotFoundError: If the booking does not exist
            ValidationError: On an unknown status or unparseable time
            ConflictError: Strict mode only, on a user conflict
        """
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found!")

        changes = {}
        for field in ADMIN_UPDATABLE_FIELDS:
            value = patch.get(field)
            if value is None or value == "":
                continue
            if field in ("start_time", "end_time"):
                value = parse_timestamp(value, field.replace("_", " "))
            elif field == "status":
                try:
                    value = BookingStatus(getattr(value, "value", value)).value
                except ValueError:
                    raise ValidationError(f"Invalid booking status: {value}")
            changes[field] = value

        if self.strict_admin_updates:
            self._validate_admin_changes(booking, changes)

        booking = self.bookings.update_fields(booking, changes)
        logger.info(f"Booking {booking_id} updated by admin: {sorted(changes)}")
        return booking

    def _validate_admin_changes(self, booking: Booking, changes: dict):
        interval = Interval(
            changes.get("start_time", booking.start_time),
            changes.get("end_time", booking.end_time),
        )
        if changes.get("status", booking.status) != BookingStatus.CONFIRMED.value:
            return
        others = self.bookings.find_confirmed_by_user(booking.user_id, exclude_id=booking.id)
        if check_user_conflict([iv for _, iv in booking_intervals(others)], interval):
            raise ConflictError("The booking owner already has a booking during this time period.")

    def delete_booking(self, booking_id: int):
        """Permanently delete a booking."""
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found!")
        self.bookings.delete(booking)
        logger.info(f"Booking {booking_id} deleted")

    def list_room_bookings(self, room_id: int, window: Optional[Interval] = None) -> List[Booking]:
        """
        Confirmed bookings of a room, optionally only those overlapping window.

        Raises:
            NotFoundError: If the room does not exist
        """
        if self.rooms.get(room_id) is None:
            raise NotFoundError("Room not found!")
        return self.bookings.find_confirmed_overlapping(window=window, room_id=room_id)

    def available_rooms(self, window: Interval, room_filter: Optional[RoomFilter] = None) -> list:
        """Rooms matching room_filter with no confirmed booking overlapping window."""
        return find_available_rooms(
            self.rooms.list_all(),
            self.bookings.find_confirmed_overlapping(window=window),
            window,
            room_filter,
        )
