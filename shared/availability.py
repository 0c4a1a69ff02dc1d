"""
Booking conflict detection and room availability.

Both checks work on plain lists handed in by the caller, so they can
be exercised without a database: the caller is responsible for
selecting confirmed bookings only.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from shared.intervals import Interval
from shared.errors import InvalidInterval

logger = logging.getLogger(__name__)


def booking_intervals(bookings: Iterable) -> Iterator[tuple]:
    """
    Yield (booking, interval) pairs for stored bookings.

    Admin edits are not re-validated, so a stored booking can end
    before it starts. Such records cannot overlap anything and are
    skipped with a warning.
    """
    for booking in bookings:
        try:
            yield booking, Interval.of(booking)
        except InvalidInterval:
            logger.warning(
                f"Skipping booking {getattr(booking, 'id', '?')} with empty time range "
                f"{booking.start_time} - {booking.end_time}"
            )


def check_user_conflict(existing_confirmed: Iterable[Interval], proposed: Interval) -> bool:
    """
    Check a proposed interval against a user's confirmed bookings.

    The check is user-scoped: a user cannot hold two simultaneous
    reservations, even in different rooms.

    Args:
        existing_confirmed: Intervals of the user's confirmed bookings
        proposed: Requested interval

    Returns:
        bool: True if proposed overlaps any existing interval
    """
    return any(proposed.overlaps(existing) for existing in existing_confirmed)


@dataclass(frozen=True)
class RoomFilter:
    """
    Attribute constraints for the availability search.

    Every field is optional; None means no constraint. The equipment
    flags only constrain when True: asking for hasComputers=false does
    not exclude rooms that have computers.
    """

    min_capacity: Optional[int] = None
    room_type: Optional[str] = None
    building: Optional[str] = None
    has_computers: Optional[bool] = None
    has_projector: Optional[bool] = None

    def matches(self, room) -> bool:
        if self.min_capacity is not None and room.capacity < self.min_capacity:
            return False
        if self.room_type is not None and _value(room.type) != _value(self.room_type):
            return False
        if self.building is not None and room.building != self.building:
            return False
        if self.has_computers and not room.has_computers:
            return False
        if self.has_projector and not room.has_projector:
            return False
        return True


def _value(member):
    return getattr(member, "value", member)


def booked_room_ids(confirmed_bookings: Iterable, window: Interval) -> set:
    """Ids of rooms with at least one booking overlapping window."""
    return {
        booking.room_id
        for booking, interval in booking_intervals(confirmed_bookings)
        if interval.overlaps(window)
    }


def find_available_rooms(
    rooms: Iterable,
    confirmed_bookings: Iterable,
    window: Interval,
    room_filter: Optional[RoomFilter] = None,
) -> List:
    """
    Compute the rooms free for a whole window.

    Args:
        rooms: Candidate rooms
        confirmed_bookings: Confirmed bookings, any room
        window: Requested interval
        room_filter: Attribute constraints, None for no constraint

    Returns:
        List: Rooms matching the filter with no overlapping booking,
        in their original order
    """
    room_filter = room_filter or RoomFilter()
    candidates = [room for room in rooms if room_filter.matches(room)]
    booked = booked_room_ids(confirmed_bookings, window)
    logger.debug(
        f"{len(candidates)} rooms match filter, {len(booked)} rooms booked "
        f"between {window.start} and {window.end}"
    )
    return [room for room in candidates if room.id not in booked]
